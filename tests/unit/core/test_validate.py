"""Unit tests for core/validate.py"""

import json

import pytest

from mdcorpus.config import CollectionConfig
from mdcorpus.core.frontmatter import SchemaLoadError, SchemaLoader
from mdcorpus.core.models import HeadingNode, LinkType, ResourceLink, Severity
from mdcorpus.core.registry import ResourceRegistry
from mdcorpus.core.resolve import resolve_registry
from mdcorpus.core.validate import UrlCheckResult, validate_link, validate_registry


REQUIRES_DESCRIPTION = {
    "type": "object",
    "required": ["description"],
    "properties": {"description": {"type": "string"}},
}


def _registry(*resources):
    return resolve_registry(ResourceRegistry.from_resources(resources))


def _link(href, link_type, line=1, text="x"):
    return ResourceLink(text=text, href=href, type=link_type, line=line)


@pytest.fixture(name="schema_dir")
def schema_dir_fixture(tmp_path):
    (tmp_path / "desc.json").write_text(json.dumps(REQUIRES_DESCRIPTION))
    return tmp_path


def test_broken_local_link(make_resource):
    """A link to a missing file is a broken_file error carrying line and href."""
    registry = _registry(make_resource("README.md", links=[_link("./guide.md", LinkType.local_file, line=3, text="Guide")]))
    result = validate_registry(registry)
    assert result.passed is False
    assert result.error_count == 1
    issue = result.issues[0]
    assert (issue.type, issue.severity, issue.line, issue.link) == ("broken_file", Severity.error, 3, "./guide.md")
    assert issue.resource_path == "README.md"
    assert issue.suggestion == "Check that the file path is correct and the file exists"


def test_valid_corpus_passes(make_resource):
    """Resolvable links and anchors produce no issues."""
    registry = _registry(
        make_resource("docs/guide.md", headings=[HeadingNode(level=1, text="Setup", slug="setup")]),
        make_resource("docs/index.md", links=[
            _link("guide.md#setup", LinkType.local_file),
            _link("#top", LinkType.anchor),
            _link("mailto:a@b.c", LinkType.email),
        ], headings=[HeadingNode(level=1, text="Top", slug="top")]),
    )
    result = validate_registry(registry)
    assert result.passed is True
    assert result.issues == []
    assert result.total_resources == 2
    assert result.total_links == 3
    assert result.links_by_type == {"local_file": 1, "anchor": 1, "email": 1}


def test_broken_anchors(make_resource):
    """Unknown fragments in the same file or in a target file are broken_anchor errors."""
    registry = _registry(
        make_resource("b.md"),
        make_resource("a.md", links=[_link("#nowhere", LinkType.anchor), _link("b.md#gone", LinkType.local_file)]),
    )
    result = validate_registry(registry)
    assert [i.type for i in result.issues] == ["broken_anchor", "broken_anchor"]


def test_external_and_unknown_links(make_resource):
    """External links are info, unknown links are warnings; neither fails validation."""
    registry = _registry(make_resource("a.md", links=[
        _link("https://example.com", LinkType.external),
        _link("ftp://x", LinkType.unknown),
    ]))
    result = validate_registry(registry)
    assert result.passed is True
    assert [(i.type, i.severity) for i in result.issues] == [
        ("external_url", Severity.info),
        ("unknown_link", Severity.warning),
    ]
    assert (result.error_count, result.warning_count, result.info_count) == (0, 1, 1)


def test_counts_match_issues(make_resource):
    """Severity counts always equal the number of issues of each severity."""
    registry = _registry(make_resource("a.md", links=[
        _link("missing.md", LinkType.local_file),
        _link("https://example.com", LinkType.external),
        _link("", LinkType.unknown),
        _link("#x", LinkType.anchor),
    ]))
    result = validate_registry(registry)
    for severity, count in [(Severity.error, result.error_count),
                            (Severity.warning, result.warning_count),
                            (Severity.info, result.info_count)]:
        assert count == sum(1 for i in result.issues if i.severity == severity)
    assert result.passed == (result.error_count == 0)


def test_invalid_yaml_reported(make_resource):
    """A frontmatter parse error is reported once and schemas are skipped for that resource."""
    registry = _registry(make_resource("a.md", frontmatter_error="mapping values are not allowed here"))
    result = validate_registry(registry, cli_schema="py:mdcorpus.config:CollectionConfig")
    assert [i.type for i in result.issues] == ["frontmatter_invalid_yaml"]
    assert result.issues[0].message.startswith("Invalid YAML syntax in frontmatter:")
    assert result.schemas == {}


def test_cli_schema_failure(make_resource, schema_dir):
    """A resource missing a required field fails with a schema error naming the field."""
    registry = _registry(make_resource("skill.md", frontmatter={"name": "x"}))
    result = validate_registry(registry, cli_schema="desc.json", schema_loader=SchemaLoader(schema_dir))
    assert result.passed is False
    assert [i.type for i in result.issues] == ["frontmatter_schema_error"]
    assert "description" in result.issues[0].message
    ref = result.schemas["skill.md"][0]
    assert (ref.source, ref.applied, ref.valid) == ("cli", True, False)


def test_missing_frontmatter_with_required_schema(make_resource, schema_dir):
    """No frontmatter at all fails when the schema requires fields."""
    registry = _registry(make_resource("a.md"))
    result = validate_registry(registry, cli_schema="desc.json", schema_loader=SchemaLoader(schema_dir))
    assert [i.type for i in result.issues] == ["frontmatter_missing"]


def test_collection_schema_and_mode(make_resource, tmp_path):
    """Collection schemas apply to members only, using the collection's mode."""
    (tmp_path / "closed.json").write_text(json.dumps({"type": "object", "additionalProperties": False}))
    collections = {
        "loose": CollectionConfig.model_validate({
            "include": ["loose"],
            "validation": {"frontmatterSchema": "closed.json", "mode": "permissive"},
        }),
        "tight": CollectionConfig.model_validate({
            "include": ["tight"],
            "validation": {"frontmatterSchema": "closed.json"},
        }),
    }
    registry = _registry(
        make_resource("loose/a.md", frontmatter={"x": 1}, collections=["loose"]),
        make_resource("tight/b.md", frontmatter={"x": 1}, collections=["tight"]),
        make_resource("other/c.md", frontmatter={"x": 1}),
    )
    result = validate_registry(registry, collections=collections, schema_loader=SchemaLoader(tmp_path))
    assert [i.resource_path for i in result.issues] == ["tight/b.md"]
    assert result.schemas["loose/a.md"][0].valid is True
    assert "other/c.md" not in result.schemas


def test_self_asserted_schema(make_resource, schema_dir):
    """A document's own '$schema' reference is applied."""
    registry = _registry(make_resource("a.md", frontmatter={"$schema": "desc.json"}))
    result = validate_registry(registry, schema_loader=SchemaLoader(schema_dir))
    assert result.schemas["a.md"][0].source == "self"
    assert result.error_count == 1


def test_schema_load_failure_is_fatal(make_resource, tmp_path):
    """An unloadable schema stops validation before any result is produced."""
    registry = _registry(make_resource("a.md", frontmatter={}))
    with pytest.raises(SchemaLoadError):
        validate_registry(registry, cli_schema="missing.json", schema_loader=SchemaLoader(tmp_path))


def test_url_checker_reclassifies_failures(make_resource):
    """With a checker, failed URLs become errors typed by failure kind; good URLs are silent."""
    registry = _registry(make_resource("a.md", links=[
        _link("https://ok.example", LinkType.external),
        _link("https://dead.example", LinkType.external),
        _link("https://slow.example", LinkType.external),
        _link("https://down.example", LinkType.external),
    ]))
    seen = []

    def checker(urls):
        seen.extend(urls)
        return [
            UrlCheckResult(url="https://ok.example", ok=True, status_code=200),
            UrlCheckResult(url="https://dead.example", ok=False, status_code=404),
            UrlCheckResult(url="https://slow.example", ok=False, error="Request timeout"),
            UrlCheckResult(url="https://down.example", ok=False, error="Connection refused"),
        ]

    result = validate_registry(registry, check_external_urls=True, url_checker=checker)
    assert len(seen) == 4
    assert [(i.type, i.message) for i in result.issues] == [
        ("external_url_dead", "External URL failed: HTTP 404"),
        ("external_url_timeout", "External URL failed: Request timeout"),
        ("external_url_error", "External URL failed: Connection refused"),
    ]


def test_url_checking_requires_opt_in(make_resource):
    """A checker is not called unless checking is enabled."""
    registry = _registry(make_resource("a.md", links=[_link("https://x.example", LinkType.external)]))

    def checker(urls):
        raise AssertionError("should not be called")

    result = validate_registry(registry, url_checker=checker)
    assert [i.type for i in result.issues] == ["external_url"]


def test_ignored_target_is_broken(make_resource):
    """A link to an existing but ignored file is reported as broken_file."""
    registry = _registry(
        make_resource("secret.md"),
        make_resource("a.md", links=[_link("secret.md", LinkType.local_file)]),
    )
    result = validate_registry(registry, is_ignored=lambda path: path == "secret.md")
    assert [i.type for i in result.issues] == ["broken_file"]
    assert "ignored" in result.issues[0].message


def test_validate_link_ok(make_resource):
    """validate_link returns None for email links."""
    resource = make_resource("a.md")
    assert validate_link(_link("mailto:x@y.z", LinkType.email), resource) is None


def test_result_metadata(make_resource):
    """Results carry a non-negative duration and a timestamp."""
    result = validate_registry(_registry(make_resource("a.md")))
    assert result.duration_ms >= 0
    assert result.timestamp is not None
