"""Integration tests for the scan, validate, and transform commands"""

import json

from typer.testing import CliRunner

from mdcorpus.cli.cli import app


runner = CliRunner()


def test_scan_cmd_summarizes_corpus(tmp_path, monkeypatch, write_corpus):
    """scan lists each resource and a link summary."""
    monkeypatch.chdir(tmp_path)
    write_corpus({"corpus/a.md": "[b](b.md)\n", "corpus/b.md": "# B\n"})
    result = runner.invoke(app, ["scan", "corpus"])
    assert result.exit_code == 0, result.output
    assert "a: a.md (1 link(s))" in result.output
    assert "Scanned 2 resource(s), 1 link(s) (local_file=1)" in result.output


def test_validate_cmd_fails_on_broken_link(tmp_path, monkeypatch, write_corpus):
    """validate exits 1 and reports broken_file for a missing target."""
    monkeypatch.chdir(tmp_path)
    write_corpus({"corpus/README.md": "[Guide](./guide.md)\n"})
    result = runner.invoke(app, ["validate", "corpus"])
    assert result.exit_code == 1
    assert "README.md:1 [error] broken_file: File not found: guide.md" in result.output
    assert "Validation failed" in result.output


def test_validate_cmd_passes(tmp_path, monkeypatch, write_corpus):
    """validate exits 0 when every link resolves."""
    monkeypatch.chdir(tmp_path)
    write_corpus({"corpus/a.md": "[b](b.md#b)\n", "corpus/b.md": "# B\n"})
    result = runner.invoke(app, ["validate", "corpus"])
    assert result.exit_code == 0, result.output
    assert "Validation passed" in result.output


def test_validate_cmd_json_format(tmp_path, monkeypatch, write_corpus):
    """--format json prints the full result."""
    monkeypatch.chdir(tmp_path)
    write_corpus({"corpus/a.md": "[x](https://example.com)\n"})
    result = runner.invoke(app, ["validate", "corpus", "--format", "json"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["passed"] is True
    assert data["info_count"] == 1
    assert data["issues"][0]["type"] == "external_url"


def test_validate_cmd_schema(tmp_path, monkeypatch, write_corpus):
    """--frontmatter-schema applies to every resource."""
    monkeypatch.chdir(tmp_path)
    write_corpus({
        "corpus/skill.md": "---\nname: x\n---\n# Skill\n",
        "schema.json": json.dumps({"type": "object", "required": ["description"]}),
    })
    result = runner.invoke(app, ["validate", "corpus", "--frontmatter-schema", "schema.json"])
    assert result.exit_code == 1
    assert "frontmatter_schema_error" in result.output
    assert "description" in result.output


def test_validate_cmd_missing_schema(tmp_path, monkeypatch, write_corpus):
    """An unloadable schema is a fatal error."""
    monkeypatch.chdir(tmp_path)
    write_corpus({"corpus/a.md": "# A\n"})
    result = runner.invoke(app, ["validate", "corpus", "--frontmatter-schema", "nope.json"])
    assert result.exit_code == 1
    assert "Error: Schema could not be loaded" in result.output


def test_validate_cmd_project_config(tmp_path, monkeypatch, write_corpus):
    """--config loads collections whose schemas resolve next to the config file."""
    monkeypatch.chdir(tmp_path)
    write_corpus({
        "corpus/guides/a.md": "---\ntitle: A\nextra: 1\n---\n",
        "corpus/notes/b.md": "---\nextra: 1\n---\n",
        "conf/schemas/guide.json": json.dumps({
            "type": "object",
            "properties": {"title": {"type": "string"}},
            "additionalProperties": False,
        }),
        "conf/project.yaml": (
            "version: 1\n"
            "resources:\n"
            "  collections:\n"
            "    guides:\n"
            "      include: [guides]\n"
            "      validation: {frontmatterSchema: schemas/guide.json}\n"
        ),
    })
    result = runner.invoke(app, ["validate", "corpus", "--config", "conf/project.yaml"])
    assert result.exit_code == 1
    assert "guides/a.md:1 [error] frontmatter_schema_error" in result.output
    assert "notes/b.md" not in result.output

    result = runner.invoke(app, ["validate", "corpus", "--config", "conf/project.yaml", "--mode", "permissive"])
    assert result.exit_code == 0, result.output


def test_transform_cmd_writes_output(tmp_path, monkeypatch, write_corpus):
    """transform renders links through rules and prints the fingerprint."""
    monkeypatch.chdir(tmp_path)
    write_corpus({
        "corpus/index.md": "See [Guide](./guide.md).\n",
        "corpus/guide.md": "# Guide\n",
        "rules.yaml": "- match: {type: local_file}\n  template: '{{link.text}} (see: {{link.href}})'\n",
    })
    out = tmp_path / "out.md"
    result = runner.invoke(app, [
        "transform", "corpus/index.md",
        "--rules", "rules.yaml",
        "--root", "corpus",
        "--out", str(out),
    ])
    assert result.exit_code == 0, result.output
    assert out.read_text() == "See Guide (see: ./guide.md).\n"
    assert "fingerprint:" in result.output


def test_transform_cmd_bad_rules(tmp_path, monkeypatch, write_corpus):
    """An invalid rules file exits 1 with an error."""
    monkeypatch.chdir(tmp_path)
    write_corpus({"corpus/index.md": "x\n", "rules.yaml": "rules: 3\n"})
    result = runner.invoke(app, ["transform", "corpus/index.md", "--rules", "rules.yaml"])
    assert result.exit_code == 1
    assert "Error: Invalid rules file" in result.output


def test_transform_cmd_bad_default_template(tmp_path, monkeypatch, write_corpus):
    """A default template with a syntax error exits 1 with an error instead of a traceback."""
    monkeypatch.chdir(tmp_path)
    write_corpus({"corpus/index.md": "[a](a.md)\n", "rules.yaml": "[]\n"})
    result = runner.invoke(app, [
        "transform", "corpus/index.md",
        "--rules", "rules.yaml",
        "--default-template", "{{ link.text ",
    ])
    assert result.exit_code == 1
    assert "Error: Invalid template" in result.output
