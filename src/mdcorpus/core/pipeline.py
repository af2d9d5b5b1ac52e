"""Pipeline step functions: corpus loading, validation, and transformation"""

import logging
from pathlib import Path
from typing import Any, Optional

from mdcorpus.config import Settings
from mdcorpus.core.collections import collections_for_path, in_corpus
from mdcorpus.core.frontmatter import SchemaLoader
from mdcorpus.core.models import ValidationResult
from mdcorpus.core.parse import build_resource, discover_files, parse_file
from mdcorpus.core.registry import ResourceRegistry
from mdcorpus.core.resolve import resolve_registry
from mdcorpus.core.transform import LinkRewriteRule, compile_template, transform_content
from mdcorpus.core.utils.hashing import fingerprint
from mdcorpus.core.validate import IgnoredPredicate, UrlChecker, validate_registry


logger = logging.getLogger(__name__)


def corpus_root(path: Path) -> Path:
    return path if path.is_dir() else path.parent


def load_corpus(path: Path, settings: Settings) -> ResourceRegistry:
    """Extract every markdown file under path into a sealed registry with resolved links."""
    root = corpus_root(path)
    registry = ResourceRegistry()
    for p in discover_files(path):
        if not in_corpus(p.resolve().relative_to(root.resolve()).as_posix(), settings.resources):
            logger.debug("Skipping %s: outside resources include/exclude", p)
            continue
        try:
            parsed = parse_file(p, root, settings.parser_config)
        except Exception as e:
            raise RuntimeError(f"Failed to load {p}: {e}") from e
        member_of = collections_for_path(parsed.file_path, settings.collections)
        registry.insert(build_resource(parsed, settings.id_field, member_of))
    registry.seal()
    logger.info("Loaded %d resource(s) from %s", len(registry), root)
    return resolve_registry(registry)


def run_validate(
    path: Path,
    settings: Settings,
    schema_root: Path = None,
    url_checker: Optional[UrlChecker] = None,
    is_ignored: Optional[IgnoredPredicate] = None,
    ) -> tuple[ResourceRegistry, ValidationResult]:
    """Load the corpus under path and validate it. Returns (registry, result)."""
    registry = load_corpus(path, settings)
    result = validate_registry(
        registry,
        collections=settings.collections,
        cli_schema=settings.frontmatter_schema,
        mode=settings.validation_mode,
        schema_loader=SchemaLoader(schema_root),
        check_external_urls=settings.check_external_urls,
        url_checker=url_checker,
        is_ignored=is_ignored,
    )
    return registry, result


def run_transform(
    file: Path,
    rules: list[LinkRewriteRule],
    settings: Settings,
    root: Path = None,
    default_template: Optional[str] = None,
    context: Optional[dict[str, Any]] = None,
    ) -> tuple[str, str]:
    """Rewrite links in one file against the corpus under root. Returns (content, fingerprint)."""
    if default_template is not None:
        compile_template(default_template)
    root = root or file.parent
    registry = load_corpus(root, settings)
    project_path = file.resolve().relative_to(root.resolve()).as_posix()
    resource = registry.get_by_path(project_path)
    if resource is None:
        raise ValueError(f"{file} is not a markdown file under {root}")
    content = file.read_bytes().decode("utf-8", errors="replace")
    output = transform_content(
        content, resource.links, rules,
        registry=registry,
        context=context,
        source_path=project_path,
        default_template=default_template,
    )
    return output, fingerprint(output)
