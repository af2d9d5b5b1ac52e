"""Validation engine: link integrity and frontmatter schema checks over a resolved registry"""

import logging
import time
from collections import Counter
from typing import Callable, Optional

from pydantic import BaseModel

from mdcorpus.config import CollectionConfig
from mdcorpus.core.frontmatter import FrontmatterSchema, SchemaLoader, apply_schema
from mdcorpus.core.models import (
    LinkType,
    ResourceLink,
    ResourceMetadata,
    SchemaReference,
    Severity,
    ValidationIssue,
    ValidationMode,
    ValidationResult,
)
from mdcorpus.core.registry import ResourceRegistry
from mdcorpus.core.schemas import CLI_SOURCE, SELF_SOURCE, assign_schemas, self_asserted_schemas
from mdcorpus.core.utils.paths import split_href_anchor


logger = logging.getLogger(__name__)


class UrlCheckResult(BaseModel):
    url: str
    ok: bool
    status_code: int = 0        # 0 when no HTTP response was received
    error: Optional[str] = None


UrlChecker = Callable[[list[str]], list[UrlCheckResult]]
IgnoredPredicate = Callable[[str], bool]


def _issue(resource: ResourceMetadata, link: ResourceLink, severity: Severity, kind: str, message: str,
           suggestion: str = None) -> ValidationIssue:
    return ValidationIssue(
        severity=severity,
        resource_path=resource.file_path,
        line=link.line,
        type=kind,
        link=link.href,
        message=message,
        suggestion=suggestion,
    )


def validate_link(
    link: ResourceLink,
    resource: ResourceMetadata,
    is_ignored: Optional[IgnoredPredicate] = None,
    ) -> Optional[ValidationIssue]:
    """Issue for one resolved link, or None when the link is fine."""
    if link.type == LinkType.local_file:
        if link.resolved_id is None:
            return _issue(resource, link, Severity.error, "broken_file",
                          f"File not found: {link.resolved_path or link.href}",
                          "Check that the file path is correct and the file exists")
        if is_ignored is not None and is_ignored(link.resolved_path):
            return _issue(resource, link, Severity.error, "broken_file",
                          f"File is ignored by version control: {link.resolved_path}",
                          "Link to a tracked file or stop ignoring the target")
        _, fragment = split_href_anchor(link.href)
        if fragment and link.anchor_target is None:
            return _issue(resource, link, Severity.error, "broken_anchor",
                          f"Anchor not found: #{fragment} in {link.resolved_path}",
                          "Check the heading exists in the target file")
        return None

    if link.type == LinkType.anchor:
        if link.anchor_target is None:
            return _issue(resource, link, Severity.error, "broken_anchor",
                          f"Anchor not found: {link.href}",
                          "Check the heading exists in this file")
        return None

    if link.type == LinkType.external:
        return _issue(resource, link, Severity.info, "external_url", "External URL not validated")

    if link.type == LinkType.unknown:
        return _issue(resource, link, Severity.warning, "unknown_link",
                      f"Unknown link type: {link.href or '(empty)'}")
    return None


def _url_issue(result: UrlCheckResult, resource: ResourceMetadata, link: ResourceLink) -> ValidationIssue:
    if result.status_code == 0:
        kind = "external_url_timeout" if "timeout" in (result.error or "").lower() else "external_url_error"
    else:
        kind = "external_url_dead"
    return _issue(resource, link, Severity.error, kind,
                  f"External URL failed: {result.error or f'HTTP {result.status_code}'}")


def _flag(resource: ResourceMetadata, collections: dict[str, CollectionConfig], attr: str, default: bool) -> bool:
    """Collection-level boolean for a resource: true if any of its collections sets it, else default."""
    values = [
        getattr(collections[name].validation, attr)
        for name in resource.collections or []
        if name in collections and collections[name].validation is not None
    ]
    values = [v for v in values if v is not None]
    return any(values) if values else default


def _mode_for(ref: SchemaReference, collections: dict[str, CollectionConfig], mode: ValidationMode) -> ValidationMode:
    if ref.source not in (SELF_SOURCE, CLI_SOURCE):
        collection = collections.get(ref.source)
        if collection and collection.validation and collection.validation.mode:
            return collection.validation.mode
    return mode


def plan_schemas(
    registry: ResourceRegistry,
    collections: dict[str, CollectionConfig],
    cli_schema: Optional[str] = None,
    ) -> dict[str, list[SchemaReference]]:
    """Schema assignments per resource path, before anything is applied."""
    return {
        r.file_path: assign_schemas(self_asserted_schemas(r.frontmatter), r.collections, collections, cli_schema)
        for r in registry
    }


def validate_registry(
    registry: ResourceRegistry,
    *,
    collections: dict[str, CollectionConfig] = None,
    cli_schema: Optional[str] = None,
    mode: ValidationMode = ValidationMode.strict,
    schema_loader: Callable[[str], FrontmatterSchema] = None,
    check_external_urls: bool = False,
    url_checker: Optional[UrlChecker] = None,
    is_ignored: Optional[IgnoredPredicate] = None,
    ) -> ValidationResult:
    """Validate every link and frontmatter block in a resolved registry.

    All schemas are loaded before any checking starts; a SchemaLoadError
    propagates and no result is produced. Everything else becomes an issue.
    """
    start = time.perf_counter()
    collections = collections or {}
    mode = ValidationMode(mode)

    plan = plan_schemas(registry, collections, cli_schema)
    loader = schema_loader or SchemaLoader()
    schemas = {ref.schema_path: loader(ref.schema_path) for refs in plan.values() for ref in refs}

    issues: list[ValidationIssue] = []
    applied: dict[str, list[SchemaReference]] = {}
    pending_urls: dict[str, list[tuple[ResourceMetadata, ResourceLink]]] = {}

    for resource in registry:
        if resource.frontmatter_error is not None:
            issues.append(ValidationIssue(
                severity=Severity.error,
                resource_path=resource.file_path,
                line=1,
                type="frontmatter_invalid_yaml",
                message=f"Invalid YAML syntax in frontmatter: {resource.frontmatter_error}",
                suggestion="Fix the YAML between the --- markers",
            ))

        check_urls = url_checker is not None and _flag(resource, collections, "check_url_links", check_external_urls)
        check_ignored = is_ignored if _flag(resource, collections, "check_git_ignored", True) else None
        for link in resource.links:
            if check_urls and link.type == LinkType.external:
                pending_urls.setdefault(link.href, []).append((resource, link))
                continue
            issue = validate_link(link, resource, check_ignored)
            if issue is not None:
                issues.append(issue)

        if resource.frontmatter_error is not None:
            continue
        refs = []
        for ref in plan[resource.file_path]:
            result = apply_schema(ref, schemas[ref.schema_path], resource.frontmatter, resource.file_path,
                                  _mode_for(ref, collections, mode))
            issues.extend(result.errors)
            refs.append(result)
        if refs:
            applied[resource.file_path] = refs

    if check_external_urls and url_checker is None:
        logger.warning("External URL checking requested but no URL checker is configured")
    if pending_urls:
        logger.info("Checking %d external URL(s)", len(pending_urls))
        for result in url_checker(list(pending_urls)):
            if result.ok:
                continue
            for resource, link in pending_urls.get(result.url, []):
                issues.append(_url_issue(result, resource, link))

    links_by_type = Counter(link.type.value for r in registry for link in r.links)
    duration_ms = (time.perf_counter() - start) * 1000
    result = ValidationResult.from_issues(
        issues,
        total_resources=len(registry),
        total_links=sum(links_by_type.values()),
        links_by_type=dict(links_by_type),
        duration_ms=duration_ms,
        schemas=applied,
    )
    logger.info("Validated %d resource(s): %d error(s), %d warning(s), %d info",
                result.total_resources, result.error_count, result.warning_count, result.info_count)
    return result
