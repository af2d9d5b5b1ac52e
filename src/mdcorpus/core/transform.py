"""Link rewriting: render matched links through templates and retarget reference definitions"""

import logging
import posixpath
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional, Protocol

import yaml
from jinja2 import ChainableUndefined, Template, TemplateSyntaxError
from jinja2.sandbox import SandboxedEnvironment
from pydantic import BaseModel, ConfigDict, Field, field_validator

from mdcorpus.core.models import LinkNodeType, LinkType, ResourceLink, ResourceMetadata
from mdcorpus.core.utils.paths import matches_glob, relative_path, split_href_anchor


logger = logging.getLogger(__name__)

INLINE_LINK_RE = re.compile(r'(?<!!)\[([^\]]*)\]\(([^)]*)\)')
DEFINITION_RE = re.compile(r'^\[([^\]]*?)\]:[ \t]*(.+)$', re.MULTILINE)
BLANK_RUN_RE = re.compile(r'\n{3,}')

MIME_TYPES = {
    '.md': 'text/markdown',
    '.ts': 'text/typescript',
    '.js': 'text/javascript',
    '.json': 'application/json',
    '.yaml': 'text/yaml',
    '.yml': 'text/yaml',
    '.xml': 'application/xml',
    '.html': 'text/html',
    '.css': 'text/css',
    '.txt': 'text/plain',
}
DEFAULT_MIME_TYPE = 'application/octet-stream'

_env = SandboxedEnvironment(undefined=ChainableUndefined, autoescape=False, keep_trailing_newline=True)


class ResourceLookup(Protocol):
    def get_by_id(self, resource_id: str) -> Optional[ResourceMetadata]: ...


class LinkRewriteMatch(BaseModel):
    """Which links a rule applies to. Every set criterion must hold."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    types:                Optional[list[LinkType]] = Field(default=None, alias="type")
    pattern:              Optional[list[str]] = None        # globs on the target resource's path
    exclude_resource_ids: Optional[list[str]] = Field(default=None, alias="excludeResourceIds")

    @field_validator("types", "pattern", "exclude_resource_ids", mode="before")
    @classmethod
    def _listify(cls, v):
        return [v] if isinstance(v, str) else v


class LinkRewriteRule(BaseModel):
    """Rewrite every matched link through a template."""
    model_config = ConfigDict(extra="forbid")

    match:    LinkRewriteMatch = Field(default_factory=LinkRewriteMatch)
    template: Optional[str] = None      # falls back to the caller's default template

    @field_validator("template")
    @classmethod
    def _compiles(cls, v):
        if v is not None:
            compile_template(v)
        return v


@lru_cache(maxsize=128)
def _compile(source: str) -> Template:
    return _env.from_string(source)


def compile_template(source: str) -> Template:
    """Compiled template; syntax errors surface as ValueError."""
    try:
        return _compile(source)
    except TemplateSyntaxError as e:
        raise ValueError(f"Invalid template: {e}") from e


def load_rules(path: Path) -> list[LinkRewriteRule]:
    """Load rewrite rules from YAML/JSON: a list of rules, or a mapping with a 'rules' key."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ValueError(f"Invalid rules file {path}: {e}") from e
    if isinstance(data, dict):
        data = data.get("rules")
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError(f"Invalid rules file {path}: expected a list of rules")
    return [LinkRewriteRule.model_validate(item) for item in data]


def mime_type(file_path: str) -> str:
    ext = posixpath.splitext(file_path)[1].lower()
    return MIME_TYPES.get(ext, DEFAULT_MIME_TYPE)


def find_matching_rule(
    link: ResourceLink,
    resource: Optional[ResourceMetadata],
    rules: list[LinkRewriteRule],
    ) -> Optional[LinkRewriteRule]:
    """First rule whose criteria all hold for link. Path patterns need a resolved target."""
    for rule in rules:
        match = rule.match
        if match.types is not None and link.type not in match.types:
            continue
        if match.pattern is not None:
            if resource is None or not any(matches_glob(resource.file_path, p) for p in match.pattern):
                continue
        if match.exclude_resource_ids and link.resolved_id in match.exclude_resource_ids:
            continue
        return rule
    return None


def resource_context(resource: ResourceMetadata, source_path: Optional[str] = None) -> dict[str, Any]:
    """Template fields for a target resource, under both snake_case and camelCase keys."""
    name = resource.name
    ext = posixpath.splitext(name)[1]
    fields = {
        'id': resource.id,
        'file_path': resource.file_path,
        'file_name': name,
        'extension': ext,
        'mime_type': mime_type(name),
        'frontmatter': resource.frontmatter or {},
        'size_bytes': resource.size_bytes,
        'estimated_token_count': resource.estimated_token_count,
        'relative_path': relative_path(source_path, resource.file_path) if source_path else resource.file_path,
    }
    fields.update({
        'filePath': fields['file_path'],
        'fileName': fields['file_name'],
        'mimeType': fields['mime_type'],
        'sizeBytes': fields['size_bytes'],
        'estimatedTokenCount': fields['estimated_token_count'],
        'relativePath': fields['relative_path'],
    })
    return fields


def build_template_context(
    link: ResourceLink,
    href: str,
    resource: Optional[ResourceMetadata],
    context: Optional[dict[str, Any]] = None,
    source_path: Optional[str] = None,
    ) -> dict[str, Any]:
    """Caller context plus a 'link' object: text, href without fragment, fragment, type, resource."""
    base, anchor = split_href_anchor(href)
    return {
        **(context or {}),
        'link': {
            'text': link.text,
            'href': base,
            'fragment': f"#{anchor}" if anchor is not None else '',
            'type': link.type.value,
            'resource': resource_context(resource, source_path) if resource is not None else None,
        },
    }


def render_template(template: str, context: dict[str, Any]) -> str:
    return _compile(template).render(context)


def _destination(raw: str) -> tuple[str, str]:
    """Split an inline or definition destination into (href, trailing title text)."""
    raw = raw.strip()
    if raw.startswith('<') and '>' in raw:
        end = raw.index('>')
        return raw[1:end], raw[end + 1:]
    href, _, rest = raw.partition(' ')
    return href, (f" {rest}" if rest else '')


def transform_content(
    content: str,
    links: list[ResourceLink],
    rules: list[LinkRewriteRule],
    registry: Optional[ResourceLookup] = None,
    context: Optional[dict[str, Any]] = None,
    source_path: Optional[str] = None,
    default_template: Optional[str] = None,
    ) -> str:
    """Rewrite links in content according to rules. Pure: same inputs give the same output.

    Inline links are matched to extracted links by (text, href) and rendered
    through the first matching rule's template (or default_template).
    Reference definitions matched by a rule are retargeted to the resolved
    resource's relative path, or removed when the target does not resolve.
    Links that match no rule, or have no template to render, stay as written.
    """
    if (not rules and default_template is None) or not links:
        return content

    def _target(link: ResourceLink) -> Optional[ResourceMetadata]:
        if registry is None or link.resolved_id is None:
            return None
        return registry.get_by_id(link.resolved_id)

    inline = {}
    definitions = {}
    for link in links:
        table = definitions if link.node_type == LinkNodeType.definition else inline
        table.setdefault((link.text, link.href), link)

    def _rewrite_inline(m: re.Match) -> str:
        href, _ = _destination(m.group(2))
        link = inline.get((m.group(1), href))
        if link is None:
            return m.group(0)
        resource = _target(link)
        rule = find_matching_rule(link, resource, rules)
        template = rule.template if rule is not None and rule.template is not None else default_template
        if template is None:
            return m.group(0)
        return render_template(template, build_template_context(link, href, resource, context, source_path))

    result = INLINE_LINK_RE.sub(_rewrite_inline, content)
    if not definitions:
        return result

    removed = []

    def _rewrite_definition(m: re.Match) -> str:
        raw = m.group(2)
        eol = '\r' if raw.endswith('\r') else ''
        href, title = _destination(raw)
        link = definitions.get((m.group(1), href))
        if link is None:
            return m.group(0)
        resource = _target(link)
        rule = find_matching_rule(link, resource, rules)
        if rule is None:
            return m.group(0)
        if resource is None:
            logger.debug("Removing orphan definition [%s]: %s", m.group(1), href)
            removed.append(href)
            return ''
        if source_path is None:
            return m.group(0)
        _, anchor = split_href_anchor(href)
        fragment = f"#{anchor}" if anchor is not None else ''
        return f"[{m.group(1)}]: {relative_path(source_path, resource.file_path)}{fragment}{title.rstrip()}{eol}"

    result = DEFINITION_RE.sub(_rewrite_definition, result)
    if removed:
        result = BLANK_RUN_RE.sub('\n\n', result)
    return result
