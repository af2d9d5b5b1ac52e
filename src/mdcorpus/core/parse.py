"""File discovery, frontmatter extraction, and markdown-it tokenization"""

import logging
import math
import re
from datetime import date, datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml
from markdown_it import MarkdownIt

from mdcorpus.core.extract.headings import extract_headings
from mdcorpus.core.extract.links import extract_links
from mdcorpus.core.models import ParsedResource, ResourceMetadata
from mdcorpus.core.utils.hashing import sha256
from mdcorpus.core.utils.slug import path_id


logger = logging.getLogger(__name__)

FRONTMATTER_RE = re.compile(r'\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)', re.DOTALL | re.MULTILINE)
MD_EXTENSIONS = {'.md', '.mdx', '.markdown'}
SKIP_DIRS = {'node_modules'}


@lru_cache(maxsize=8)
def _make_parser(preset: str) -> MarkdownIt:
    """Build a MarkdownIt instance for the given preset name; hrefs are kept exactly as written."""
    md = MarkdownIt(preset, options_update={"linkify": False})
    md.normalizeLink = lambda url: url
    return md


def _jsonable(value: Any) -> Any:
    """Convert YAML dates to ISO strings so frontmatter stays JSON-compatible."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


def _strip_frontmatter(text: str) -> tuple[Optional[dict[str, Any]], Optional[str], str]:
    """Return (frontmatter, error, body). Never raises; at most one of frontmatter/error is set."""
    m = FRONTMATTER_RE.match(text)
    if not m:
        return None, None, text
    body = text[m.end():]
    if not m.group(1).strip():
        return None, None, body
    try:
        fm = yaml.safe_load(m.group(1))
    except yaml.YAMLError as e:
        return None, str(e), body
    if fm is None:
        return None, None, body
    if not isinstance(fm, dict):
        return None, f"expected a mapping, got {type(fm).__name__}", body
    return _jsonable(fm), None, body


def discover_files(path: Path) -> list[Path]:
    """Return sorted markdown files under path, or [path] if a single file. Hidden dirs are skipped."""
    if path.is_file():
        return [path] if path.suffix in MD_EXTENSIONS else []
    found = []
    for p in path.rglob('*'):
        parts = p.relative_to(path).parts
        if p.suffix not in MD_EXTENSIONS or not p.is_file():
            continue
        if any(part.startswith('.') or part in SKIP_DIRS for part in parts[:-1]):
            continue
        found.append(p)
    return sorted(found)


def parse_text(
    content: str | bytes,
    project_path: str = "",
    parser_config: str = 'gfm-like',
    ) -> ParsedResource:
    """Extract frontmatter, links, headings, and size metadata from one document.

    project_path is the document's project-relative path; it places relative
    hrefs when classifying links. Malformed markdown or frontmatter never
    raises: YAML problems land in frontmatter_error, and bytes that are not
    valid UTF-8 decode to U+FFFD while size and checksum cover the raw bytes.
    """
    if isinstance(content, bytes):
        data, raw = content, content.decode('utf-8', errors='replace')
    else:
        data, raw = content.encode('utf-8'), content
    frontmatter, error, body = _strip_frontmatter(raw)
    if error:
        logger.debug("Invalid frontmatter in %s: %s", project_path or '<text>', error)
    offset = raw[:len(raw) - len(body)].count('\n')
    env: dict = {}
    tokens = _make_parser(parser_config).parse(body, env)
    return ParsedResource(
        file_path=project_path,
        raw_markdown=raw,
        markdown=body,
        line_offset=offset,
        frontmatter=frontmatter,
        frontmatter_error=error,
        links=extract_links(tokens, body, env, project_path, offset),
        headings=extract_headings(tokens, offset),
        size_bytes=len(data),
        estimated_token_count=math.ceil(len(raw) / 4),
        checksum=sha256(data),
    )


def parse_file(path: Path, root: Path, parser_config: str = 'gfm-like') -> ParsedResource:
    """Parse a single markdown file; its project path is taken relative to root."""
    project_path = path.resolve().relative_to(root.resolve()).as_posix()
    return parse_text(path.read_bytes(), project_path, parser_config)


def generate_id(project_path: str, frontmatter: Optional[dict[str, Any]] = None, id_field: str = None) -> str:
    """Resource ID: the frontmatter id_field value when configured and present, else derived from the path."""
    if id_field and frontmatter and frontmatter.get(id_field) not in (None, ''):
        return str(frontmatter[id_field])
    return path_id(project_path)


def build_resource(
    parsed: ParsedResource,
    id_field: str = None,
    collections: Optional[list[str]] = None,
    ) -> ResourceMetadata:
    """Complete a ParsedResource with an ID and collection membership."""
    return ResourceMetadata(
        id=generate_id(parsed.file_path, parsed.frontmatter, id_field),
        file_path=parsed.file_path,
        links=parsed.links,
        headings=parsed.headings,
        frontmatter=parsed.frontmatter,
        frontmatter_error=parsed.frontmatter_error,
        size_bytes=parsed.size_bytes,
        estimated_token_count=parsed.estimated_token_count,
        checksum=parsed.checksum,
        collections=collections or None,
    )
