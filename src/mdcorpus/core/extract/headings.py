"""Heading outline extraction: flat heading list folded into a nested tree"""

from typing import Iterator, Optional
from urllib.parse import unquote

from mdcorpus.core.models import HeadingNode
from mdcorpus.core.utils.slug import heading_slug, unique_slug
from mdcorpus.core.utils.tokens import heading_level, inline_text, start_line


def flat_headings(tokens: list, line_offset: int = 0) -> list[HeadingNode]:
    """Headings in document order with GitHub-style slugs, deduplicated with -1, -2 suffixes."""
    seen: dict[str, int] = {}
    headings = []
    for i, token in enumerate(tokens):
        level = heading_level(token)
        if level is None:
            continue
        inline = tokens[i + 1] if i + 1 < len(tokens) else None
        text = inline_text(inline.children).strip() if inline is not None and inline.type == 'inline' else ''
        headings.append(HeadingNode(
            level=level,
            text=text,
            slug=unique_slug(heading_slug(text), seen),
            line=start_line(token, line_offset),
        ))
    return headings


def build_heading_tree(flat: list[HeadingNode]) -> list[HeadingNode]:
    """Nest headings in one stack pass: each attaches to the nearest earlier heading of lower level."""
    roots: list[HeadingNode] = []
    stack: list[HeadingNode] = []
    for node in flat:
        while stack and stack[-1].level >= node.level:
            stack.pop()
        if stack:
            parent = stack[-1]
            if parent.children is None:
                parent.children = []
            parent.children.append(node)
        else:
            roots.append(node)
        stack.append(node)
    return roots


def extract_headings(tokens: list, line_offset: int = 0) -> list[HeadingNode]:
    return build_heading_tree(flat_headings(tokens, line_offset))


def iter_headings(nodes: list[HeadingNode]) -> Iterator[HeadingNode]:
    """Depth-first walk over a heading tree in document order."""
    for node in nodes:
        yield node
        if node.children:
            yield from iter_headings(node.children)


def find_heading(nodes: list[HeadingNode], fragment: str) -> Optional[HeadingNode]:
    """Heading whose slug matches fragment case-insensitively, or None."""
    wanted = unquote(fragment).lower()
    if not wanted:
        return None
    for node in iter_headings(nodes):
        if node.slug.lower() == wanted:
            return node
    return None
