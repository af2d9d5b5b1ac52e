"""Link extraction from markdown-it inline tokens and reference definitions"""

import re

from markdown_it.common.utils import normalizeReference

from mdcorpus.core.models import LinkNodeType, ResourceLink
from mdcorpus.core.resolve import classify_link
from mdcorpus.core.utils.tokens import INLINE_TEXT_TYPES, LINE_BREAK_TYPES, start_line


DEFINITION_RE = re.compile(r'^\[([^\]]*?)\]:\s*(.+)$', re.MULTILINE)


def inline_links(tokens: list, project_path: str = "", line_offset: int = 0) -> list[ResourceLink]:
    """Every link_open ... link_close span in inline tokens, with its text and source line."""
    links = []
    for token in tokens:
        if token.type != 'inline' or not token.children:
            continue
        line = start_line(token, line_offset)
        current = None
        for child in token.children:
            if child.type in LINE_BREAK_TYPES:
                if current is not None:
                    current['parts'].append('\n')
                if line is not None:
                    line += 1
            elif child.type == 'link_open':
                current = {'href': child.attrGet('href') or '', 'line': line, 'parts': []}
            elif child.type == 'link_close' and current is not None:
                href = str(current['href'])
                links.append(ResourceLink(
                    text=''.join(current['parts']),
                    href=href,
                    type=classify_link(href, project_path),
                    line=current['line'],
                ))
                current = None
            elif current is not None and child.type in INLINE_TEXT_TYPES:
                current['parts'].append(child.content)
    return links


def definition_links(body: str, env: dict, project_path: str = "", line_offset: int = 0) -> list[ResourceLink]:
    """Reference definitions markdown-it accepted, first occurrence of each label only."""
    references = env.get('references') or {}
    links = []
    seen = set()
    for m in DEFINITION_RE.finditer(body):
        label = normalizeReference(m.group(1))
        ref = references.get(label)
        if ref is None or label in seen:
            continue
        line = body.count('\n', 0, m.start())
        if ref.get('map') and ref['map'][0] != line:
            continue    # same text inside a code block or container
        seen.add(label)
        href = ref.get('href', '')
        links.append(ResourceLink(
            text=m.group(1),
            href=href,
            type=classify_link(href, project_path),
            node_type=LinkNodeType.definition,
            line=line + 1 + line_offset,
        ))
    return links


def extract_links(
    tokens: list,
    body: str,
    env: dict,
    project_path: str = "",
    line_offset: int = 0,
    ) -> list[ResourceLink]:
    """All links in a document body, ordered by source line."""
    links = inline_links(tokens, project_path, line_offset) + definition_links(body, env, project_path, line_offset)
    return sorted(links, key=lambda link: (link.line is None, link.line or 0))
