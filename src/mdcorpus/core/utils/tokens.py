"""Shared markdown-it token utilities"""


INLINE_TEXT_TYPES = {'text', 'code_inline'}
LINE_BREAK_TYPES = {'softbreak', 'hardbreak'}


def heading_level(token) -> int | None:
    """Return the heading level (1-6) for a heading_open token, else None."""
    if token.type == 'heading_open' and token.tag and token.tag[0] == 'h' and token.tag[1:].isdigit():
        return int(token.tag[1:])
    return None


def inline_text(children) -> str:
    """Plain text of inline child tokens: text and code spans, line breaks as newlines."""
    parts = []
    for child in children or []:
        if child.type in INLINE_TEXT_TYPES:
            parts.append(child.content)
        elif child.type in LINE_BREAK_TYPES:
            parts.append('\n')
    return ''.join(parts)


def start_line(token, offset: int = 0) -> int | None:
    """1-based source line of a block token, shifted by offset lines; None when unmapped."""
    if token.map:
        return token.map[0] + 1 + offset
    return None
