"""Project-relative path helpers: validity checks, href splitting, and glob matching"""

import posixpath
import re
from functools import lru_cache
from urllib.parse import unquote


SCHEME_RE = re.compile(r'^[A-Za-z][A-Za-z0-9+.-]*:')


def to_posix(path: str) -> str:
    """Normalize separators to forward slashes."""
    return path.replace('\\', '/')


def is_valid_project_path(path: str) -> bool:
    """True for a non-empty, relative, forward-slash path that stays inside the project root.

    Rejects absolute paths, drive letters, URLs and other schemes, backslashes,
    and paths whose '..' segments climb above the root.
    """
    if not path or path.startswith('/') or '\\' in path or SCHEME_RE.match(path):
        return False
    depth = 0
    for part in path.split('/'):
        if part == '..':
            depth -= 1
            if depth < 0:
                return False
        elif part not in ('', '.'):
            depth += 1
    return depth > 0


def split_href_anchor(href: str) -> tuple[str, str | None]:
    """Split 'path#frag' into ('path', 'frag'). Fragment is None when href has no '#'."""
    base, sep, fragment = href.partition('#')
    return base, (fragment if sep else None)


def resolve_href(href_path: str, source_path: str) -> str | None:
    """Project path that href_path points to from source_path, or None if it leaves the project."""
    if not href_path or href_path.startswith('/') or '\\' in href_path or SCHEME_RE.match(href_path):
        return None
    href_path = unquote(href_path.split('?', 1)[0])
    joined = posixpath.join(posixpath.dirname(source_path), href_path)
    if not is_valid_project_path(joined):
        return None
    return posixpath.normpath(joined)


def relative_path(source_path: str, target_path: str) -> str:
    """Path to target_path as written from a document at source_path."""
    return posixpath.relpath(target_path, posixpath.dirname(source_path) or '.')


def _translate(pattern: str) -> str:
    """Glob to regex source: '**/' spans directories, '*' and '?' stay within one segment."""
    out = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if c == '*':
            if pattern.startswith('**', i):
                i += 2
                if i < n and pattern[i] == '/':
                    i += 1
                    out.append('(?:.*/)?')
                else:
                    out.append('.*')
                continue
            out.append('[^/]*')
        elif c == '?':
            out.append('[^/]')
        elif c == '{':
            end = pattern.find('}', i)
            if end == -1:
                out.append(re.escape(c))
            else:
                alternatives = pattern[i + 1:end].split(',')
                out.append('(?:' + '|'.join(_translate(a) for a in alternatives) + ')')
                i = end + 1
                continue
        elif c == '[':
            end = pattern.find(']', i + 1)
            if end == -1:
                out.append(re.escape(c))
            else:
                body = pattern[i + 1:end]
                if body.startswith('!'):
                    body = '^' + body[1:]
                out.append(f'[{body}]')
                i = end + 1
                continue
        else:
            out.append(re.escape(c))
        i += 1
    return ''.join(out)


@lru_cache(maxsize=256)
def glob_regex(pattern: str) -> re.Pattern:
    """Compiled regex for a glob pattern (cached)."""
    pattern = to_posix(pattern)
    if pattern.startswith('./'):
        pattern = pattern[2:]
    return re.compile(_translate(pattern))


def matches_glob(path: str, pattern: str) -> bool:
    """True if the whole of path matches the glob pattern."""
    return glob_regex(pattern).fullmatch(to_posix(path)) is not None
