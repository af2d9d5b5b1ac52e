"""Collection membership: include/exclude glob rules over project paths"""

import posixpath
from typing import Optional

from mdcorpus.config import CollectionConfig, ResourcesConfig
from mdcorpus.core.utils.paths import matches_glob, to_posix


DEFAULT_SUFFIX = '**/*.{md,json}'
GLOB_CHARS = set('*?[]{}')


def is_glob_pattern(pattern: str) -> bool:
    return any(c in GLOB_CHARS for c in pattern)


def expand_pattern(pattern: str) -> str:
    """Turn a plain directory path into a recursive glob; prefix other globs with '**/'.

    'docs'        -> '**/docs/**/*.{md,json}'
    'docs/*.md'   -> '**/docs/*.md'
    """
    pattern = to_posix(pattern).rstrip('/')
    if pattern.startswith('./'):
        pattern = pattern[2:]
    if not is_glob_pattern(pattern):
        return f"**/{pattern}/{DEFAULT_SUFFIX}"
    if pattern.startswith(('/', '**/')):
        return pattern
    return f"**/{pattern}"


def _matches(project_path: str, pattern: str) -> bool:
    if '/' not in pattern and is_glob_pattern(pattern):
        # root-level patterns like '*.md' match on the file name
        return matches_glob(posixpath.basename(project_path), pattern)
    return matches_glob(project_path, expand_pattern(pattern))


def matches_patterns(project_path: str, include: list[str], exclude: list[str]) -> bool:
    """True if an include pattern matches and no exclude pattern does."""
    project_path = to_posix(project_path)
    if not any(_matches(project_path, p) for p in include):
        return False
    return not any(_matches(project_path, p) for p in exclude)


def matches_collection(project_path: str, collection: CollectionConfig) -> bool:
    return matches_patterns(project_path, collection.include, collection.exclude)


def in_corpus(project_path: str, resources: Optional[ResourcesConfig]) -> bool:
    """Whether a discovered file is loaded at all. An empty include list admits every file."""
    if resources is None:
        return True
    include = resources.include or ["**/*"]
    return matches_patterns(project_path, include, resources.exclude)


def collections_for_path(project_path: str, collections: dict[str, CollectionConfig]) -> list[str]:
    """Names of every collection the path belongs to, in configuration order."""
    return [name for name, config in collections.items() if matches_collection(project_path, config)]
