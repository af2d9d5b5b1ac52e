"""Slug generation for resource identifiers and heading anchors"""

import posixpath
import re


def heading_slug(text: str) -> str:
    """GitHub-style anchor slug: punctuation dropped, whitespace to '-', underscores kept."""
    text = text.strip().lower()
    text = re.sub(r'[^\w\s-]', '', text)
    text = re.sub(r'\s+', '-', text)
    return re.sub(r'-+', '-', text)


def unique_slug(slug: str, seen: dict[str, int]) -> str:
    """Return slug, or slug-1, slug-2, ... if already taken. Updates seen in place."""
    if slug not in seen:
        seen[slug] = 0
        return slug
    while True:
        seen[slug] += 1
        candidate = f"{slug}-{seen[slug]}"
        if candidate not in seen:
            seen[candidate] = 0
            return candidate


def path_id(project_path: str) -> str:
    """Kebab-case identifier from a project path.

    'docs/User Guide/Getting_Started.md' -> 'docs-user-guide-getting-started'
    """
    stem = posixpath.splitext(project_path.replace('\\', '/'))[0]
    text = stem.strip('/').replace('/', '-').lower()
    text = re.sub(r'[\s_]+', '-', text)
    text = re.sub(r'[^a-z0-9-]', '', text)
    return re.sub(r'-+', '-', text).strip('-')
