"""Unit tests for core/extract/headings.py"""

from mdcorpus.core.extract.headings import (
    build_heading_tree,
    extract_headings,
    find_heading,
    flat_headings,
    iter_headings,
)
from mdcorpus.core.models import HeadingNode


OUTLINE_MD = """\
# Title

## Setup

### Linux

## Usage

#### Deep

# Appendix
"""


def test_flat_headings_levels_and_lines(parser):
    """flat_headings lists every heading with level and source line."""
    flat = flat_headings(parser.parse(OUTLINE_MD))
    assert [(h.level, h.text, h.line) for h in flat] == [
        (1, "Title", 1),
        (2, "Setup", 3),
        (3, "Linux", 5),
        (2, "Usage", 7),
        (4, "Deep", 9),
        (1, "Appendix", 11),
    ]


def test_tree_nesting(parser):
    """Deeper headings nest under the closest shallower heading, skipped levels included."""
    tree = extract_headings(parser.parse(OUTLINE_MD))
    assert [h.text for h in tree] == ["Title", "Appendix"]
    setup, usage = tree[0].children
    assert [c.text for c in setup.children] == ["Linux"]
    assert [c.text for c in usage.children] == ["Deep"]


def test_tree_leaf_children_none(parser):
    """Leaves carry None rather than an empty children list."""
    tree = extract_headings(parser.parse(OUTLINE_MD))
    assert tree[1].children is None
    assert tree[0].children[0].children[0].children is None


def test_tree_starting_below_level_one():
    """A document that starts at h3 still produces roots."""
    flat = [
        HeadingNode(level=3, text="a", slug="a"),
        HeadingNode(level=2, text="b", slug="b"),
        HeadingNode(level=3, text="c", slug="c"),
    ]
    tree = build_heading_tree(flat)
    assert [h.text for h in tree] == ["a", "b"]
    assert [c.text for c in tree[1].children] == ["c"]


def test_duplicate_headings_get_suffixes(parser):
    """Repeated heading text gets -1, -2 slugs across the whole document."""
    flat = flat_headings(parser.parse("# Notes\n\n## Notes\n\n## Notes\n"))
    assert [h.slug for h in flat] == ["notes", "notes-1", "notes-2"]


def test_iter_headings_document_order(parser):
    """iter_headings walks the tree depth-first in document order."""
    tree = extract_headings(parser.parse(OUTLINE_MD))
    assert [h.text for h in iter_headings(tree)] == ["Title", "Setup", "Linux", "Usage", "Deep", "Appendix"]


def test_find_heading_case_insensitive(parser):
    """find_heading matches slugs regardless of case."""
    tree = extract_headings(parser.parse(OUTLINE_MD))
    assert find_heading(tree, "LINUX").text == "Linux"
    assert find_heading(tree, "missing") is None
    assert find_heading(tree, "") is None
