"""Shared fixtures for core unit tests"""

import pytest
from markdown_it import MarkdownIt

from mdcorpus.core.models import ResourceMetadata
from mdcorpus.core.utils.hashing import sha256


SAMPLE_MD = """\
# Getting Started

See the [Guide](./guide.md) and [API](../api/index.md#auth).

## Install

Visit [site](https://example.com) or [mail](mailto:team@example.com).
Jump to [usage](#usage).

## Usage

[ref link][docs]

[docs]: ./reference.md
"""


@pytest.fixture(name="parser")
def parser_fixture():
    return MarkdownIt("gfm-like", options_update={"linkify": False})


@pytest.fixture(name="sample_md")
def sample_md_fixture():
    return SAMPLE_MD


@pytest.fixture(name="make_resource")
def make_resource_fixture():
    """Factory for minimal ResourceMetadata; checksum defaults to a hash of the path."""
    def _make(file_path: str, content: str = "", **kwargs) -> ResourceMetadata:
        data = {
            "id": file_path.rsplit(".", 1)[0].replace("/", "-"),
            "file_path": file_path,
            "size_bytes": len(content.encode("utf-8")),
            "estimated_token_count": (len(content) + 3) // 4,
            "checksum": sha256(content or file_path),
        }
        data.update(kwargs)
        return ResourceMetadata(**data)
    return _make
