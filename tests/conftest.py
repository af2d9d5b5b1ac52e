"""Root test configuration: corpus builder and logging isolation"""

import logging
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handler changes made by the CLI's logging setup."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture(name="write_corpus")
def write_corpus_fixture(tmp_path):
    """Write {relative_path: content} under tmp_path and return the root."""
    def _write(files: dict[str, str], root: Path = None) -> Path:
        root = root or tmp_path
        for rel, content in files.items():
            p = root / rel
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_text(content, encoding="utf-8")
        return root
    return _write
