"""Pytest configuration for glance tests."""
import os
import sys
from pathlib import Path

import pytest

# Add src to path for the tests - conftest is in tests/, so parent.parent is project root
project_root = Path(__file__).resolve().parent.parent
src_path = project_root / "src"

# Insert at the very beginning to override any other paths
sys.path.insert(0, str(src_path))


@pytest.fixture
def make_tree(tmp_path):
    """Build a directory tree from a {relative_path: content} mapping.

    A value of None creates a directory instead of a file.
    """

    def _make(spec: dict) -> Path:
        for rel, content in spec.items():
            path = tmp_path / rel
            if content is None:
                path.mkdir(parents=True, exist_ok=True)
                continue
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content)
        return tmp_path

    return _make


@pytest.fixture
def set_mtime():
    """Set both atime and mtime of a path to ``ts``."""

    def _set(path: Path, ts: float) -> None:
        os.utime(path, (ts, ts))

    return _set
