"""Tests for summary artifact storage."""

import errno
import stat

import pytest
from unittest.mock import patch

from glance.errors import FileSystemError
from glance.filesystem.artifacts import (
    artifact_mtime,
    artifact_path,
    find_artifact,
    read_artifact,
    write_artifact,
)
from glance.filesystem.ignore import EMPTY_CHAIN
from glance.filesystem.regeneration import should_regenerate


def test_missing_artifact(tmp_path):
    assert find_artifact(tmp_path) is None
    assert artifact_mtime(tmp_path) is None
    assert read_artifact(tmp_path) is None


def test_write_uses_current_name_with_owner_only_mode(tmp_path):
    path = write_artifact(tmp_path, "# summary\n")

    assert path == tmp_path / ".glance.md"
    assert path.read_text() == "# summary\n"
    assert stat.S_IMODE(path.stat().st_mode) == 0o600
    assert not (tmp_path / "glance.md").exists()


def test_rewrite_tightens_existing_permissions(tmp_path):
    existing = artifact_path(tmp_path)
    existing.write_text("old")
    existing.chmod(0o644)

    write_artifact(tmp_path, "new")

    assert existing.read_text() == "new"
    assert stat.S_IMODE(existing.stat().st_mode) == 0o600


def test_legacy_name_is_read(tmp_path):
    (tmp_path / "glance.md").write_text("legacy summary")

    assert find_artifact(tmp_path) == tmp_path / "glance.md"
    assert read_artifact(tmp_path) == "legacy summary"
    assert artifact_mtime(tmp_path) is not None


def test_current_name_preferred_over_legacy(tmp_path, set_mtime):
    (tmp_path / "glance.md").write_text("legacy")
    (tmp_path / ".glance.md").write_text("current")
    set_mtime(tmp_path / "glance.md", 1000)
    set_mtime(tmp_path / ".glance.md", 2000)

    assert find_artifact(tmp_path) == tmp_path / ".glance.md"
    assert read_artifact(tmp_path) == "current"
    assert artifact_mtime(tmp_path) == 2000


def test_write_failure_raises_filesystem_error(tmp_path):
    with patch("glance.filesystem.artifacts.tempfile.mkstemp", side_effect=PermissionError("denied")):
        with pytest.raises(FileSystemError) as exc_info:
            write_artifact(tmp_path, "text")

    assert exc_info.value.code == "FS-001"
    assert find_artifact(tmp_path) is None


def test_failed_rewrite_keeps_previous_artifact_stale(make_tree, set_mtime):
    root = make_tree({"a.py": "edited", ".glance.md": "old summary"})
    set_mtime(root / ".glance.md", 1000)
    set_mtime(root / "a.py", 2000)

    with patch("glance.filesystem.artifacts.os.replace", side_effect=OSError(errno.ENOSPC, "No space left on device")):
        with pytest.raises(FileSystemError):
            write_artifact(root, "new summary")

    assert read_artifact(root) == "old summary"
    assert artifact_mtime(root) == 1000
    assert should_regenerate(root, EMPTY_CHAIN)
    assert sorted(p.name for p in root.iterdir()) == [".glance.md", "a.py"]


def test_fresh_write_is_not_stale(make_tree, set_mtime):
    root = make_tree({"a.py": "a"})
    set_mtime(root / "a.py", 1000)

    write_artifact(root, "summary")

    assert not should_regenerate(root, EMPTY_CHAIN)
