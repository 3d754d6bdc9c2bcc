"""Per-directory summary artifacts on disk.

Reads look for the current name first and fall back to the legacy name
written by older releases. Writes only ever use the current name.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from glance.config.defaults import (
    ARTIFACT_FILE_MODE,
    GLANCE_FILENAME,
    LEGACY_GLANCE_FILENAME,
)
from glance.errors import FileSystemError

logger = logging.getLogger(__name__)

ARTIFACT_NAMES = (GLANCE_FILENAME, LEGACY_GLANCE_FILENAME)


def artifact_path(directory: Path) -> Path:
    """Where a new artifact for ``directory`` is written."""
    return Path(directory) / GLANCE_FILENAME


def find_artifact(directory: Path) -> Optional[Path]:
    for name in ARTIFACT_NAMES:
        candidate = Path(directory) / name
        if candidate.is_file():
            return candidate
    return None


def artifact_mtime(directory: Path) -> Optional[float]:
    """Modification time of the directory's artifact, or None when absent."""
    for name in ARTIFACT_NAMES:
        try:
            st = os.stat(Path(directory) / name)
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.debug(
                "Cannot stat artifact",
                extra={"path": str(Path(directory) / name), "error": str(e)},
            )
            continue
        return st.st_mtime
    return None


def read_artifact(directory: Path) -> Optional[str]:
    """Text of the directory's artifact, or None when there is none readable."""
    for name in ARTIFACT_NAMES:
        path = Path(directory) / name
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                return f.read()
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.debug("Cannot read artifact", extra={"path": str(path), "error": str(e)})
            continue
    return None


def write_artifact(directory: Path, content: str) -> Path:
    """Persist ``content`` as the directory's artifact with owner-only permissions.

    The text goes to a temporary file beside the artifact which then replaces
    it, so a failed write leaves the previous artifact and its mtime intact.

    Raises:
        FileSystemError: The file could not be written.
    """
    path = artifact_path(directory)
    tmp_name: Optional[str] = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=".glance-", suffix=".tmp", dir=str(directory))
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            os.chmod(tmp_name, ARTIFACT_FILE_MODE)
            f.write(content)
        os.replace(tmp_name, path)
        # Artifact mtime must not precede the directory mtime set by the rename.
        os.utime(path)
    except OSError as e:
        if tmp_name is not None:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
        raise FileSystemError(
            f"failed to write {path}",
            code="FS-001",
            suggestion="Check write permissions on the directory",
            cause=e,
        )
    logger.debug("Wrote artifact", extra={"path": str(path), "bytes": len(content)})
    return path
