"""Collect the inputs of one directory's prompt.

Only immediate children are read: local text files go into the prompt
verbatim (up to a size cap), subdirectories contribute their existing
summaries.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Optional

from glance.config.defaults import MAX_FILE_BYTES, TEXT_SNIFF_BYTES, TRUNCATION_MARKER
from glance.errors import FileSystemError
from glance.filesystem.artifacts import read_artifact
from glance.filesystem.ignore import IgnoreChain, should_ignore_dir, should_ignore_file
from glance.filesystem.paths import validate_file_path

logger = logging.getLogger(__name__)

# Control bytes that never appear in text files. Tab, LF, FF, CR and ESC are allowed.
_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)


def looks_like_text(sample: bytes) -> bool:
    return not any(b in _BINARY_BYTES for b in sample)


def is_text_file(path: Path) -> bool:
    """Sniff the head of ``path``. Empty files count as text.

    Raises:
        OSError: The file cannot be opened.
    """
    with open(path, "rb") as f:
        sample = f.read(TEXT_SNIFF_BYTES)
    return looks_like_text(sample)


def truncate_content(content: str, max_bytes: int) -> str:
    """Cut ``content`` to at most ``max_bytes`` UTF-8 bytes and append the marker."""
    encoded = content.encode("utf-8")
    if max_bytes <= 0 or len(encoded) <= max_bytes:
        return content
    head = encoded[:max_bytes].decode("utf-8", errors="ignore")
    return head + TRUNCATION_MARKER


def read_text_file(
    path: Path,
    max_bytes: int = MAX_FILE_BYTES,
    base_dir: Optional[Path] = None,
) -> str:
    """Read ``path`` as UTF-8 (invalid sequences replaced), capped at ``max_bytes``.

    Raises:
        FileSystemError: ``path`` lies outside ``base_dir`` or is a directory.
        OSError: The file cannot be read.
    """
    clean = validate_file_path(path, base_dir if base_dir is not None else "", must_exist=True)
    with open(clean, "rb") as f:
        # One extra byte tells us whether there was more.
        data = f.read(max_bytes + 1) if max_bytes > 0 else f.read()
    text = data.decode("utf-8", errors="replace")
    if max_bytes > 0 and len(data) > max_bytes:
        return truncate_content(text, max_bytes)
    return text


def gather_local_files(
    directory: Path,
    chain: IgnoreChain,
    max_file_bytes: int = MAX_FILE_BYTES,
) -> dict[str, str]:
    """Map file name to contents for every readable, non-ignored text file in ``directory``.

    Raises:
        OSError: The directory itself cannot be listed.
    """
    directory = Path(directory)
    files: dict[str, str] = {}

    with os.scandir(directory) as it:
        entries = sorted(it, key=lambda e: e.name)

    for entry in entries:
        if not entry.is_file(follow_symlinks=False):
            continue
        path = Path(entry.path)
        if should_ignore_file(path, chain, base_dir=directory):
            continue
        try:
            if not is_text_file(path):
                logger.debug("Skipping binary file", extra={"path": str(path)})
                continue
            files[entry.name] = read_text_file(path, max_file_bytes, base_dir=directory)
        except (OSError, FileSystemError) as e:
            logger.debug("Skipping unreadable file", extra={"path": str(path), "error": str(e)})
            continue

    return files


def read_subdirectories(directory: Path, chain: IgnoreChain) -> list[Path]:
    """Sorted immediate subdirectories of ``directory`` that are not ignored.

    Raises:
        OSError: The directory cannot be listed.
    """
    directory = Path(directory)
    with os.scandir(directory) as it:
        names = sorted(e.name for e in it if e.is_dir(follow_symlinks=False))
    return [
        directory / name
        for name in names
        if not should_ignore_dir(directory / name, chain, base_dir=directory)
    ]


def gather_sub_glances(subdirs: Iterable[Path]) -> str:
    """Concatenate the existing summaries of ``subdirs``, separated by a blank line."""
    parts = []
    for sub in subdirs:
        content = read_artifact(sub)
        if content is None:
            logger.debug("Subdirectory has no summary yet", extra={"path": str(sub)})
            continue
        parts.append(content.rstrip("\n"))
    return "\n\n".join(parts)
