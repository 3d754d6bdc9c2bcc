"""Path containment checks.

By default containment is decided on normalised path strings, so a
symlink inside ``base`` that points elsewhere still passes. Pass
``strict=True`` to resolve symlinks before comparing.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union

from glance.errors import (
    InvalidPathError,
    NotADirectoryPathError,
    NotAFileError,
    PathOutsideBaseError,
)

PathLike = Union[str, os.PathLike]


def _normalise(path: PathLike, strict: bool) -> str:
    try:
        raw = os.fspath(path)
    except TypeError as e:
        raise InvalidPathError(f"invalid path {path!r}", cause=e)
    if not raw or "\x00" in raw:
        raise InvalidPathError(f"invalid path {raw!r}")
    if strict:
        return os.path.realpath(raw)
    return os.path.abspath(os.path.normpath(raw))


def validate_path_within_base(
    path: PathLike,
    base: PathLike,
    allow_base: bool = True,
    strict: bool = False,
) -> Path:
    """Return the normalised ``path`` if it lies inside ``base``.

    An empty ``base`` disables the check.

    Raises:
        InvalidPathError: ``path`` cannot be normalised.
        PathOutsideBaseError: ``path`` escapes ``base`` (or equals it when
            ``allow_base`` is False).
    """
    clean = _normalise(path, strict)
    if not os.fspath(base):
        return Path(clean)

    clean_base = _normalise(base, strict)
    if clean == clean_base:
        if allow_base:
            return Path(clean)
        raise PathOutsideBaseError(
            f"path {clean!r} must be inside base directory {clean_base!r}, not equal to it"
        )

    prefix = clean_base if clean_base.endswith(os.sep) else clean_base + os.sep
    if not clean.startswith(prefix):
        raise PathOutsideBaseError(
            f"path {clean!r} is outside of base directory {clean_base!r}",
            suggestion="Only paths inside the target directory can be read",
        )
    return Path(clean)


def validate_file_path(
    path: PathLike,
    base: PathLike,
    must_exist: bool = True,
    strict: bool = False,
) -> Path:
    """Like validate_path_within_base, and additionally reject directories.

    Raises:
        NotAFileError: ``path`` is a directory.
        FileNotFoundError: ``must_exist`` is set and ``path`` is missing.
    """
    clean = validate_path_within_base(path, base, allow_base=True, strict=strict)
    if must_exist:
        if not clean.exists():
            raise FileNotFoundError(f"file does not exist: {clean}")
        if clean.is_dir():
            raise NotAFileError(f"path is a directory, not a file: {clean}")
    elif clean.is_dir():
        raise NotAFileError(f"path is a directory, not a file: {clean}")
    return clean


def validate_dir_path(
    path: PathLike,
    base: PathLike,
    must_exist: bool = True,
    strict: bool = False,
) -> Path:
    clean = validate_path_within_base(path, base, allow_base=True, strict=strict)
    if must_exist:
        if not clean.exists():
            raise FileNotFoundError(f"directory does not exist: {clean}")
        if not clean.is_dir():
            raise NotADirectoryPathError(f"path is not a directory: {clean}")
    elif clean.exists() and not clean.is_dir():
        raise NotADirectoryPathError(f"path is not a directory: {clean}")
    return clean
