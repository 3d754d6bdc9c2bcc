"""Nested .gitignore handling.

Each directory may carry its own ignore file. Rules accumulate while
descending: a directory's chain is its parent's chain plus its own rule.
A path is ignored when any rule in the chain whose origin is an ancestor of
the path's containing directory matches it; there is no cross-rule
negation or precedence.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pathspec

from glance.config.defaults import (
    GLANCE_FILENAME,
    IGNORE_FILENAME,
    LEGACY_GLANCE_FILENAME,
    NODE_MODULES_DIR,
)
from glance.errors import IgnoreFileError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IgnoreRule:
    """Compiled ignore patterns and the directory they were loaded from."""

    origin: Path
    spec: pathspec.PathSpec

    def matches(self, rel_path: str) -> bool:
        return self.spec.match_file(rel_path)


IgnoreChain = tuple[IgnoreRule, ...]

EMPTY_CHAIN: IgnoreChain = ()


def load_ignore_rule(directory: Path) -> Optional[IgnoreRule]:
    """Parse ``directory``'s ignore file.

    Returns None when the directory has no ignore file.

    Raises:
        IgnoreFileError: The file exists but cannot be read.
    """
    path = Path(directory) / IGNORE_FILENAME
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            lines = f.read().splitlines()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise IgnoreFileError(f"cannot read ignore file {path}", cause=e)

    try:
        spec = pathspec.GitIgnoreSpec.from_lines(lines)
    except (ValueError, TypeError) as e:
        raise IgnoreFileError(f"cannot parse ignore file {path}", cause=e)
    return IgnoreRule(origin=Path(directory), spec=spec)


def extend_chain(chain: IgnoreChain, rule: Optional[IgnoreRule]) -> IgnoreChain:
    """Return a new chain with ``rule`` appended (or ``chain`` itself if None)."""
    if rule is None:
        return chain
    return chain + (rule,)


def is_ancestor_or_self(ancestor: Path, path: Path) -> bool:
    """Component-wise ancestry: /a/foo is not an ancestor of /a/foobar."""
    ancestor_str = os.path.normpath(str(ancestor))
    path_str = os.path.normpath(str(path))
    if path_str == ancestor_str:
        return True
    prefix = ancestor_str if ancestor_str.endswith(os.sep) else ancestor_str + os.sep
    return path_str.startswith(prefix)


def matches_ignore_chain(
    path: Path,
    chain: IgnoreChain,
    is_dir: bool,
    base_dir: Optional[Path] = None,
) -> bool:
    """True when any applicable rule in ``chain`` matches ``path``.

    ``base_dir`` is the candidate's containing directory and defaults to its
    parent. Directory candidates are tested with and without a trailing
    slash so ``build/`` matches the directory but not a file named build.
    """
    path = Path(path)
    base = Path(base_dir) if base_dir is not None else path.parent

    for rule in chain:
        if not is_ancestor_or_self(rule.origin, base):
            continue
        rel = os.path.relpath(path, rule.origin)
        if rel == "." or rel.startswith(".." + os.sep) or rel == "..":
            continue
        rel = rel.replace(os.sep, "/")

        if rule.matches(rel) or (is_dir and rule.matches(rel + "/")):
            logger.debug(
                "Path matched by ignore rule",
                extra={"path": str(path), "origin_dir": str(rule.origin)},
            )
            return True
    return False


def is_output_file(name: str) -> bool:
    return name in (GLANCE_FILENAME, LEGACY_GLANCE_FILENAME)


def should_ignore_file(
    path: Path,
    chain: IgnoreChain,
    base_dir: Optional[Path] = None,
) -> bool:
    """Ignore our own output (current and legacy names), hidden files, and chain matches."""
    name = Path(path).name
    if is_output_file(name):
        logger.debug("Ignoring glance output file", extra={"path": str(path)})
        return True
    if name.startswith("."):
        logger.debug("Ignoring hidden file", extra={"path": str(path)})
        return True
    return matches_ignore_chain(path, chain, is_dir=False, base_dir=base_dir)


def is_pruned_dir_name(name: str) -> bool:
    """Cheap name-only check applied before any pattern matching."""
    return name.startswith(".") or name == NODE_MODULES_DIR


def should_ignore_dir(
    path: Path,
    chain: IgnoreChain,
    base_dir: Optional[Path] = None,
) -> bool:
    """Ignore hidden directories, node_modules, and chain matches."""
    name = Path(path).name
    if is_pruned_dir_name(name):
        logger.debug("Ignoring hidden or vendor directory", extra={"path": str(path)})
        return True
    return matches_ignore_chain(path, chain, is_dir=True, base_dir=base_dir)
