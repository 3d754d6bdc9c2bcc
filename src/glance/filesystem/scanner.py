"""Breadth-first directory discovery with inherited ignore chains."""

from __future__ import annotations

import logging
import os
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path

from glance.errors import IgnoreFileError, ScanError
from glance.filesystem.ignore import (
    EMPTY_CHAIN,
    IgnoreChain,
    extend_chain,
    is_pruned_dir_name,
    load_ignore_rule,
    should_ignore_dir,
)

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Directories discovered by one scan and the ignore chain of each.

    ``directories`` is in BFS discovery order with the root first.
    """

    root: Path
    directories: list[Path] = field(default_factory=list)
    chains: dict[Path, IgnoreChain] = field(default_factory=dict)

    def chain_for(self, directory: Path) -> IgnoreChain:
        return self.chains.get(Path(directory), EMPTY_CHAIN)

    def __len__(self) -> int:
        return len(self.directories)


def _list_subdirectories(directory: Path) -> list[Path]:
    with os.scandir(directory) as it:
        names = sorted(
            entry.name for entry in it if entry.is_dir(follow_symlinks=False)
        )
    return [directory / name for name in names]


def list_dirs_with_ignores(root: Path) -> ScanResult:
    """Walk ``root`` breadth-first and collect every non-ignored directory.

    The root is always included. Each included directory contributes its own
    ignore file (if any) to the chain its children inherit. An ignored
    directory is excluded together with its whole subtree.

    Raises:
        ScanError: The root itself cannot be listed.
    """
    root = Path(os.path.abspath(root))
    result = ScanResult(root=root)
    queue: deque[tuple[Path, IgnoreChain]] = deque([(root, EMPTY_CHAIN)])

    while queue:
        current, inherited = queue.popleft()

        if current != root and should_ignore_dir(current, inherited):
            logger.debug("Skipping ignored directory", extra={"path": str(current)})
            continue

        try:
            rule = load_ignore_rule(current)
        except IgnoreFileError as e:
            logger.warning(
                "Failed to load ignore file, continuing without it",
                extra={"path": str(current), "error": str(e)},
            )
            rule = None
        chain = extend_chain(inherited, rule)

        result.directories.append(current)
        result.chains[current] = chain

        try:
            children = _list_subdirectories(current)
        except OSError as e:
            if current == root:
                raise ScanError(f"cannot read directory {current}", cause=e)
            logger.warning(
                "Cannot read directory, skipping its subtree",
                extra={"path": str(current), "error": str(e)},
            )
            continue

        for child in children:
            if is_pruned_dir_name(child.name):
                continue
            queue.append((child, chain))

    logger.debug(
        "Directory scan complete",
        extra={"root": str(root), "directories": len(result.directories)},
    )
    return result
