"""Decide which directories need a new summary.

A directory is stale when it has no artifact, when anything under it
(after ignore rules) is newer than its artifact, or when a descendant was
regenerated during this run. Directories are processed leaf-first so a
parent always sees its children's fresh artifacts.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional

from glance.errors import IgnoreFileError
from glance.filesystem.artifacts import artifact_mtime as lookup_artifact_mtime
from glance.filesystem.ignore import (
    IgnoreChain,
    extend_chain,
    load_ignore_rule,
    should_ignore_dir,
)

logger = logging.getLogger(__name__)

ArtifactMtimeLookup = Callable[[Path], Optional[float]]


def _child_chain(
    child: Path,
    inherited: IgnoreChain,
    chains: Optional[Mapping[Path, IgnoreChain]],
) -> IgnoreChain:
    if chains is not None and child in chains:
        return chains[child]
    try:
        rule = load_ignore_rule(child)
    except IgnoreFileError as e:
        logger.warning(
            "Failed to load ignore file, continuing without it",
            extra={"path": str(child), "error": str(e)},
        )
        rule = None
    return extend_chain(inherited, rule)


def latest_mod_time(
    directory: Path,
    chain: IgnoreChain,
    chains: Optional[Mapping[Path, IgnoreChain]] = None,
) -> float:
    """Newest mtime of ``directory`` and everything below it.

    Subdirectories are pruned the same way the scanner prunes them: each is
    tested against its parent's chain, and a kept one adds its own ignore
    file for its children. ``chains`` supplies already scanned chains; any
    directory missing from it has its ignore file loaded on the way down.
    Every file in a kept directory counts.

    Raises:
        OSError: A stat or listing failed.
    """
    directory = Path(directory)
    latest = os.stat(directory).st_mtime
    stack: list[tuple[Path, IgnoreChain]] = [(directory, chain)]

    while stack:
        current, current_chain = stack.pop()
        with os.scandir(current) as it:
            entries = list(it)
        for entry in entries:
            st = entry.stat(follow_symlinks=False)
            if entry.is_dir(follow_symlinks=False):
                child = Path(entry.path)
                if should_ignore_dir(child, current_chain):
                    continue
                stack.append((child, _child_chain(child, current_chain, chains)))
            if st.st_mtime > latest:
                latest = st.st_mtime
    return latest


def should_regenerate(
    directory: Path,
    chain: IgnoreChain,
    force: bool = False,
    artifact_mtime: ArtifactMtimeLookup = lookup_artifact_mtime,
    chains: Optional[Mapping[Path, IgnoreChain]] = None,
) -> bool:
    """Decide from the directory's own contents whether it is stale.

    Raises:
        OSError: The directory's contents could not be stat'ed.
    """
    if force:
        return True

    existing = artifact_mtime(directory)
    if existing is None:
        logger.debug("No artifact yet", extra={"path": str(directory)})
        return True

    latest = latest_mod_time(directory, chain, chains)
    if latest > existing:
        logger.debug(
            "Contents newer than artifact",
            extra={"path": str(directory), "latest": latest, "artifact": existing},
        )
        return True
    return False


def leaf_first(directories: Iterable[Path]) -> list[Path]:
    """Reverse a root-first BFS list so every directory follows its descendants."""
    return list(reversed(list(directories)))


class RegenerationLedger:
    """Directories marked stale by descendants during a single run."""

    def __init__(self) -> None:
        self._marked: dict[Path, bool] = {}

    def mark(self, directory: Path) -> None:
        self._marked[Path(directory)] = True

    def is_marked(self, directory: Path) -> bool:
        return self._marked.get(Path(directory), False)

    def __contains__(self, directory: object) -> bool:
        return isinstance(directory, (str, Path)) and self.is_marked(Path(directory))

    def __len__(self) -> int:
        return len(self._marked)


def bubble_up_parents(directory: Path, root: Path, ledger: RegenerationLedger) -> None:
    """Mark every strict ancestor of ``directory`` below ``root``."""
    root = Path(os.path.normpath(str(root)))
    current = Path(os.path.normpath(str(directory)))

    while True:
        parent = current.parent
        if parent == current or parent == root:
            return
        try:
            parent.relative_to(root)
        except ValueError:
            return
        ledger.mark(parent)
        current = parent


class RegenerationPlanner:
    """Per-run staleness decisions over a scanned tree."""

    def __init__(
        self,
        root: Path,
        chains: dict[Path, IgnoreChain],
        force: bool = False,
        artifact_mtime: ArtifactMtimeLookup = lookup_artifact_mtime,
    ):
        self.root = Path(root)
        self.chains = chains
        self.force = force
        self.ledger = RegenerationLedger()
        self._artifact_mtime = artifact_mtime

    def needs_regeneration(self, directory: Path) -> bool:
        """Own check OR ledger. Evaluate only when ``directory`` is next to process."""
        directory = Path(directory)
        marked = self.ledger.is_marked(directory)
        try:
            own = should_regenerate(
                directory,
                self.chains.get(directory, ()),
                force=self.force,
                artifact_mtime=self._artifact_mtime,
                chains=self.chains,
            )
        except OSError as e:
            logger.warning(
                "Staleness check failed, relying on descendant changes only",
                extra={"path": str(directory), "error": str(e)},
            )
            return marked
        return own or marked

    def record_generated(self, directory: Path) -> None:
        bubble_up_parents(directory, self.root, self.ledger)
