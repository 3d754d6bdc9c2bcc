"""
Run orchestration: scan, plan, generate, write.

Directories are handled strictly one after another in leaf-first order so
every parent is summarised after its children. A failure in one directory
is recorded and the run moves on; cancellation stops the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from glance.config.settings import GlanceConfig
from glance.errors import (
    FallbackExhaustedError,
    FileSystemError,
    GlanceError,
    OperationCancelledError,
)
from glance.filesystem.artifacts import find_artifact, write_artifact
from glance.filesystem.ignore import IgnoreChain
from glance.filesystem.reader import (
    gather_local_files,
    gather_sub_glances,
    read_subdirectories,
)
from glance.filesystem.regeneration import RegenerationPlanner, leaf_first
from glance.filesystem.scanner import list_dirs_with_ignores
from glance.llm.cancel import CancelToken
from glance.llm.service import GlanceService

logger = logging.getLogger(__name__)

ProgressCallback = Callable[["DirectoryResult"], None]


@dataclass
class DirectoryResult:
    """Outcome of processing one directory."""

    directory: Path
    attempts: int = 0
    success: bool = False
    regenerated: bool = False
    error: Optional[BaseException] = None


@dataclass
class RunSummary:
    """Counts for the end-of-run debrief."""

    total: int
    succeeded: int
    failed: int
    regenerated: int
    failures: list[DirectoryResult]

    @property
    def ok(self) -> bool:
        return self.failed == 0


async def process_directory(
    directory: Path,
    chain: IgnoreChain,
    force: bool,
    service: GlanceService,
    max_file_bytes: int,
    token: Optional[CancelToken] = None,
) -> DirectoryResult:
    """Generate and write the summary for one directory.

    Without ``force`` an existing artifact is left alone. Generation and IO
    failures end up in the result; cancellation propagates.
    """
    result = DirectoryResult(directory=directory)

    if not force and find_artifact(directory) is not None:
        logger.debug("Skipping directory, summary is up to date", extra={"directory": str(directory)})
        result.success = True
        return result

    try:
        subdirs = read_subdirectories(directory, chain)
        sub_glances = gather_sub_glances(subdirs)
        files = gather_local_files(directory, chain, max_file_bytes)
    except OSError as e:
        result.error = FileSystemError(f"failed to gather inputs for {directory}", code="FS-002", cause=e)
        return result

    logger.debug(
        "Generating summary",
        extra={"directory": str(directory), "subdirs": len(subdirs), "files": len(files)},
    )

    result.attempts = 1
    try:
        summary = await service.generate_glance_markdown(directory, files, sub_glances, token=token)
        write_artifact(directory, summary)
    except OperationCancelledError:
        raise
    except FallbackExhaustedError as e:
        result.attempts = max(e.total_attempts, 1)
        result.error = e
        return result
    except GlanceError as e:
        result.error = e
        return result

    result.success = True
    result.regenerated = True
    return result


async def run(
    config: GlanceConfig,
    service: GlanceService,
    token: Optional[CancelToken] = None,
    progress: Optional[ProgressCallback] = None,
    on_scan_complete: Optional[Callable[[int], None]] = None,
) -> list[DirectoryResult]:
    """Summarise every directory under ``config.target_dir``.

    Raises:
        ScanError: The target directory could not be listed.
        OperationCancelledError: ``token`` fired; directories already written stay written.
    """
    if config.target_dir is None:
        raise ValueError("config.target_dir is required")
    root = Path(config.target_dir)

    scan = list_dirs_with_ignores(root)
    if on_scan_complete is not None:
        on_scan_complete(len(scan))
    logger.debug("Scan complete", extra={"root": str(root), "directories": len(scan)})

    planner = RegenerationPlanner(scan.root, scan.chains, force=config.force)
    results: list[DirectoryResult] = []

    for directory in leaf_first(scan.directories):
        if token is not None:
            token.raise_if_cancelled()

        chain = scan.chain_for(directory)
        force_dir = planner.needs_regeneration(directory)

        result = await process_directory(
            directory,
            chain,
            force_dir,
            service,
            config.max_file_bytes,
            token=token,
        )
        results.append(result)

        if progress is not None:
            progress(result)

        if result.success and result.attempts > 0 and force_dir:
            planner.record_generated(directory)

    return results


def summarize_results(results: Sequence[DirectoryResult]) -> RunSummary:
    failures = [r for r in results if not r.success]
    return RunSummary(
        total=len(results),
        succeeded=len(results) - len(failures),
        failed=len(failures),
        regenerated=sum(1 for r in results if r.regenerated),
        failures=failures,
    )
