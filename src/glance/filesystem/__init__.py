"""Filesystem side of glance: ignore rules, scanning, staleness and artifacts."""

from glance.filesystem.artifacts import (
    artifact_mtime,
    find_artifact,
    read_artifact,
    write_artifact,
)
from glance.filesystem.ignore import (
    IgnoreChain,
    IgnoreRule,
    extend_chain,
    load_ignore_rule,
    matches_ignore_chain,
    should_ignore_dir,
    should_ignore_file,
)
from glance.filesystem.paths import (
    validate_dir_path,
    validate_file_path,
    validate_path_within_base,
)
from glance.filesystem.reader import (
    gather_local_files,
    gather_sub_glances,
    is_text_file,
    read_subdirectories,
    read_text_file,
)
from glance.filesystem.regeneration import (
    RegenerationLedger,
    RegenerationPlanner,
    bubble_up_parents,
    latest_mod_time,
    leaf_first,
    should_regenerate,
)
from glance.filesystem.scanner import ScanResult, list_dirs_with_ignores

__all__ = [
    "IgnoreChain",
    "IgnoreRule",
    "RegenerationLedger",
    "RegenerationPlanner",
    "ScanResult",
    "artifact_mtime",
    "bubble_up_parents",
    "extend_chain",
    "find_artifact",
    "gather_local_files",
    "gather_sub_glances",
    "is_text_file",
    "latest_mod_time",
    "leaf_first",
    "list_dirs_with_ignores",
    "load_ignore_rule",
    "matches_ignore_chain",
    "read_artifact",
    "read_subdirectories",
    "read_text_file",
    "should_ignore_dir",
    "should_ignore_file",
    "should_regenerate",
    "validate_dir_path",
    "validate_file_path",
    "validate_path_within_base",
]
