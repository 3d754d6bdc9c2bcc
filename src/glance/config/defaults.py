"""Default configuration values for glance.

This module centralizes the hard-coded defaults (file names, retry and
backoff settings, size limits, provider models) in a single location.
All modules should import these constants instead of hard-coding values.

Usage:
    from glance.config import (
        GLANCE_FILENAME,
        FALLBACK_BASE_BACKOFF_SECONDS,
    )
"""

from __future__ import annotations

# =============================================================================
# Output Artifacts
# =============================================================================

# Dot prefix hides the file from build-system source scanners that warn on
# unrecognized files in managed source trees.
GLANCE_FILENAME = ".glance.md"

# Name written by older releases. Read for backward compatibility, never written.
LEGACY_GLANCE_FILENAME = "glance.md"

ARTIFACT_FILE_MODE = 0o600


# =============================================================================
# Traversal Defaults
# =============================================================================

IGNORE_FILENAME = ".gitignore"

# Heavy vendor directory skipped before any pattern matching
NODE_MODULES_DIR = "node_modules"

# Per-file read cap for prompt assembly (5 MiB)
MAX_FILE_BYTES = 5 * 1024 * 1024

TRUNCATION_MARKER = "...(truncated)"

# Bytes sniffed when deciding whether a file is text
TEXT_SNIFF_BYTES = 512


# =============================================================================
# Fallback / Retry Defaults
# =============================================================================

RETRIES_PER_TIER = 2
FALLBACK_BASE_BACKOFF_SECONDS = 0.25
FALLBACK_MAX_BACKOFF_SECONDS = 4.0
BACKOFF_JITTER_RATIO = 0.20


# =============================================================================
# Provider Defaults
# =============================================================================

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
GEMINI_DEFAULT_MODEL = "gemini-2.5-flash"
GEMINI_FALLBACK_MODELS = ("gemini-2.0-flash",)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
OPENROUTER_DEFAULT_MODEL = "google/gemini-2.5-flash"
OPENROUTER_BODY_LIMIT = 8 * 1024 * 1024

REQUEST_TIMEOUT_SECONDS = 60.0

DEFAULT_TEMPERATURE = 0.7
DEFAULT_TOP_P = 0.95
DEFAULT_TOP_K = 40
DEFAULT_MAX_OUTPUT_TOKENS = 2048


# =============================================================================
# Prompt Defaults
# =============================================================================

PROMPT_FILENAME = "prompt.txt"

DEFAULT_PROMPT_TEMPLATE = """you are an expert code reviewer and technical writer.
generate a descriptive technical overview of this directory:
- highlight purpose, architecture, and key file roles
- mention important dependencies or gotchas
- do NOT provide recommendations or next steps

directory: {{ directory }}

subdirectory summaries:
{{ sub_glances }}

local file contents:
{{ file_contents }}
"""
