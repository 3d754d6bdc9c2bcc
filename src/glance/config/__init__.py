"""Configuration for glance."""

from glance.config.defaults import (
    ARTIFACT_FILE_MODE,
    BACKOFF_JITTER_RATIO,
    DEFAULT_PROMPT_TEMPLATE,
    FALLBACK_BASE_BACKOFF_SECONDS,
    FALLBACK_MAX_BACKOFF_SECONDS,
    GLANCE_FILENAME,
    IGNORE_FILENAME,
    LEGACY_GLANCE_FILENAME,
    MAX_FILE_BYTES,
    NODE_MODULES_DIR,
    RETRIES_PER_TIER,
)
from glance.config.settings import GlanceConfig, check_directory, load_config

__all__ = [
    "ARTIFACT_FILE_MODE",
    "BACKOFF_JITTER_RATIO",
    "DEFAULT_PROMPT_TEMPLATE",
    "FALLBACK_BASE_BACKOFF_SECONDS",
    "FALLBACK_MAX_BACKOFF_SECONDS",
    "GLANCE_FILENAME",
    "IGNORE_FILENAME",
    "LEGACY_GLANCE_FILENAME",
    "MAX_FILE_BYTES",
    "NODE_MODULES_DIR",
    "RETRIES_PER_TIER",
    "GlanceConfig",
    "check_directory",
    "load_config",
]
