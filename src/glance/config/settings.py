"""Run configuration for glance.

Settings come from three places, later ones winning:
defaults (glance.config.defaults) -> environment (optionally a .env file)
-> explicit arguments from the CLI.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from glance.config.defaults import (
    DEFAULT_PROMPT_TEMPLATE,
    FALLBACK_BASE_BACKOFF_SECONDS,
    FALLBACK_MAX_BACKOFF_SECONDS,
    GEMINI_DEFAULT_MODEL,
    GEMINI_FALLBACK_MODELS,
    MAX_FILE_BYTES,
    OPENROUTER_DEFAULT_MODEL,
    REQUEST_TIMEOUT_SECONDS,
    RETRIES_PER_TIER,
)
from glance.errors import ConfigurationError

logger = logging.getLogger(__name__)


def _split_models(raw: str) -> tuple[str, ...]:
    return tuple(m.strip() for m in raw.split(",") if m.strip())


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be an integer, got {raw!r}", code="CFG-003", cause=e
        )


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be a number, got {raw!r}", code="CFG-003", cause=e
        )


@dataclass(frozen=True)
class GlanceConfig:
    """Immutable settings for one run."""

    target_dir: Optional[Path] = None
    force: bool = False
    verbose: bool = False
    prompt_template: str = DEFAULT_PROMPT_TEMPLATE

    # Providers
    gemini_api_key: str = field(default="", repr=False)
    model: str = GEMINI_DEFAULT_MODEL
    fallback_models: tuple[str, ...] = GEMINI_FALLBACK_MODELS
    openrouter_api_key: str = field(default="", repr=False)
    openrouter_model: str = OPENROUTER_DEFAULT_MODEL
    timeout: float = REQUEST_TIMEOUT_SECONDS

    # Resilience
    retries_per_tier: int = RETRIES_PER_TIER
    base_backoff: float = FALLBACK_BASE_BACKOFF_SECONDS
    max_backoff: float = FALLBACK_MAX_BACKOFF_SECONDS

    max_file_bytes: int = MAX_FILE_BYTES

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GlanceConfig":
        """Create config from environment variables."""
        env = os.environ if environ is None else environ
        fallback_raw = env.get("GLANCE_FALLBACK_MODELS")
        return cls(
            gemini_api_key=env.get("GEMINI_API_KEY", "").strip(),
            model=env.get("GLANCE_MODEL", "").strip() or GEMINI_DEFAULT_MODEL,
            fallback_models=(
                _split_models(fallback_raw) if fallback_raw is not None else GEMINI_FALLBACK_MODELS
            ),
            openrouter_api_key=env.get("OPENROUTER_API_KEY", "").strip(),
            openrouter_model=env.get("GLANCE_OPENROUTER_MODEL", "").strip() or OPENROUTER_DEFAULT_MODEL,
            timeout=_float_env(env, "GLANCE_TIMEOUT", REQUEST_TIMEOUT_SECONDS),
            retries_per_tier=_int_env(env, "GLANCE_RETRIES_PER_TIER", RETRIES_PER_TIER),
            max_file_bytes=_int_env(env, "GLANCE_MAX_FILE_BYTES", MAX_FILE_BYTES),
        )

    def with_overrides(self, **changes) -> "GlanceConfig":
        return replace(self, **changes)

    def validate(self) -> "GlanceConfig":
        if not self.gemini_api_key and not self.openrouter_api_key:
            raise ConfigurationError(
                "no provider API key configured",
                code="CFG-002",
                suggestion="Set GEMINI_API_KEY or OPENROUTER_API_KEY in your environment or .env file",
            )
        if self.retries_per_tier < 0:
            raise ConfigurationError("retries per tier cannot be negative", code="CFG-004")
        if self.max_file_bytes <= 0:
            raise ConfigurationError("max file bytes must be greater than zero", code="CFG-005")
        return self


def check_directory(path: Path) -> Path:
    """Return the absolute form of ``path`` or raise if it is not a directory."""
    abs_dir = Path(os.path.abspath(os.path.normpath(str(path))))
    try:
        if not abs_dir.is_dir():
            if abs_dir.exists():
                raise ConfigurationError(
                    f"path {str(abs_dir)!r} is a file, not a directory", code="CFG-001"
                )
            raise ConfigurationError(f"cannot access directory {str(abs_dir)!r}", code="CFG-001")
    except OSError as e:
        raise ConfigurationError(
            f"cannot access directory {str(abs_dir)!r}", code="CFG-001", cause=e
        )
    return abs_dir


def load_config(
    target_dir: str | Path,
    force: bool = False,
    verbose: bool = False,
    prompt_file: Optional[str] = None,
    env_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> GlanceConfig:
    """Build a validated GlanceConfig for a run over ``target_dir``."""
    from glance.llm.prompt import load_prompt_template

    abs_dir = check_directory(Path(target_dir))

    if environ is None:
        if not load_dotenv(env_file):
            logger.info("No .env file found; using system environment variables")

    template = load_prompt_template(prompt_file)

    config = GlanceConfig.from_env(environ).with_overrides(
        target_dir=abs_dir,
        force=force,
        verbose=verbose,
        prompt_template=template,
    )
    return config.validate()
