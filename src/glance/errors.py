"""Error types for glance.

Every error raised by the package derives from GlanceError and carries a
stable ``category`` plus an optional ``code`` and ``suggestion`` so callers
can classify failures without parsing messages:

- FallbackExhaustedError: every generation tier failed
- OperationCancelledError: the caller cancelled (or the deadline passed)
- PromptRenderError: the prompt template could not be rendered
"""

from __future__ import annotations

from typing import Optional


class GlanceError(Exception):
    """Base class for all glance errors."""

    category = "general"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        suggestion: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.suggestion = suggestion
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_code(self, code: str) -> "GlanceError":
        self.code = code
        return self

    def with_suggestion(self, suggestion: str) -> "GlanceError":
        self.suggestion = suggestion
        return self

    def __str__(self) -> str:
        result = f"[{self.code}] " if self.code else ""
        result += self.message
        if self.suggestion:
            result += f" - Suggestion: {self.suggestion}"
        if self.cause is not None:
            result += f": {self.cause}"
        return result


class ConfigurationError(GlanceError):
    """Invalid configuration (missing keys, bad values, bad tier list)."""

    category = "config"


class FileSystemError(GlanceError):
    """Filesystem access or validation failure."""

    category = "filesystem"


class PathOutsideBaseError(FileSystemError):
    """Path resolves outside the permitted base directory."""


class InvalidPathError(FileSystemError):
    """Path cannot be normalised."""


class NotAFileError(FileSystemError):
    """Path exists but is a directory where a file was expected."""


class NotADirectoryPathError(FileSystemError):
    """Path exists but is not a directory."""


class IgnoreFileError(FileSystemError):
    """An ignore file exists but could not be read or parsed."""


class ScanError(FileSystemError):
    """The tree scan could not start (root unreadable)."""


class ProviderError(GlanceError):
    """A single call to a generation provider failed.

    ``permanent`` marks failures that retrying the same tier cannot fix
    (bad credentials, blocked content). The fallback loop moves straight to
    the next tier on those instead of spending the retry budget.
    """

    category = "api"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        suggestion: Optional[str] = None,
        cause: Optional[BaseException] = None,
        permanent: bool = False,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, code=code, suggestion=suggestion, cause=cause)
        self.permanent = permanent
        self.status_code = status_code


class FallbackExhaustedError(GlanceError):
    """Every tier in the fallback chain failed.

    ``attempts`` counts calls on the last tier tried; ``total_attempts`` counts
    calls across all tiers.
    """

    category = "api"

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        tier_name: Optional[str] = None,
        attempts: int = 0,
        code: Optional[str] = None,
        suggestion: Optional[str] = None,
        total_attempts: int = 0,
    ) -> None:
        super().__init__(message, code=code, suggestion=suggestion, cause=cause)
        self.tier_name = tier_name
        self.attempts = attempts
        self.total_attempts = total_attempts or attempts


class OperationCancelledError(GlanceError):
    """The operation was cancelled by the caller or its deadline expired."""

    category = "cancelled"


class PromptRenderError(GlanceError):
    """The prompt template failed to parse or referenced an unknown field."""

    category = "prompt"


def is_permanent_error(error: BaseException) -> bool:
    """True when ``error`` is tagged as not worth retrying on the same tier."""
    return isinstance(error, ProviderError) and error.permanent
