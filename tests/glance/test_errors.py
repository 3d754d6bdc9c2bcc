"""Tests for the error hierarchy."""

from glance.errors import (
    ConfigurationError,
    FallbackExhaustedError,
    FileSystemError,
    GlanceError,
    IgnoreFileError,
    OperationCancelledError,
    PathOutsideBaseError,
    PromptRenderError,
    ProviderError,
    ScanError,
    is_permanent_error,
)


def test_str_includes_code_suggestion_and_cause():
    cause = ValueError("root cause")
    err = GlanceError("it broke", code="X-001", suggestion="try again", cause=cause)

    assert str(err) == "[X-001] it broke - Suggestion: try again: root cause"
    assert err.__cause__ is cause


def test_plain_message():
    assert str(GlanceError("simple")) == "simple"


def test_fluent_setters():
    err = ConfigurationError("bad").with_code("CFG-9").with_suggestion("fix it")
    assert err.code == "CFG-9"
    assert err.suggestion == "fix it"


def test_categories_distinguish_outcomes():
    assert FallbackExhaustedError("x").category == "api"
    assert OperationCancelledError("x").category == "cancelled"
    assert PromptRenderError("x").category == "prompt"
    assert ConfigurationError("x").category == "config"


def test_filesystem_family():
    for cls in (PathOutsideBaseError, IgnoreFileError, ScanError):
        assert issubclass(cls, FileSystemError)
        assert cls("x").category == "filesystem"


def test_exhaustion_metadata():
    err = FallbackExhaustedError("all failed", cause=RuntimeError("last"), tier_name="b", attempts=3)
    assert err.tier_name == "b"
    assert err.attempts == 3


def test_permanent_classification():
    assert is_permanent_error(ProviderError("auth", permanent=True))
    assert not is_permanent_error(ProviderError("rate limited", status_code=429))
    assert not is_permanent_error(RuntimeError("untagged"))
