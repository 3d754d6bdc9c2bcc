"""Tests for GlanceService."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from glance.errors import FallbackExhaustedError, OperationCancelledError, PromptRenderError, ProviderError
from glance.llm.cancel import CancelToken
from glance.llm.client import LLMClient
from glance.llm.fallback import FallbackClient, FallbackTier
from glance.llm.service import GlanceService


@pytest.fixture
def mock_client():
    client = MagicMock(spec=LLMClient)
    client.generate = AsyncMock(return_value="# Overview")
    client.count_tokens = AsyncMock(return_value=12)
    client.close = AsyncMock()
    return client


def test_requires_client():
    with pytest.raises(ValueError):
        GlanceService(None)


@pytest.mark.asyncio
async def test_generates_from_rendered_prompt(mock_client):
    service = GlanceService(mock_client, "dir={{ directory }}\n{{ file_contents }}{{ sub_glances }}")

    result = await service.generate_glance_markdown("/repo", {"b.py": "B", "a.py": "A"}, "SUB")

    assert result == "# Overview"
    prompt = mock_client.generate.await_args.args[0]
    assert prompt == "dir=/repo\n=== file: a.py ===\nA\n\n=== file: b.py ===\nB\n\nSUB"
    mock_client.count_tokens.assert_awaited_once_with(prompt)


@pytest.mark.asyncio
async def test_token_count_failure_is_ignored(mock_client):
    mock_client.count_tokens.side_effect = ProviderError("unsupported")
    service = GlanceService(mock_client)

    assert await service.generate_glance_markdown("/repo", {}, "") == "# Overview"


@pytest.mark.asyncio
async def test_render_failure_raises_before_generation(mock_client):
    service = GlanceService(mock_client, "{{ unknown_field }}")

    with pytest.raises(PromptRenderError):
        await service.generate_glance_markdown("/repo", {}, "")
    mock_client.generate.assert_not_awaited()


@pytest.mark.asyncio
async def test_generation_error_propagates(mock_client):
    mock_client.generate.side_effect = FallbackExhaustedError("all failed")
    service = GlanceService(mock_client)

    with pytest.raises(FallbackExhaustedError):
        await service.generate_glance_markdown("/repo", {}, "")


@pytest.mark.asyncio
async def test_cancelled_token_stops_generation(mock_client):
    token = CancelToken()
    token.cancel()
    service = GlanceService(mock_client)

    with pytest.raises(OperationCancelledError):
        await service.generate_glance_markdown("/repo", {}, "", token=token)
    mock_client.generate.assert_not_awaited()


@pytest.mark.asyncio
async def test_token_forwarded_to_fallback_client(mock_client):
    fallback = FallbackClient([FallbackTier("only", mock_client)], retries_per_tier=0)
    fallback.generate = AsyncMock(return_value="ok")
    fallback.count_tokens = AsyncMock(return_value=1)
    token = CancelToken()

    service = GlanceService(fallback)
    assert await service.generate_glance_markdown("/repo", {}, "", token=token) == "ok"

    assert fallback.generate.await_args.kwargs["token"] is token


@pytest.mark.asyncio
async def test_close_closes_client(mock_client):
    await GlanceService(mock_client).close()
    mock_client.close.assert_awaited_once()
