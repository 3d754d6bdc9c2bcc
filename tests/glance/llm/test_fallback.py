"""Tests for the multi-tier FallbackClient."""

import asyncio

import pytest
from unittest.mock import AsyncMock, patch

from glance.errors import (
    ConfigurationError,
    FallbackExhaustedError,
    OperationCancelledError,
    ProviderError,
)
from glance.llm.cancel import CancelToken
from glance.llm.client import LLMClient, StreamChunk, collect_stream, stream_from_generate
from glance.llm.fallback import FallbackClient, FallbackTier


class ScriptedClient(LLMClient):
    """Client whose generate() replays a list of outcomes (exception or text)."""

    def __init__(self, outcomes, name="scripted", on_call=None):
        self.outcomes = list(outcomes)
        self.name = name
        self.calls = 0
        self.closed = False
        self.on_call = on_call

    async def generate(self, prompt):
        self.calls += 1
        if self.on_call:
            self.on_call(self.calls)
        outcome = self.outcomes[min(self.calls, len(self.outcomes)) - 1]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def count_tokens(self, prompt):
        return len(prompt.split())

    async def generate_stream(self, prompt):
        return await stream_from_generate(self, prompt)

    async def close(self):
        self.closed = True


def _fallback(*clients, retries=1, base=0.001, cap=0.01):
    tiers = [FallbackTier(name=c.name, client=c) for c in clients]
    return FallbackClient(tiers, retries_per_tier=retries, base_backoff=base, max_backoff=cap)


class TestValidation:
    """Constructor validation."""

    def test_requires_tiers(self):
        with pytest.raises(ConfigurationError) as exc_info:
            FallbackClient([], retries_per_tier=1)
        assert exc_info.value.code == "LLM-001"

    def test_negative_retries(self):
        with pytest.raises(ConfigurationError) as exc_info:
            _fallback(ScriptedClient(["ok"]), retries=-1)
        assert exc_info.value.code == "LLM-002"

    def test_non_positive_backoff(self):
        with pytest.raises(ConfigurationError) as exc_info:
            _fallback(ScriptedClient(["ok"]), base=0)
        assert exc_info.value.code == "LLM-003"
        with pytest.raises(ConfigurationError) as exc_info:
            _fallback(ScriptedClient(["ok"]), cap=0)
        assert exc_info.value.code == "LLM-004"

    def test_missing_client(self):
        with pytest.raises(ConfigurationError) as exc_info:
            FallbackClient([FallbackTier(name="x", client=None)], retries_per_tier=0)
        assert exc_info.value.code == "LLM-005"

    def test_blank_names_get_position(self):
        client = FallbackClient(
            [FallbackTier(name="  ", client=ScriptedClient(["ok"])),
             FallbackTier(name="named", client=ScriptedClient(["ok"]))],
            retries_per_tier=0,
        )
        assert [t.name for t in client.tiers] == ["tier-1", "named"]

    def test_defaults(self):
        client = FallbackClient([FallbackTier("a", ScriptedClient(["ok"]))], retries_per_tier=2)
        assert client.base_backoff == 0.25
        assert client.max_backoff == 4.0


class TestGenerate:
    """Retry, failover and cancellation."""

    @pytest.mark.asyncio
    async def test_first_tier_success(self):
        a = ScriptedClient(["from a"], name="a")
        b = ScriptedClient(["from b"], name="b")

        assert await _fallback(a, b).generate("p") == "from a"
        assert (a.calls, b.calls) == (1, 0)

    @pytest.mark.asyncio
    async def test_failover_after_tier_exhausted(self):
        a = ScriptedClient([RuntimeError("down")], name="a")
        b = ScriptedClient(["from b"], name="b")

        result = await _fallback(a, b, retries=1).generate("p")

        assert result == "from b"
        assert a.calls == 2
        assert b.calls == 1

    @pytest.mark.asyncio
    async def test_retry_within_tier_recovers(self):
        a = ScriptedClient([RuntimeError("blip"), "recovered"], name="a")

        assert await _fallback(a, retries=2).generate("p") == "recovered"
        assert a.calls == 2

    @pytest.mark.asyncio
    async def test_exhaustion_wraps_last_error(self):
        last = RuntimeError("b failed")
        a = ScriptedClient([RuntimeError("a failed")], name="a")
        b = ScriptedClient([last], name="b")

        with pytest.raises(FallbackExhaustedError) as exc_info:
            await _fallback(a, b, retries=2).generate("p")

        err = exc_info.value
        assert err.code == "LLM-006"
        assert err.cause is last
        assert err.__cause__ is last
        assert err.tier_name == "b"
        assert err.attempts == 3
        assert err.total_attempts == 6
        assert a.calls == 3 and b.calls == 3

    @pytest.mark.asyncio
    async def test_zero_retries_means_single_attempt_per_tier(self):
        a = ScriptedClient([RuntimeError("x")], name="a")
        b = ScriptedClient([RuntimeError("y")], name="b")

        with pytest.raises(FallbackExhaustedError):
            await _fallback(a, b, retries=0).generate("p")
        assert (a.calls, b.calls) == (1, 1)

    @pytest.mark.asyncio
    async def test_backoff_slept_between_attempts_only(self):
        a = ScriptedClient([RuntimeError("x")], name="a")
        client = _fallback(a, retries=2)

        with patch("glance.llm.fallback.sleep_with_cancel", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(FallbackExhaustedError):
                await client.generate("p")

        assert mock_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_permanent_error_skips_rest_of_tier(self):
        a = ScriptedClient([ProviderError("bad key", permanent=True)], name="a")
        b = ScriptedClient(["from b"], name="b")

        assert await _fallback(a, b, retries=3).generate("p") == "from b"
        assert a.calls == 1

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self):
        a = ScriptedClient(["ok"], name="a")
        token = CancelToken()
        token.cancel()

        with pytest.raises(OperationCancelledError):
            await _fallback(a).generate("p", token=token)
        assert a.calls == 0

    @pytest.mark.asyncio
    async def test_cancel_during_second_backoff(self):
        token = CancelToken()

        def on_call(n):
            if n == 2:
                asyncio.get_running_loop().call_later(0.01, token.cancel)

        a = ScriptedClient([RuntimeError("down")], name="a", on_call=on_call)
        client = _fallback(a, retries=2, base=0.1, cap=10.0)

        with pytest.raises(OperationCancelledError):
            await client.generate("p", token=token)

        assert a.calls == 2

    @pytest.mark.asyncio
    async def test_cancellation_is_not_exhaustion(self):
        token = CancelToken()
        a = ScriptedClient([RuntimeError("down")], name="a", on_call=lambda n: token.cancel())

        with pytest.raises(OperationCancelledError) as exc_info:
            await _fallback(a, retries=5).generate("p", token=token)
        assert not isinstance(exc_info.value, FallbackExhaustedError)

    @pytest.mark.asyncio
    async def test_slow_call_interrupted_by_cancel(self):
        token = CancelToken()

        class Slow(ScriptedClient):
            async def generate(self, prompt):
                self.calls += 1
                await asyncio.sleep(5)
                return "late"

        slow = Slow([], name="slow")
        asyncio.get_running_loop().call_later(0.02, token.cancel)

        with pytest.raises(OperationCancelledError):
            await _fallback(slow).generate("p", token=token)
        assert slow.calls == 1


class TestSecondaryOperations:
    """count_tokens, generate_stream and close."""

    @pytest.mark.asyncio
    async def test_count_tokens_first_success(self):
        a = ScriptedClient(["x"], name="a")
        a.count_tokens = AsyncMock(side_effect=ProviderError("unsupported"))
        b = ScriptedClient(["x"], name="b")

        assert await _fallback(a, b).count_tokens("one two three") == 3
        a.count_tokens.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_count_tokens_all_fail(self):
        a = ScriptedClient(["x"], name="a")
        a.count_tokens = AsyncMock(side_effect=ProviderError("nope"))

        with pytest.raises(FallbackExhaustedError) as exc_info:
            await _fallback(a).count_tokens("p")
        assert exc_info.value.code == "LLM-007"

    @pytest.mark.asyncio
    async def test_stream_single_pass_no_retry(self):
        a = ScriptedClient([RuntimeError("down")], name="a")
        b = ScriptedClient(["streamed"], name="b")

        stream = await _fallback(a, b, retries=3).generate_stream("p")
        chunks = [c async for c in stream]

        assert a.calls == 1
        assert chunks == [StreamChunk.fragment("streamed"), StreamChunk.finished()]
        assert sum(1 for c in chunks if c.done) == 1

    @pytest.mark.asyncio
    async def test_stream_all_fail(self):
        a = ScriptedClient([RuntimeError("down")], name="a")

        with pytest.raises(FallbackExhaustedError) as exc_info:
            await _fallback(a).generate_stream("p")
        assert exc_info.value.code == "LLM-008"

    @pytest.mark.asyncio
    async def test_collect_stream(self):
        a = ScriptedClient(["hello"], name="a")
        stream = await _fallback(a).generate_stream("p")
        assert await collect_stream(stream) == "hello"

    @pytest.mark.asyncio
    async def test_close_reaches_every_tier_even_after_failure(self):
        a = ScriptedClient(["x"], name="a")
        a.close = AsyncMock(side_effect=RuntimeError("close failed"))
        b = ScriptedClient(["x"], name="b")

        await _fallback(a, b).close()

        a.close.assert_awaited_once()
        assert b.closed
