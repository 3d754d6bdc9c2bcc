"""Multi-tier failover with per-tier retries.

Tiers are tried strictly in order. Each tier gets ``retries_per_tier + 1``
attempts separated by jittered exponential backoff; when a tier is spent
(or fails permanently) the next tier takes over. Cancellation wins over
both retry and failover.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Sequence

from glance.config.defaults import (
    FALLBACK_BASE_BACKOFF_SECONDS,
    FALLBACK_MAX_BACKOFF_SECONDS,
)
from glance.errors import (
    ConfigurationError,
    FallbackExhaustedError,
    OperationCancelledError,
    is_permanent_error,
)
from glance.llm.backoff import exponential_backoff
from glance.llm.cancel import CancelToken, run_cancellable, sleep_with_cancel
from glance.llm.client import LLMClient, StreamChunk

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FallbackTier:
    """One provider/model in the failover chain."""

    name: str
    client: LLMClient


class FallbackClient(LLMClient):
    """LLMClient that walks a fixed list of tiers."""

    name = "fallback"

    def __init__(
        self,
        tiers: Sequence[FallbackTier],
        retries_per_tier: int,
        base_backoff: float = FALLBACK_BASE_BACKOFF_SECONDS,
        max_backoff: float = FALLBACK_MAX_BACKOFF_SECONDS,
    ):
        if not tiers:
            raise ConfigurationError("at least one fallback tier is required", code="LLM-001")
        if retries_per_tier < 0:
            raise ConfigurationError("retries per tier cannot be negative", code="LLM-002")
        if base_backoff <= 0:
            raise ConfigurationError("base backoff must be greater than zero", code="LLM-003")
        if max_backoff <= 0:
            raise ConfigurationError("max backoff must be greater than zero", code="LLM-004")

        clean = []
        for i, tier in enumerate(tiers):
            if tier.client is None:
                raise ConfigurationError(f"fallback tier {i} has no client", code="LLM-005")
            name = (tier.name or "").strip() or f"tier-{i + 1}"
            clean.append(FallbackTier(name=name, client=tier.client))

        self.tiers: tuple[FallbackTier, ...] = tuple(clean)
        self.retries_per_tier = retries_per_tier
        self.base_backoff = base_backoff
        self.max_backoff = max_backoff

    def retry_backoff(self, attempt: int) -> float:
        return exponential_backoff(attempt, self.base_backoff, self.max_backoff)

    async def generate(self, prompt: str, token: Optional[CancelToken] = None) -> str:
        """Generate text, retrying each tier and failing over in order.

        Raises:
            OperationCancelledError: ``token`` fired before a tier succeeded.
            FallbackExhaustedError: Every tier failed; wraps the last error.
        """
        max_attempts = self.retries_per_tier + 1
        tier_count = len(self.tiers)
        last_error: Optional[BaseException] = None
        last_tier: Optional[str] = None
        last_attempts = 0
        total_attempts = 0

        for tier_idx, tier in enumerate(self.tiers):
            for attempt in range(1, max_attempts + 1):
                if token is not None:
                    token.raise_if_cancelled()

                total_attempts += 1
                try:
                    result = await run_cancellable(tier.client.generate(prompt), token)
                except OperationCancelledError:
                    raise
                except Exception as e:
                    last_error = e
                    last_tier = tier.name
                    last_attempts = attempt
                    permanent = is_permanent_error(e)
                    fields = {
                        "tier_name": tier.name,
                        "tier_index": tier_idx + 1,
                        "tier_count": tier_count,
                        "attempt": attempt,
                        "attempts_tier": max_attempts,
                        "error": str(e),
                        "permanent": permanent,
                    }

                    if permanent:
                        logger.warning("LLM tier failed permanently, skipping to next tier", extra=fields)
                        break

                    if attempt < max_attempts:
                        wait = self.retry_backoff(attempt)
                        fields["backoff_ms"] = int(wait * 1000)
                        logger.warning("LLM tier attempt failed, retrying tier", extra=fields)
                        await sleep_with_cancel(wait, token)
                        continue

                    fields["will_failover"] = tier_idx < tier_count - 1
                    logger.warning("LLM tier exhausted, trying fallback tier", extra=fields)
                    continue

                if tier_idx > 0 or attempt > 1:
                    logger.info(
                        "LLM generation succeeded after retry/failover",
                        extra={
                            "tier_name": tier.name,
                            "tier_index": tier_idx + 1,
                            "attempt": attempt,
                            "failover_used": tier_idx > 0,
                        },
                    )
                return result

        raise FallbackExhaustedError(
            "all LLM fallback tiers failed",
            cause=last_error,
            tier_name=last_tier,
            attempts=last_attempts,
            total_attempts=total_attempts,
            code="LLM-006",
            suggestion="Check provider connectivity, API keys, or reduce prompt size",
        )

    async def count_tokens(self, prompt: str, token: Optional[CancelToken] = None) -> int:
        last_error: Optional[BaseException] = None
        for tier in self.tiers:
            try:
                return await run_cancellable(tier.client.count_tokens(prompt), token)
            except OperationCancelledError:
                raise
            except Exception as e:
                last_error = e
                logger.debug("Token count failed on tier", extra={"tier_name": tier.name, "error": str(e)})

        raise FallbackExhaustedError(
            "failed to count tokens across fallback tiers", cause=last_error, code="LLM-007"
        )

    async def generate_stream(
        self, prompt: str, token: Optional[CancelToken] = None
    ) -> AsyncIterator[StreamChunk]:
        last_error: Optional[BaseException] = None
        for tier in self.tiers:
            try:
                return await run_cancellable(tier.client.generate_stream(prompt), token)
            except OperationCancelledError:
                raise
            except Exception as e:
                last_error = e
                logger.debug("Stream failed to start on tier", extra={"tier_name": tier.name, "error": str(e)})

        raise FallbackExhaustedError(
            "failed to start streaming across fallback tiers", cause=last_error, code="LLM-008"
        )

    async def close(self) -> None:
        for tier in self.tiers:
            try:
                await tier.client.close()
            except Exception as e:
                logger.warning("Failed to close tier client", extra={"tier_name": tier.name, "error": str(e)})
