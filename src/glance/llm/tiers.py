"""Build the provider failover chain from configuration."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from glance.config.settings import GlanceConfig
from glance.errors import ConfigurationError
from glance.llm.client import ClientOptions
from glance.llm.fallback import FallbackClient, FallbackTier
from glance.llm.gemini import GeminiClient
from glance.llm.openrouter import OpenRouterClient

logger = logging.getLogger(__name__)


def build_tiers(
    config: GlanceConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[FallbackTier]:
    """Primary Gemini model, then Gemini fallback models, then OpenRouter.

    Providers without an API key are left out.
    """
    tiers: list[FallbackTier] = []

    if config.gemini_api_key:
        models = [config.model]
        models += [m for m in config.fallback_models if m and m not in models]
        for model in models:
            client = GeminiClient(
                config.gemini_api_key,
                ClientOptions(model=model, timeout=config.timeout),
                transport=transport,
            )
            tiers.append(FallbackTier(name=f"gemini:{model}", client=client))

    if config.openrouter_api_key:
        client = OpenRouterClient(
            config.openrouter_api_key,
            ClientOptions(model=config.openrouter_model, timeout=config.timeout),
            transport=transport,
        )
        tiers.append(FallbackTier(name=f"openrouter:{config.openrouter_model}", client=client))

    if not tiers:
        raise ConfigurationError(
            "no generation provider configured",
            code="CFG-002",
            suggestion="Set GEMINI_API_KEY or OPENROUTER_API_KEY",
        )

    logger.debug("Configured generation tiers", extra={"tiers": [t.name for t in tiers]})
    return tiers


def build_client(
    config: GlanceConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FallbackClient:
    return FallbackClient(
        build_tiers(config, transport=transport),
        retries_per_tier=config.retries_per_tier,
        base_backoff=config.base_backoff,
        max_backoff=config.max_backoff,
    )
