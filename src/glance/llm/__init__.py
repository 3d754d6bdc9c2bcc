"""Text generation for glance.

Provides:
- LLMClient: contract every provider implements
- GeminiClient, OpenRouterClient: concrete providers
- FallbackClient: ordered failover with per-tier retries
- GlanceService: prompt rendering plus generation
"""

from glance.llm.backoff import exponential_backoff
from glance.llm.cancel import CancelToken, run_cancellable, sleep_with_cancel
from glance.llm.client import ClientOptions, LLMClient, StreamChunk, collect_stream, stream_from_generate
from glance.llm.fallback import FallbackClient, FallbackTier
from glance.llm.gemini import GeminiClient
from glance.llm.openrouter import OpenRouterClient
from glance.llm.prompt import (
    PromptData,
    build_prompt_data,
    format_file_contents,
    load_prompt_template,
    render_prompt,
)
from glance.llm.service import GlanceService
from glance.llm.tiers import build_client, build_tiers

__all__ = [
    "CancelToken",
    "ClientOptions",
    "FallbackClient",
    "FallbackTier",
    "GeminiClient",
    "GlanceService",
    "LLMClient",
    "OpenRouterClient",
    "PromptData",
    "StreamChunk",
    "build_client",
    "build_prompt_data",
    "build_tiers",
    "collect_stream",
    "exponential_backoff",
    "format_file_contents",
    "load_prompt_template",
    "render_prompt",
    "run_cancellable",
    "sleep_with_cancel",
    "stream_from_generate",
]
