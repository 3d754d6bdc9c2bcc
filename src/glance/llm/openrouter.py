"""
OpenRouter client for glance.

Uses OpenRouter's OpenAI-compatible chat completions endpoint. Token
counting is not available and streaming is emulated with one chunk.
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Optional

import httpx

from glance.config.defaults import OPENROUTER_BASE_URL, OPENROUTER_BODY_LIMIT
from glance.errors import ConfigurationError, ProviderError
from glance.llm.client import ClientOptions, LLMClient, StreamChunk, stream_from_generate

logger = logging.getLogger(__name__)


def extract_content(raw: Any) -> str:
    """Message content is either a plain string or a list of typed parts."""
    if isinstance(raw, str):
        return raw
    if isinstance(raw, list):
        return "".join(
            part.get("text", "") for part in raw if isinstance(part, dict) and part.get("text")
        )
    return ""


def _parse_body(body: bytes) -> dict[str, Any]:
    if not body:
        return {}
    try:
        parsed = json.loads(body)
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _error_message(parsed: dict[str, Any]) -> str:
    err = parsed.get("error")
    if isinstance(err, dict):
        return str(err.get("message") or "").strip()
    return ""


class OpenRouterClient(LLMClient):
    """Client for one model routed through OpenRouter."""

    name = "openrouter"

    def __init__(
        self,
        api_key: str,
        options: Optional[ClientOptions] = None,
        base_url: str = OPENROUTER_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        options = options or ClientOptions()
        if not api_key or not api_key.strip():
            raise ConfigurationError(
                "OpenRouter API key is required",
                code="OPENROUTER-001",
                suggestion="Set OPENROUTER_API_KEY in your environment",
            )
        if not options.model or not options.model.strip():
            raise ConfigurationError("OpenRouter model name is required", code="OPENROUTER-002")
        self.api_key = api_key
        self.options = options
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    @property
    def model(self) -> str:
        return self.options.model

    def build_messages(self, prompt: str) -> list[dict[str, str]]:
        messages = []
        if self.options.system_instructions.strip():
            messages.append({"role": "system", "content": self.options.system_instructions})
        messages.append({"role": "user", "content": prompt})
        return messages

    def build_payload(self, prompt: str) -> dict[str, Any]:
        opts = self.options
        payload: dict[str, Any] = {"model": self.model, "messages": self.build_messages(prompt)}
        if opts.max_output_tokens > 0:
            payload["max_tokens"] = opts.max_output_tokens
        if opts.temperature > 0:
            payload["temperature"] = opts.temperature
        if opts.top_p > 0:
            payload["top_p"] = opts.top_p
        if opts.top_k > 0:
            payload["top_k"] = opts.top_k
        if opts.stop_sequences:
            payload["stop"] = list(opts.stop_sequences)
        return payload

    async def generate(self, prompt: str) -> str:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        logger.debug("OpenRouter generate", extra={"model": self.model, "prompt_chars": len(prompt)})

        try:
            async with httpx.AsyncClient(timeout=self.options.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=self.build_payload(prompt),
                    headers=headers,
                )
        except httpx.HTTPError as e:
            raise ProviderError("OpenRouter request failed", code="OPENROUTER-007", cause=e)

        body = response.content[:OPENROUTER_BODY_LIMIT]
        parsed = _parse_body(body)

        status = response.status_code
        if not 200 <= status < 300:
            msg = _error_message(parsed) or body.decode("utf-8", errors="replace").strip()
            msg = msg or "request failed with non-success status"
            error = ProviderError(
                f"OpenRouter returned status {status}: {msg}",
                code="OPENROUTER-009",
                status_code=status,
                permanent=status in (401, 403),
            )
            if status == 429:
                error.with_suggestion("Rate limited by provider. Retry after backoff")
            raise error

        message = _error_message(parsed)
        if message:
            raise ProviderError(message, code="OPENROUTER-010")

        choices = parsed.get("choices") or []
        if not choices:
            raise ProviderError("OpenRouter response had no choices", code="OPENROUTER-011")

        content = extract_content((choices[0].get("message") or {}).get("content"))
        if not content.strip():
            raise ProviderError("OpenRouter response content was empty", code="OPENROUTER-012")
        return content

    async def count_tokens(self, prompt: str) -> int:
        raise ProviderError(
            "token counting is not supported for OpenRouter client",
            code="OPENROUTER-013",
            permanent=True,
        )

    async def generate_stream(self, prompt: str) -> AsyncIterator[StreamChunk]:
        return await stream_from_generate(self, prompt)
