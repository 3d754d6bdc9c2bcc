"""
Google Gemini client for glance.

Talks to the Generative Language REST API with httpx. Each call is a
single HTTP request; retries and failover are handled by FallbackClient.
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Optional

import httpx

from glance.config.defaults import GEMINI_BASE_URL
from glance.errors import ConfigurationError, ProviderError
from glance.llm.client import ClientOptions, LLMClient, StreamChunk

logger = logging.getLogger(__name__)

# Finish reasons that still carry usable text
_OK_FINISH_REASONS = {"STOP", "FINISH_REASON_UNSPECIFIED", "", None}


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
    return response.text[:500]


def _check_status(response: httpx.Response, model: str) -> None:
    status = response.status_code
    if 200 <= status < 300:
        return
    message = _error_message(response)
    if status in (401, 403):
        raise ProviderError(
            f"Gemini rejected the API key for {model}: {message}",
            code="GEM-003",
            suggestion="Check that GEMINI_API_KEY is valid and has access to the model",
            permanent=True,
            status_code=status,
        )
    if status == 429:
        raise ProviderError(
            f"Gemini rate limit exceeded for {model}",
            code="GEM-004",
            suggestion="Wait a moment or configure a fallback model",
            status_code=status,
        )
    raise ProviderError(
        f"Gemini API error {status} for {model}: {message}",
        code="GEM-005",
        status_code=status,
    )


def _extract_text(data: dict[str, Any], model: str) -> str:
    """Pull the first candidate's text out of a generateContent response."""
    feedback = data.get("promptFeedback") or {}
    if feedback.get("blockReason"):
        raise ProviderError(
            f"Gemini blocked the prompt: {feedback['blockReason']}",
            code="GEM-006",
            permanent=True,
        )

    candidates = data.get("candidates") or []
    if not candidates:
        raise ProviderError(f"Empty response from Gemini model {model}", code="GEM-006")

    candidate = candidates[0]
    reason = candidate.get("finishReason")
    if reason == "SAFETY":
        raise ProviderError(
            "Gemini blocked the response for safety reasons",
            code="GEM-006",
            permanent=True,
        )
    if reason not in _OK_FINISH_REASONS and reason != "MAX_TOKENS":
        raise ProviderError(f"Gemini generation stopped: {reason}", code="GEM-006")

    parts = (candidate.get("content") or {}).get("parts") or []
    text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
    if not text:
        raise ProviderError(f"Gemini returned no text (finish reason {reason})", code="GEM-006")
    if reason == "MAX_TOKENS":
        logger.warning("Gemini response truncated at max output tokens", extra={"model": model})
    return text


class GeminiClient(LLMClient):
    """Client for one Gemini model."""

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        options: Optional[ClientOptions] = None,
        base_url: str = GEMINI_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        options = options or ClientOptions()
        if not api_key:
            raise ConfigurationError(
                "Gemini API key is required",
                code="GEM-001",
                suggestion="Set GEMINI_API_KEY in your environment or .env file",
            )
        if not options.model:
            raise ConfigurationError("Gemini model name is required", code="GEM-002")
        self.api_key = api_key
        self.options = options
        self.base_url = base_url.rstrip("/")
        self._transport = transport

    @property
    def model(self) -> str:
        return self.options.model

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.options.timeout, transport=self._transport)

    def _url(self, method: str) -> str:
        return f"{self.base_url}/models/{self.model}:{method}"

    def _params(self, **extra: str) -> dict[str, str]:
        return {"key": self.api_key, **extra}

    def _contents(self, prompt: str) -> list[dict[str, Any]]:
        return [{"role": "user", "parts": [{"text": prompt}]}]

    def build_payload(self, prompt: str) -> dict[str, Any]:
        opts = self.options
        generation_config: dict[str, Any] = {
            "temperature": opts.temperature,
            "topP": opts.top_p,
            "topK": opts.top_k,
            "maxOutputTokens": opts.max_output_tokens,
            "candidateCount": opts.candidate_count,
        }
        if opts.stop_sequences:
            generation_config["stopSequences"] = list(opts.stop_sequences)

        payload: dict[str, Any] = {
            "contents": self._contents(prompt),
            "generationConfig": generation_config,
        }
        if opts.safety_settings:
            payload["safetySettings"] = list(opts.safety_settings)
        if opts.system_instructions:
            payload["systemInstruction"] = {"parts": [{"text": opts.system_instructions}]}
        return payload

    async def _post(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            async with self._http() as client:
                response = await client.post(self._url(method), json=payload, params=self._params())
        except httpx.TimeoutException as e:
            raise ProviderError(f"Gemini request timed out for {self.model}", code="GEM-007", cause=e)
        except httpx.HTTPError as e:
            raise ProviderError(f"Gemini request failed for {self.model}", code="GEM-007", cause=e)

        _check_status(response, self.model)
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError("Gemini returned invalid JSON", code="GEM-005", cause=e)

    async def generate(self, prompt: str) -> str:
        logger.debug("Gemini generate", extra={"model": self.model, "prompt_chars": len(prompt)})
        data = await self._post("generateContent", self.build_payload(prompt))
        return _extract_text(data, self.model)

    async def count_tokens(self, prompt: str) -> int:
        data = await self._post("countTokens", {"contents": self._contents(prompt)})
        try:
            return int(data["totalTokens"])
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError("Gemini countTokens response missing totalTokens", code="GEM-005", cause=e)

    async def generate_stream(self, prompt: str) -> AsyncIterator[StreamChunk]:
        client = self._http()
        try:
            request = client.build_request(
                "POST",
                self._url("streamGenerateContent"),
                json=self.build_payload(prompt),
                params=self._params(alt="sse"),
            )
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            raise ProviderError(f"Gemini stream failed to start for {self.model}", code="GEM-007", cause=e)

        if not 200 <= response.status_code < 300:
            try:
                await response.aread()
                _check_status(response, self.model)
            finally:
                await response.aclose()
                await client.aclose()

        return self._iter_sse(client, response)

    async def _iter_sse(
        self, client: httpx.AsyncClient, response: httpx.Response
    ) -> AsyncIterator[StreamChunk]:
        try:
            async for line in response.aiter_lines():
                if not line.startswith("data:"):
                    continue
                raw = line[len("data:"):].strip()
                if not raw or raw == "[DONE]":
                    continue
                try:
                    event = json.loads(raw)
                except ValueError as e:
                    yield StreamChunk.failure(
                        ProviderError("Gemini stream sent invalid JSON", code="GEM-005", cause=e)
                    )
                    return

                candidates = event.get("candidates") or []
                if candidates and candidates[0].get("finishReason") == "SAFETY":
                    yield StreamChunk.failure(
                        ProviderError(
                            "Gemini blocked the response for safety reasons",
                            code="GEM-006",
                            permanent=True,
                        )
                    )
                    return
                for candidate in candidates[:1]:
                    for part in (candidate.get("content") or {}).get("parts") or []:
                        text = part.get("text") if isinstance(part, dict) else None
                        if text:
                            yield StreamChunk.fragment(text)
            yield StreamChunk.finished()
        except httpx.HTTPError as e:
            yield StreamChunk.failure(
                ProviderError(f"Gemini stream interrupted for {self.model}", code="GEM-007", cause=e)
            )
        finally:
            await response.aclose()
            await client.aclose()
