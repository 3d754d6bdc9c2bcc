"""Contract shared by every text-generation provider."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Optional

from glance.config.defaults import (
    DEFAULT_MAX_OUTPUT_TOKENS,
    DEFAULT_TEMPERATURE,
    DEFAULT_TOP_K,
    DEFAULT_TOP_P,
    REQUEST_TIMEOUT_SECONDS,
)


@dataclass
class ClientOptions:
    """Model and sampling options for one provider client."""

    model: str = ""
    timeout: float = REQUEST_TIMEOUT_SECONDS
    temperature: float = DEFAULT_TEMPERATURE
    top_p: float = DEFAULT_TOP_P
    top_k: int = DEFAULT_TOP_K
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    candidate_count: int = 1
    stop_sequences: list[str] = field(default_factory=list)
    safety_settings: list[dict[str, Any]] = field(default_factory=list)
    system_instructions: str = ""


@dataclass(frozen=True)
class StreamChunk:
    """One item of a streamed response: a text fragment, an error, or the end marker."""

    text: str = ""
    error: Optional[BaseException] = None
    done: bool = False

    def __post_init__(self) -> None:
        if sum((bool(self.text), self.error is not None, self.done)) > 1:
            raise ValueError("a stream chunk carries text, an error, or the end marker, not several")

    @classmethod
    def fragment(cls, text: str) -> "StreamChunk":
        return cls(text=text)

    @classmethod
    def failure(cls, error: BaseException) -> "StreamChunk":
        return cls(error=error)

    @classmethod
    def finished(cls) -> "StreamChunk":
        return cls(done=True)

    @property
    def terminal(self) -> bool:
        """Consumers stop reading after a terminal chunk."""
        return self.done or self.error is not None


class LLMClient(ABC):
    """A single provider/model. One request per call; retry policy lives above."""

    name: str = "llm"

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Return the generated text for ``prompt``."""

    @abstractmethod
    async def count_tokens(self, prompt: str) -> int:
        """Best-effort token count for ``prompt``."""

    @abstractmethod
    async def generate_stream(self, prompt: str) -> AsyncIterator[StreamChunk]:
        """Start a streamed generation.

        Raises if the stream cannot be started. Once started, failures arrive
        as a terminal error chunk.
        """

    async def close(self) -> None:
        """Release any resources held by the client."""

    async def __aenter__(self) -> "LLMClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


async def stream_from_generate(client: LLMClient, prompt: str) -> AsyncIterator[StreamChunk]:
    """Adapt a non-streaming client: run ``generate`` and deliver one fragment then done.

    Raises:
        Whatever ``client.generate`` raises, before any chunk is produced.
    """
    text = await client.generate(prompt)

    async def _chunks() -> AsyncIterator[StreamChunk]:
        yield StreamChunk.fragment(text)
        yield StreamChunk.finished()

    return _chunks()


async def collect_stream(stream: AsyncIterator[StreamChunk]) -> str:
    """Concatenate a stream's fragments, raising its terminal error if any."""
    parts = []
    async for chunk in stream:
        if chunk.error is not None:
            raise chunk.error
        if chunk.text:
            parts.append(chunk.text)
        if chunk.done:
            break
    return "".join(parts)
