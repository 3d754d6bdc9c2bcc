"""High-level summary generation: template in, markdown out."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Optional, Union

from glance.config.defaults import DEFAULT_PROMPT_TEMPLATE
from glance.errors import OperationCancelledError, PromptRenderError
from glance.llm.cancel import CancelToken, run_cancellable
from glance.llm.client import LLMClient
from glance.llm.fallback import FallbackClient
from glance.llm.prompt import build_prompt_data, render_prompt

logger = logging.getLogger(__name__)


class GlanceService:
    """Renders the prompt for a directory and asks the client for a summary."""

    def __init__(
        self,
        client: LLMClient,
        prompt_template: str = DEFAULT_PROMPT_TEMPLATE,
        model_name: str = "",
    ):
        if client is None:
            raise ValueError("client cannot be None")
        self.client = client
        self.prompt_template = prompt_template or DEFAULT_PROMPT_TEMPLATE
        self.model_name = model_name

    async def _count_tokens(self, prompt: str, token: Optional[CancelToken]) -> int:
        if isinstance(self.client, FallbackClient):
            return await self.client.count_tokens(prompt, token=token)
        return await run_cancellable(self.client.count_tokens(prompt), token)

    async def _generate(self, prompt: str, token: Optional[CancelToken]) -> str:
        if isinstance(self.client, FallbackClient):
            return await self.client.generate(prompt, token=token)
        return await run_cancellable(self.client.generate(prompt), token)

    async def generate_glance_markdown(
        self,
        directory: Union[str, Path],
        files: Mapping[str, str],
        sub_glances: str,
        token: Optional[CancelToken] = None,
    ) -> str:
        """
        Generate the markdown summary for ``directory``.

        Args:
            directory: Directory being summarised
            files: File name to contents for the directory's own files
            sub_glances: Concatenated summaries of its subdirectories
            token: Cancellation token for the generation call

        Returns:
            Generated markdown text

        Raises:
            PromptRenderError: Template could not be rendered
            FallbackExhaustedError: Every provider tier failed
            OperationCancelledError: ``token`` fired
        """
        data = build_prompt_data(str(directory), sub_glances, files)
        logger.debug(
            "Generating prompt from template",
            extra={"directory": str(directory), "model": self.model_name, "file_count": len(files)},
        )

        try:
            prompt = render_prompt(data, self.prompt_template)
        except PromptRenderError as e:
            logger.error(
                "Failed to generate prompt from template",
                extra={"directory": str(directory), "error": str(e)},
            )
            raise

        try:
            tokens = await self._count_tokens(prompt, token)
            logger.debug("Token count for prompt", extra={"directory": str(directory), "token_count": tokens})
        except OperationCancelledError:
            raise
        except Exception as e:
            logger.debug("Failed to count tokens", extra={"directory": str(directory), "error": str(e)})

        result = await self._generate(prompt, token)
        logger.debug(
            "Content generation successful",
            extra={"directory": str(directory), "model": self.model_name, "chars": len(result)},
        )
        return result

    async def close(self) -> None:
        await self.client.close()
