"""Claude API completion backend."""

from __future__ import annotations

import logging
from typing import Any

from ..errors import ConfigurationError, MalformedResponse, classify_api_error
from . import CompletionBackend

logger = logging.getLogger(__name__)


class ClaudeBackend(CompletionBackend):
    """Analyze ingredient text with Claude."""

    name = "claude"

    def __init__(
        self, api_key: str = "", model: str = "claude-sonnet-4-5-20250929"
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._client: Any = None

    async def connect(self) -> None:
        if self._client is not None:
            return
        if not self._api_key:
            raise ConfigurationError(
                "Anthropic API key not found. "
                "Set it in the config file or the ANTHROPIC_API_KEY environment variable."
            )

        try:
            import anthropic
        except ImportError:
            raise ConfigurationError(
                "anthropic SDK is required: pip install anthropic"
            ) from None

        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        logger.info("Claude AI service initialized (%s)", self._model)

    async def complete(self, prompt: str) -> str:
        await self.connect()
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=2048,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as e:
            raise classify_api_error(e) from e

        text = "".join(
            getattr(block, "text", "") or "" for block in response.content
        )
        if not text.strip():
            raise MalformedResponse("Claude returned an empty response")
        return text
