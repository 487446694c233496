"""Gemini API completion backend."""

from __future__ import annotations

import logging
from typing import Any

from ..errors import ConfigurationError, MalformedResponse, classify_api_error
from . import CompletionBackend

logger = logging.getLogger(__name__)


class GeminiBackend(CompletionBackend):
    """Analyze ingredient text with Google Gemini."""

    name = "gemini"

    def __init__(self, api_key: str = "", model: str = "gemini-2.0-flash") -> None:
        self._api_key = api_key
        self._model = model
        self._client: Any = None

    async def connect(self) -> None:
        if self._client is not None:
            return
        if not self._api_key:
            raise ConfigurationError(
                "Gemini API key not found. "
                "Set it in the config file or the GEMINI_API_KEY environment variable."
            )

        try:
            import google.generativeai as genai
        except ImportError:
            raise ConfigurationError(
                "google-generativeai SDK is required: pip install google-generativeai"
            ) from None

        genai.configure(api_key=self._api_key)
        self._client = genai.GenerativeModel(self._model)
        logger.info("Gemini AI service initialized (%s)", self._model)

    async def complete(self, prompt: str) -> str:
        await self.connect()
        try:
            response = await self._client.generate_content_async(prompt)
        except Exception as e:
            raise classify_api_error(e) from e

        try:
            text = response.text
        except ValueError as e:
            # Raised when the candidate was blocked or has no text parts
            raise MalformedResponse(f"Gemini returned no text: {e}") from e
        if not text or not text.strip():
            raise MalformedResponse("Gemini returned an empty response")
        return text
