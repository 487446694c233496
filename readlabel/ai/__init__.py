"""Completion backend base class and factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import ReadLabelConfig


class CompletionBackend(ABC):
    """Abstract text-completion service used for ingredient analysis."""

    name = "ai"

    @abstractmethod
    async def connect(self) -> None:
        """Prepare the SDK client. Idempotent.

        Raises ConfigurationError when credentials or the SDK are missing.
        """
        ...

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Send one prompt and return the reply text.

        SDK failures are raised as AnalysisUnavailable subclasses.
        """
        ...


def create_backend(config: ReadLabelConfig) -> CompletionBackend:
    """Create a completion backend based on configuration."""
    backend_name = config.ai.backend

    match backend_name:
        case "gemini":
            from .gemini import GeminiBackend

            return GeminiBackend(
                api_key=config.ai.gemini.api_key,
                model=config.ai.gemini.model,
            )
        case "claude":
            from .claude import ClaudeBackend

            return ClaudeBackend(
                api_key=config.ai.claude.api_key,
                model=config.ai.claude.model,
            )
        case _:
            raise ValueError(
                f"Unknown AI backend: {backend_name!r} (choose gemini or claude)"
            )
