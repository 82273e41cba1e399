"""LLM provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from rinkmate.models import LLMResponse


class LLMProvider(ABC):
    """Abstract completion service used by the runtime and the matching engine."""

    @abstractmethod
    async def generate(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        response_format: dict[str, Any] | None = None,
        tool_choice: str | None = None,
    ) -> LLMResponse:
        """Generate a model response."""

    @abstractmethod
    async def search(self, prompt: str) -> str:
        """Run a web-search-augmented completion and return its text."""
