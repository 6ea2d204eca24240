"""Base LLM interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class LLMError(Exception):
    """Provider failure that retrying will not fix."""


class TransientLLMError(LLMError):
    """Provider failure worth retrying (rate limit, timeout, connection)."""


class BaseLLM(ABC):
    """Abstract LLM provider interface."""

    @abstractmethod
    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        """Return assistant response text for a message list."""
