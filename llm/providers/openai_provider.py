"""OpenAI provider."""

from __future__ import annotations

import os
from typing import Any

from llm.base_llm import BaseLLM, LLMError, TransientLLMError


class OpenAIProvider(BaseLLM):
    """OpenAI API adapter. Needs the optional ``openai`` package and an API key."""

    def __init__(self, model: str = "gpt-4o-mini", max_tokens: int = 2000) -> None:
        self.model = model
        self.max_tokens = max_tokens

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise LLMError("OpenAI provider unavailable: OPENAI_API_KEY not set.")
        try:
            import openai
        except ImportError as exc:
            raise LLMError(
                "OpenAI provider unavailable: install the `openai` extra or switch provider."
            ) from exc

        client = openai.OpenAI(api_key=api_key)
        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=int(kwargs.get("max_tokens", self.max_tokens)),
            )
        except (openai.RateLimitError, openai.APITimeoutError, openai.APIConnectionError) as exc:
            raise TransientLLMError(str(exc)) from exc
        except openai.OpenAIError as exc:  # pragma: no cover - external API path
            raise LLMError(str(exc)) from exc
        content = response.choices[0].message.content
        if not content:
            raise TransientLLMError("OpenAI returned an empty response.")
        return content
