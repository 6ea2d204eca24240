"""LLM provider factory."""

from __future__ import annotations

from typing import Any

from llm.base_llm import BaseLLM
from llm.providers.mock_provider import MockProvider
from llm.providers.openai_provider import OpenAIProvider


def build_llm(config: dict[str, Any]) -> BaseLLM:
    """Build an LLM provider from configuration, defaulting safely to mock."""
    llm_cfg = config.get("llm", {})
    active = llm_cfg.get("active_provider", "mock")
    providers = llm_cfg.get("providers", {})
    active_cfg = providers.get(active, {})
    provider_type = active_cfg.get("type", active)

    if provider_type == "openai":
        return OpenAIProvider(
            model=active_cfg.get("model", "gpt-4o-mini"),
            max_tokens=int(active_cfg.get("max_tokens", 2000)),
        )
    return MockProvider()
