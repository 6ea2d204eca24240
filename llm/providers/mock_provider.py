"""Deterministic offline LLM provider."""

from __future__ import annotations

import re
from collections import Counter

from llm.base_llm import BaseLLM

_WORD = re.compile(r"[a-z0-9]+")


class MockProvider(BaseLLM):
    """Answers by prompt prefix so executor runs are reproducible without a network."""

    def chat(self, messages: list[dict[str, str]], **kwargs: object) -> str:
        if not messages:
            return "No input received."
        prompts = [m["content"] for m in messages if m.get("role") == "user"]
        prompt = prompts[-1] if prompts else messages[-1]["content"]
        headline = prompt.splitlines()[0] if prompt else ""
        words = _WORD.findall(headline.lower())

        if headline.startswith("Generate code for:"):
            name = "_".join(words[3:6]) or "task"
            return (
                f"def task_{name}():\n"
                f"    \"\"\"Generated for: {_salient(words)}.\"\"\"\n"
                "    raise NotImplementedError\n"
            )
        if headline.startswith("Review"):
            return "Code structure looks consistent.\nRecommend adding type hints to public functions."
        if headline.startswith("Check compliance"):
            return "Recommend recording the approval trail for this change."
        return f"Local fallback response. Salient terms: {_salient(words)}."


def _salient(words: list[str], limit: int = 8) -> str:
    if not words:
        return "no salient terms detected"
    return ", ".join(word for word, _ in Counter(words).most_common(limit))
