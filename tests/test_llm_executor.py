"""LLM-backed executor tests using the offline mock provider."""

from __future__ import annotations

from typing import Any

import pytest

from core.errors import ExecutorFatalError, ExecutorTransientError
from executor.base_executor import TaskContext
from executor.llm_executor import LLMExecutor
from llm.base_llm import BaseLLM, LLMError, TransientLLMError
from llm.llm_factory import build_llm
from llm.providers.mock_provider import MockProvider
from llm.providers.openai_provider import OpenAIProvider
from planner.execution_plan import Task
from planner.types import ComplianceStatus, TaskType


class RaisingLLM(BaseLLM):
    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    def chat(self, messages: list[dict[str, str]], **kwargs: Any) -> str:
        raise self.exc


def run(task_type: TaskType, cost: float, llm: BaseLLM | None = None) -> Any:
    task = Task(id="task_1", type=task_type, description="write a parser", estimated_cost=cost)
    context = TaskContext.build("plan_1", "alice", task, {})
    return LLMExecutor(llm or MockProvider()).execute(task, context)


def test_code_generation_returns_code_and_full_cost() -> None:
    result = run(TaskType.CODE_GENERATION, 25)

    assert result.output["code"].startswith("def task_")
    assert result.output["tokens_used"] == len(result.output["code"].split())
    assert result.cost_consumed == 25
    assert result.compliance_status is None


def test_review_extracts_recommendations_and_discounts_cost() -> None:
    result = run(TaskType.CODE_REVIEW, 15)

    assert result.output["issues"] == []
    assert result.output["recommendations"] == ["Recommend adding type hints to public functions."]
    assert result.cost_consumed == 12.0


def test_compliance_check_requires_review() -> None:
    result = run(TaskType.COMPLIANCE_CHECK, 35)

    assert result.output["violations"] == []
    assert result.compliance_status is ComplianceStatus.REQUIRES_REVIEW
    assert result.cost_consumed == 42.0


def test_other_types_return_plain_result() -> None:
    result = run(TaskType.DOCUMENTATION, 10)

    assert result.output["result"].startswith("Local fallback response.")


def test_provider_errors_map_to_executor_errors() -> None:
    with pytest.raises(ExecutorTransientError):
        run(TaskType.TESTING, 20, RaisingLLM(TransientLLMError("429")))
    with pytest.raises(ExecutorTransientError):
        run(TaskType.TESTING, 20, RaisingLLM(TimeoutError("slow")))
    with pytest.raises(ExecutorFatalError):
        run(TaskType.TESTING, 20, RaisingLLM(LLMError("bad request")))


def test_openai_without_key_is_fatal(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(ExecutorFatalError, match="OPENAI_API_KEY"):
        run(TaskType.TESTING, 20, OpenAIProvider())


def test_factory_selects_provider() -> None:
    assert isinstance(build_llm({}), MockProvider)
    llm = build_llm(
        {"llm": {"active_provider": "openai", "providers": {"openai": {"type": "openai", "model": "gpt-x"}}}}
    )
    assert isinstance(llm, OpenAIProvider)
    assert llm.model == "gpt-x"


def test_factored_costs_round_up_to_whole_units() -> None:
    assert run(TaskType.CODE_REVIEW, 11).cost_consumed == 9
    assert run(TaskType.COMPLIANCE_CHECK, 11).cost_consumed == 14
    assert run(TaskType.DOCUMENTATION, 10.5).cost_consumed == 10.5
