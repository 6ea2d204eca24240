"""Executor that fulfils tasks through an LLM provider."""

from __future__ import annotations

import json
import logging
import math
from typing import Any

from core.errors import ExecutorFatalError, ExecutorTransientError
from executor.base_executor import BaseExecutor, ExecutorOutput, TaskContext
from llm.base_llm import BaseLLM, LLMError, TransientLLMError
from planner.execution_plan import Task
from planner.types import ComplianceStatus, TaskType

logger = logging.getLogger("conductor.llm_executor")

_COST_FACTORS: dict[TaskType, float] = {
    TaskType.CODE_REVIEW: 0.8,
    TaskType.COMPLIANCE_CHECK: 1.2,
}


class LLMExecutor(BaseExecutor):
    """Builds a per-type prompt from the task and its dependency outputs."""

    def __init__(self, llm: BaseLLM, max_context_chars: int = 4000) -> None:
        self.llm = llm
        self.max_context_chars = max_context_chars

    def execute(self, task: Task, context: TaskContext) -> ExecutorOutput:
        prompt = self._prompt(task, context)
        try:
            response = self.llm.chat([{"role": "user", "content": prompt}])
        except (TransientLLMError, TimeoutError, ConnectionError) as exc:
            raise ExecutorTransientError(str(exc)) from exc
        except LLMError as exc:
            raise ExecutorFatalError(str(exc)) from exc

        tokens_used = len(response.split())
        output: dict[str, Any] = {"tokens_used": tokens_used}
        status: ComplianceStatus | None = None
        if task.type is TaskType.CODE_GENERATION:
            output.update(code=response, explanation="Code generated successfully")
        elif task.type is TaskType.CODE_REVIEW:
            output.update(
                review=response,
                issues=_lines_with(response, ("issue", "problem", "error")),
                recommendations=_lines_with(response, ("recommend", "suggest", "should")),
            )
        elif task.type is TaskType.COMPLIANCE_CHECK:
            output.update(
                violations=[],
                recommendations=_lines_with(response, ("recommend", "suggest", "should")),
            )
            status = ComplianceStatus.REQUIRES_REVIEW
        else:
            output["result"] = response

        factor = _COST_FACTORS.get(task.type)
        # Factored costs round up to whole units.
        cost = task.estimated_cost if factor is None else float(math.ceil(task.estimated_cost * factor))
        logger.debug("LLM executed task %s (%d tokens)", task.id, tokens_used)
        return ExecutorOutput(output=output, cost_consumed=cost, compliance_status=status)

    def _prompt(self, task: Task, context: TaskContext) -> str:
        previous = json.dumps(dict(context.dependency_outputs), default=str)
        previous = previous[: self.max_context_chars]
        if task.type is TaskType.CODE_GENERATION:
            return f"Generate code for: {task.description}\nContext: {previous}"
        if task.type is TaskType.CODE_REVIEW:
            return f"Review this code for quality, security, and best practices: {previous}"
        if task.type is TaskType.COMPLIANCE_CHECK:
            return f"Check compliance for: {task.description}\nContext: {previous}"
        return f"Execute task: {task.description}\nContext: {previous}"


def _lines_with(text: str, needles: tuple[str, ...]) -> list[str]:
    return [line for line in text.splitlines() if any(n in line.lower() for n in needles)]
