"""Executor interface and the read-only context handed to it."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from planner.execution_plan import Task
from planner.types import ComplianceStatus, TaskType


@dataclass(frozen=True)
class TaskContext:
    """What an executor may see: its task and its dependencies' outputs."""

    plan_id: str
    owner_id: str
    task_type: TaskType
    description: str
    dependency_outputs: Mapping[str, Any]

    @classmethod
    def build(
        cls, plan_id: str, owner_id: str, task: Task, outputs: Mapping[str, Any]
    ) -> TaskContext:
        visible = {dep_id: outputs[dep_id] for dep_id in sorted(task.dependencies) if dep_id in outputs}
        return cls(
            plan_id=plan_id,
            owner_id=owner_id,
            task_type=task.type,
            description=task.description,
            dependency_outputs=MappingProxyType(visible),
        )


@dataclass(frozen=True)
class ExecutorOutput:
    """Executor result with optional cost, compliance and confidence reports.

    Unset fields fall back to the coordinator's defaults.
    """

    output: Any = None
    cost_consumed: float | None = None
    compliance_status: ComplianceStatus | None = None
    confidence: float | None = None


class BaseExecutor(ABC):
    """Fulfils tasks of one or more task types."""

    @abstractmethod
    def execute(self, task: Task, context: TaskContext) -> ExecutorOutput | Any:
        """Perform the task.

        Raise ``ExecutorTransientError`` for retryable failures and
        ``ExecutorFatalError`` for failures that must not be retried. Any
        return value other than ``ExecutorOutput`` is treated as the output.
        """


class FunctionExecutor(BaseExecutor):
    """Adapts a plain callable ``fn(task, context)`` to the executor interface."""

    def __init__(self, fn: Callable[[Task, TaskContext], Any]) -> None:
        self.fn = fn

    def execute(self, task: Task, context: TaskContext) -> ExecutorOutput | Any:
        return self.fn(task, context)
