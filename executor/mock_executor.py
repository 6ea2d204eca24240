"""Deterministic offline executor."""

from __future__ import annotations

from executor.base_executor import BaseExecutor, ExecutorOutput, TaskContext
from planner.execution_plan import Task
from planner.types import ComplianceStatus, TaskType


class MockExecutor(BaseExecutor):
    """Safe deterministic executor for offline end-to-end runs."""

    def execute(self, task: Task, context: TaskContext) -> ExecutorOutput:
        output: dict[str, object] = {
            "outcome": f"Executed deterministic handler for '{task.description}'.",
            "agent": task.assigned_agent,
            "inputs_from": sorted(context.dependency_outputs),
        }
        status = None
        if task.type is TaskType.CODE_GENERATION:
            output["code"] = f"# {task.description}\n"
        elif task.type is TaskType.COMPLIANCE_CHECK:
            output["violations"] = []
            status = ComplianceStatus.COMPLIANT
        return ExecutorOutput(output=output, compliance_status=status)
