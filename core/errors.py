"""Typed errors raised while planning and executing orchestration plans."""

from __future__ import annotations

from collections.abc import Iterable


class ConductorError(Exception):
    """Base class for all engine errors."""


class DecompositionError(ConductorError):
    """No task type matched the request and no fallback type is configured."""


class CyclicDependencyError(ConductorError):
    """The dependency graph of a batch contains a cycle."""

    def __init__(self, task_ids: Iterable[str]) -> None:
        self.task_ids = list(task_ids)
        super().__init__(
            f"Circular dependency detected involving tasks: {', '.join(self.task_ids)}"
        )


class ExecutorNotFoundError(ConductorError):
    """No executor is registered for a task type present in the plan."""

    def __init__(self, task_type: object) -> None:
        self.task_type = task_type
        name = getattr(task_type, "value", task_type)
        super().__init__(f"No executor registered for task type {name}")


class ExecutorTransientError(ConductorError):
    """Retryable executor failure (timeouts, rate limits, dropped connections)."""


class ExecutorFatalError(ConductorError):
    """Executor failure that must not be retried."""


class InsufficientResourceError(ConductorError):
    """The owner's budget cannot cover the requested amount."""

    def __init__(self, owner_id: str, amount: float, available: float) -> None:
        self.owner_id = owner_id
        self.amount = amount
        self.available = available
        super().__init__(
            f"Insufficient budget for {owner_id}: requested {amount:g}, available {available:g}"
        )


class PlanNotFoundError(ConductorError):
    """A plan id could not be found in the plan store."""

    def __init__(self, plan_id: str) -> None:
        self.plan_id = plan_id
        super().__init__(f"Orchestration plan not found: {plan_id}")
