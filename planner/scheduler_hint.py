"""Optional external reordering hints.

A hint is never trusted: the proposed order is used only when it is a
permutation of the plan's task ids that keeps every ordering edge intact.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from planner.dependency_graph import is_topological_order
from planner.execution_plan import Plan, Task

logger = logging.getLogger("conductor.scheduler_hint")


class SchedulerHint(ABC):
    """Proposes an alternative ordering of a plan's task ids."""

    @abstractmethod
    def propose_order(self, plan: Plan) -> Sequence[str] | None:
        """Return task ids in the preferred order, or ``None`` for no opinion."""


class PassthroughHint(SchedulerHint):
    """Always proposes the plan's own order."""

    def propose_order(self, plan: Plan) -> Sequence[str] | None:
        return plan.task_ids


def apply_hint(plan: Plan, hint: SchedulerHint | None) -> list[Task]:
    """Return the plan's tasks in the hinted order when valid, else unchanged."""
    tasks = list(plan.tasks)
    if hint is None:
        return tasks
    try:
        proposed = hint.propose_order(plan)
    except Exception as exc:
        logger.warning("Scheduler hint failed for plan %s: %s", plan.id, exc)
        return tasks
    if proposed is None:
        return tasks
    proposed = list(proposed)
    if not is_topological_order(plan, proposed):
        logger.debug("Ignoring invalid scheduler hint for plan %s", plan.id)
        return tasks
    by_id = {task.id: task for task in tasks}
    return [by_id[task_id] for task_id in proposed]
