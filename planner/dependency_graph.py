"""Task dependency graph construction, cycle detection and ordering."""

from __future__ import annotations

import dataclasses
import heapq
import logging
import uuid
from collections import defaultdict, deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from core.errors import CyclicDependencyError
from planner.execution_plan import Edge, Plan, Task
from planner.types import ComplianceLevel, ConductorMode, EdgeKind, TaskType

logger = logging.getLogger("conductor.dependency_graph")

GOVERNMENT_REVIEW_WARNING = "Government compliance level requires manual review of all outputs"
DEFAULT_SECONDS_PER_TASK = 30


@dataclass(frozen=True)
class ChainRule:
    """Every task of ``from_type`` must finish before every task of ``to_type``."""

    from_type: TaskType
    to_type: TaskType
    kind: EdgeKind = EdgeKind.DEPENDENCY


DEFAULT_CHAIN_RULES: tuple[ChainRule, ...] = (
    ChainRule(TaskType.CODE_GENERATION, TaskType.TESTING),
    ChainRule(TaskType.CODE_REVIEW, TaskType.COMPLIANCE_CHECK),
    ChainRule(TaskType.TESTING, TaskType.SECURITY_AUDIT),
    ChainRule(TaskType.COMPLIANCE_CHECK, TaskType.DEPLOYMENT),
    ChainRule(TaskType.SECURITY_AUDIT, TaskType.DEPLOYMENT),
)


class DependencyResolver:
    """Turns a batch of decomposed tasks into an ordered, acyclic plan."""

    def __init__(
        self,
        chain_rules: Sequence[ChainRule] = DEFAULT_CHAIN_RULES,
        seconds_per_task: float = DEFAULT_SECONDS_PER_TASK,
    ) -> None:
        self.chain_rules = tuple(chain_rules)
        self.seconds_per_task = seconds_per_task

    def resolve(
        self,
        tasks: Sequence[Task],
        chain_rules: Sequence[ChainRule] | None = None,
        *,
        owner_id: str = "anonymous",
        mode: ConductorMode = ConductorMode.AUTO,
        compliance_level: ComplianceLevel = ComplianceLevel.BASIC,
    ) -> Plan:
        """Build edges, order the tasks and wrap them in a ``Plan``.

        Raises ``CyclicDependencyError`` without producing a plan when the
        rules create a cycle among the tasks present.
        """
        rules = self.chain_rules if chain_rules is None else tuple(chain_rules)
        ids = [task.id for task in tasks]
        if len(set(ids)) != len(ids):
            raise ValueError("Task ids must be unique within a batch.")

        edges = build_edges(tasks, rules)
        dependencies: dict[str, set[str]] = {task.id: set() for task in tasks}
        for edge in edges:
            if edge.constrains_order:
                dependencies[edge.to_task_id].add(edge.from_task_id)

        resolved = [
            dataclasses.replace(task, dependencies=frozenset(dependencies[task.id]))
            for task in tasks
        ]
        ordered = topological_order(resolved)
        plan = Plan(
            id=f"plan_{uuid.uuid4().hex}",
            owner_id=owner_id,
            tasks=tuple(ordered),
            edges=tuple(edges),
            mode=mode,
            compliance_level=compliance_level,
            estimated_cost=sum(task.estimated_cost for task in ordered),
            estimated_duration_ms=int(len(ordered) * self.seconds_per_task * 1000),
            compliance_warnings=tuple(_compliance_warnings(compliance_level)),
            critical_path=tuple(critical_path(ordered)),
        )
        logger.info(
            "Resolved plan %s: %d tasks, %d edges, estimated cost %.2f",
            plan.id,
            len(plan.tasks),
            len(plan.edges),
            plan.estimated_cost,
        )
        return plan


def build_edges(tasks: Sequence[Task], rules: Iterable[ChainRule]) -> list[Edge]:
    """Cross-product edges from the rule table plus same-type priority chains."""
    by_type: dict[TaskType, list[Task]] = defaultdict(list)
    for task in tasks:
        by_type[task.type].append(task)

    edges: list[Edge] = []
    seen: set[tuple[str, str]] = set()

    def add(source: Task, target: Task, kind: EdgeKind) -> None:
        key = (source.id, target.id)
        if key in seen:
            return
        seen.add(key)
        edges.append(Edge(source.id, target.id, kind, weight=source.estimated_cost))

    for rule in rules:
        for target in by_type.get(rule.to_type, []):
            for source in by_type.get(rule.from_type, []):
                add(source, target, rule.kind)

    for group in by_type.values():
        if len(group) < 2:
            continue
        chain = sorted(group, key=lambda t: (-t.priority, t.sequence_number))
        for previous, current in zip(chain, chain[1:]):
            add(previous, current, EdgeKind.SEQUENCE)
    return edges


def topological_order(tasks: Sequence[Task]) -> list[Task]:
    """Kahn's algorithm over ``Task.dependencies``.

    Ready tasks are taken by descending priority, then ascending sequence
    number. Dependencies on ids outside ``tasks`` are rejected.
    """
    by_id = {task.id: task for task in tasks}
    in_degree = {task.id: 0 for task in tasks}
    dependents: dict[str, list[str]] = defaultdict(list)
    for task in tasks:
        for dep_id in task.dependencies:
            if dep_id not in by_id:
                raise ValueError(f"Task {task.id} depends on unknown task {dep_id}.")
            in_degree[task.id] += 1
            dependents[dep_id].append(task.id)

    def key(task_id: str) -> tuple[int, int, str]:
        task = by_id[task_id]
        return (-task.priority, task.sequence_number, task.id)

    ready = [key(task_id) for task_id, degree in in_degree.items() if degree == 0]
    heapq.heapify(ready)
    ordered: list[Task] = []
    while ready:
        _, _, task_id = heapq.heappop(ready)
        ordered.append(by_id[task_id])
        for dependent in dependents[task_id]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                heapq.heappush(ready, key(dependent))

    if len(ordered) < len(tasks):
        stuck = sorted(
            (by_id[task_id] for task_id, degree in in_degree.items() if degree > 0),
            key=lambda t: t.sequence_number,
        )
        raise CyclicDependencyError(task.id for task in stuck)
    return ordered


def is_topological_order(plan: Plan, order: Sequence[str]) -> bool:
    """Return whether ``order`` is a permutation of the plan's ids that keeps every dependency."""
    if len(order) != len(plan.tasks) or set(order) != set(plan.task_ids):
        return False
    position = {task_id: index for index, task_id in enumerate(order)}
    pairs = {(edge.from_task_id, edge.to_task_id) for edge in plan.ordering_edges()}
    pairs.update((dep_id, task.id) for task in plan.tasks for dep_id in task.dependencies)
    return all(
        source in position and target in position and position[source] < position[target]
        for source, target in pairs
    )


def critical_path(ordered: Sequence[Task]) -> list[str]:
    """Cost-weighted longest dependency chain, given tasks in topological order."""
    if not ordered:
        return []
    best: dict[str, float] = {}
    parent: dict[str, str | None] = {}
    for task in ordered:
        predecessor = max(
            task.dependencies,
            key=lambda dep_id: (best[dep_id], dep_id),
            default=None,
        )
        base = best[predecessor] if predecessor is not None else 0.0
        best[task.id] = base + task.estimated_cost
        parent[task.id] = predecessor

    # Earliest task wins ties so the result is stable.
    _, tail = max(
        ((index, task.id) for index, task in enumerate(ordered)),
        key=lambda item: (best[item[1]], -item[0]),
    )
    path: deque[str] = deque()
    node: str | None = tail
    while node is not None:
        path.appendleft(node)
        node = parent[node]
    return list(path)


def execution_layers(plan: Plan) -> list[list[str]]:
    """Group task ids into layers whose members depend only on earlier layers."""
    depth: dict[str, int] = {}
    for task in plan.tasks:
        depth[task.id] = 1 + max((depth[d] for d in task.dependencies), default=-1)
    layers: list[list[str]] = [[] for _ in range(max(depth.values(), default=-1) + 1)]
    for task in plan.tasks:
        layers[depth[task.id]].append(task.id)
    return layers


def _compliance_warnings(compliance_level: ComplianceLevel) -> list[str]:
    if compliance_level is ComplianceLevel.GOVERNMENT:
        return [GOVERNMENT_REVIEW_WARNING]
    return []
