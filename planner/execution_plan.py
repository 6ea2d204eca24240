"""Execution plan models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from planner.types import (
    ComplianceLevel,
    ComplianceStatus,
    ConductorMode,
    EdgeKind,
    Modality,
    TaskStatus,
    TaskType,
)


@dataclass(frozen=True)
class Task:
    """One typed unit of work.

    ``dependencies`` is empty when the decomposer creates the task and is set
    exactly once by the dependency resolver.
    """

    id: str
    type: TaskType
    description: str
    required_capabilities: frozenset[Modality] = frozenset()
    dependencies: frozenset[str] = frozenset()
    estimated_cost: float = 0.0
    compliance_required: bool = False
    priority: int = 0
    sequence_number: int = 0
    assigned_agent: str = ""

    def __post_init__(self) -> None:
        if self.estimated_cost < 0:
            raise ValueError(f"Task {self.id} has negative estimated cost.")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "description": self.description,
            "required_capabilities": sorted(m.value for m in self.required_capabilities),
            "dependencies": sorted(self.dependencies),
            "estimated_cost": self.estimated_cost,
            "compliance_required": self.compliance_required,
            "priority": self.priority,
            "sequence_number": self.sequence_number,
            "assigned_agent": self.assigned_agent,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        return cls(
            id=data["id"],
            type=TaskType(data["type"]),
            description=data.get("description", ""),
            required_capabilities=frozenset(
                Modality(m) for m in data.get("required_capabilities", [])
            ),
            dependencies=frozenset(data.get("dependencies", [])),
            estimated_cost=float(data.get("estimated_cost", 0.0)),
            compliance_required=bool(data.get("compliance_required", False)),
            priority=int(data.get("priority", 0)),
            sequence_number=int(data.get("sequence_number", 0)),
            assigned_agent=data.get("assigned_agent", ""),
        )


@dataclass(frozen=True)
class Edge:
    """Directed relation between two tasks of the same plan."""

    from_task_id: str
    to_task_id: str
    kind: EdgeKind = EdgeKind.DEPENDENCY
    weight: float = 0.0

    @property
    def constrains_order(self) -> bool:
        return self.kind is not EdgeKind.PARALLEL_HINT

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_task_id,
            "to": self.to_task_id,
            "kind": self.kind.value,
            "weight": self.weight,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Edge:
        return cls(
            from_task_id=data["from"],
            to_task_id=data["to"],
            kind=EdgeKind(data.get("kind", EdgeKind.DEPENDENCY.value)),
            weight=float(data.get("weight", 0.0)),
        )


@dataclass(frozen=True)
class Plan:
    """Ordered, acyclic collection of tasks produced for one request."""

    id: str
    owner_id: str
    tasks: tuple[Task, ...] = ()
    edges: tuple[Edge, ...] = ()
    mode: ConductorMode = ConductorMode.AUTO
    compliance_level: ComplianceLevel = ComplianceLevel.BASIC
    estimated_cost: float = 0.0
    estimated_duration_ms: int = 0
    compliance_warnings: tuple[str, ...] = ()
    critical_path: tuple[str, ...] = ()
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def task_ids(self) -> list[str]:
        return [task.id for task in self.tasks]

    def get_task(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def ordering_edges(self) -> list[Edge]:
        """Edges that the execution order must respect."""
        return [edge for edge in self.edges if edge.constrains_order]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "tasks": [task.to_dict() for task in self.tasks],
            "edges": [edge.to_dict() for edge in self.edges],
            "mode": self.mode.value,
            "compliance_level": self.compliance_level.value,
            "estimated_cost": self.estimated_cost,
            "estimated_duration_ms": self.estimated_duration_ms,
            "compliance_warnings": list(self.compliance_warnings),
            "critical_path": list(self.critical_path),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Plan:
        created_at = data.get("created_at")
        return cls(
            id=data["id"],
            owner_id=data["owner_id"],
            tasks=tuple(Task.from_dict(t) for t in data.get("tasks", [])),
            edges=tuple(Edge.from_dict(e) for e in data.get("edges", [])),
            mode=ConductorMode(data.get("mode", ConductorMode.AUTO.value)),
            compliance_level=ComplianceLevel(
                data.get("compliance_level", ComplianceLevel.BASIC.value)
            ),
            estimated_cost=float(data.get("estimated_cost", 0.0)),
            estimated_duration_ms=int(data.get("estimated_duration_ms", 0)),
            compliance_warnings=tuple(data.get("compliance_warnings", [])),
            critical_path=tuple(data.get("critical_path", [])),
            created_at=(
                datetime.fromisoformat(created_at) if created_at else datetime.now(UTC)
            ),
        )


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of the final execution attempt of one task."""

    task_id: str
    success: bool
    output: Any = None
    cost_consumed: float = 0.0
    compliance_status: ComplianceStatus = ComplianceStatus.REQUIRES_REVIEW
    duration_ms: int = 0
    confidence: float = 0.0
    status: TaskStatus = TaskStatus.COMPLETED
    error: str = ""
    attempts: int = 0

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must lie in [0, 1], got {self.confidence}.")

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "success": self.success,
            "output": self.output,
            "cost_consumed": self.cost_consumed,
            "compliance_status": self.compliance_status.value,
            "duration_ms": self.duration_ms,
            "confidence": self.confidence,
            "status": self.status.value,
            "error": self.error,
            "attempts": self.attempts,
        }
