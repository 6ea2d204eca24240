"""Per-type cost, priority and description registry."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from planner.types import TaskType


class TaskTypeSpec(BaseModel):
    """Static planning attributes for one task type."""

    base_cost: float = Field(ge=0)
    priority: int
    description_template: str
    agent: str = "GeneralAgent"

    def describe(self, request: str) -> str:
        return self.description_template.format(request=request)


_DEFAULT_SPECS: dict[TaskType, dict[str, Any]] = {
    TaskType.CODE_GENERATION: {
        "base_cost": 25,
        "priority": 8,
        "description_template": "Generate code based on: {request}",
        "agent": "CodeGenerationAgent",
    },
    TaskType.CODE_REVIEW: {
        "base_cost": 15,
        "priority": 6,
        "description_template": "Review code for quality and security",
        "agent": "CodeReviewAgent",
    },
    TaskType.DOCUMENTATION: {
        "base_cost": 10,
        "priority": 3,
        "description_template": "Create documentation",
        "agent": "DocumentationAgent",
    },
    TaskType.TESTING: {
        "base_cost": 20,
        "priority": 7,
        "description_template": "Generate tests",
        "agent": "TestingAgent",
    },
    TaskType.DEBUGGING: {
        "base_cost": 30,
        "priority": 5,
        "description_template": "Debug and fix issues",
        "agent": "DebuggingAgent",
    },
    TaskType.REFACTORING: {
        "base_cost": 25,
        "priority": 4,
        "description_template": "Refactor and optimize code",
        "agent": "RefactoringAgent",
    },
    TaskType.COMPLIANCE_CHECK: {
        "base_cost": 35,
        "priority": 10,
        "description_template": "Check compliance requirements",
        "agent": "ComplianceAgent",
    },
    TaskType.SECURITY_AUDIT: {
        "base_cost": 40,
        "priority": 9,
        "description_template": "Perform security audit",
        "agent": "SecurityAgent",
    },
    TaskType.PERFORMANCE_OPTIMIZATION: {
        "base_cost": 30,
        "priority": 2,
        "description_template": "Optimize performance",
        "agent": "PerformanceAgent",
    },
    TaskType.DEPLOYMENT: {
        "base_cost": 15,
        "priority": 1,
        "description_template": "Prepare for deployment",
        "agent": "DeploymentAgent",
    },
}


class TaskRegistry:
    """Validated mapping of every ``TaskType`` to its ``TaskTypeSpec``."""

    def __init__(self, specs: Mapping[TaskType, TaskTypeSpec]) -> None:
        missing = [t.value for t in TaskType if t not in specs]
        if missing:
            raise ValueError(f"Task registry is missing task types: {', '.join(missing)}")
        self._specs = dict(specs)

    def __getitem__(self, task_type: TaskType) -> TaskTypeSpec:
        return self._specs[task_type]

    def __iter__(self) -> Iterator[TaskType]:
        return iter(TaskType)

    def items(self) -> list[tuple[TaskType, TaskTypeSpec]]:
        return [(t, self._specs[t]) for t in TaskType]

    @classmethod
    def default(cls) -> TaskRegistry:
        return cls.from_mapping({})

    @classmethod
    def from_mapping(cls, overrides: Mapping[str, Mapping[str, Any]]) -> TaskRegistry:
        """Build from defaults with per-type overrides keyed by type name."""
        specs: dict[TaskType, TaskTypeSpec] = {}
        unknown = set(overrides) - {t.value for t in TaskType}
        if unknown:
            raise ValueError(f"Unknown task types in registry: {', '.join(sorted(unknown))}")
        for task_type, defaults in _DEFAULT_SPECS.items():
            merged = {**defaults, **dict(overrides.get(task_type.value) or {})}
            specs[task_type] = TaskTypeSpec(**merged)
        return cls(specs)

    @classmethod
    def from_yaml(cls, path: Path) -> TaskRegistry:
        """Load overrides from a YAML mapping; a missing file yields defaults."""
        if not path.exists():
            return cls.default()
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Task registry file must contain a mapping: {path}")
        return cls.from_mapping(data.get("task_types", data) or {})
