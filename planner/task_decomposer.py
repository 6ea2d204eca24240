"""Request-to-task decomposition by deterministic keyword classification.

Each task type owns a list of keywords. A type matches when one of its
keywords occurs anywhere in the lower-cased text or code, inside longer
words too ("autogenerate" counts as "generate"). Every matched type yields
exactly one task; compliance policies always add a compliance check.

When nothing matches, the decomposer falls back to a single task of
``fallback_type`` (CODE_GENERATION by default). Passing ``fallback_type=None``
turns the fallback off and makes an unmatched request a ``DecompositionError``.
"""

from __future__ import annotations

import itertools
import logging
import re
import uuid

from core.errors import DecompositionError
from planner.execution_plan import Task
from planner.task_registry import TaskRegistry
from planner.types import ComplianceLevel, Modality, MultimodalInput, TaskType

logger = logging.getLogger("conductor.decomposer")

KEYWORD_TABLE: tuple[tuple[TaskType, tuple[str, ...]], ...] = (
    (TaskType.CODE_GENERATION, ("generate", "create", "build")),
    (TaskType.CODE_REVIEW, ("review", "check", "analyze")),
    (TaskType.DOCUMENTATION, ("document", "readme", "docs")),
    (TaskType.TESTING, ("test", "spec", "unit")),
    (TaskType.DEBUGGING, ("debug", "fix", "error")),
    (TaskType.REFACTORING, ("refactor", "optimize", "improve")),
    (TaskType.PERFORMANCE_OPTIMIZATION, ("performance", "latency", "profile")),
    (TaskType.SECURITY_AUDIT, ("security", "vulnerability", "audit")),
    (TaskType.DEPLOYMENT, ("deploy", "production", "release")),
)


def _compile(keywords: tuple[str, ...]) -> re.Pattern[str]:
    return re.compile("|".join(re.escape(k) for k in keywords))


_PATTERNS: tuple[tuple[TaskType, re.Pattern[str]], ...] = tuple(
    (task_type, _compile(keywords)) for task_type, keywords in KEYWORD_TABLE
)


class TaskDecomposer:
    """Classify a request into typed tasks without dependencies."""

    def __init__(
        self,
        registry: TaskRegistry | None = None,
        fallback_type: TaskType | None = TaskType.CODE_GENERATION,
    ) -> None:
        self.registry = registry or TaskRegistry.default()
        self.fallback_type = fallback_type
        self._sequence = itertools.count()

    def decompose(
        self,
        request: MultimodalInput,
        compliance_level: ComplianceLevel = ComplianceLevel.BASIC,
    ) -> list[Task]:
        """Return one task per matched type, in keyword-table order."""
        task_types = self.classify(request)
        if not task_types:
            if self.fallback_type is None:
                raise DecompositionError("No task type matched the request.")
            logger.info(
                "No task type matched; falling back to %s", self.fallback_type.value
            )
            task_types = [self.fallback_type]

        tasks = [self._build_task(t, request, compliance_level) for t in task_types]
        logger.info(
            "Decomposed request into %d tasks: %s",
            len(tasks),
            ", ".join(t.type.value for t in tasks),
        )
        return tasks

    @staticmethod
    def classify(request: MultimodalInput) -> list[TaskType]:
        """Return matched task types without applying the fallback."""
        content = request.content()
        matched = [task_type for task_type, pattern in _PATTERNS if pattern.search(content)]
        if request.compliance_policies:
            matched.append(TaskType.COMPLIANCE_CHECK)
        return matched

    def _build_task(
        self,
        task_type: TaskType,
        request: MultimodalInput,
        compliance_level: ComplianceLevel,
    ) -> Task:
        spec = self.registry[task_type]
        return Task(
            id=f"task_{uuid.uuid4().hex[:12]}",
            type=task_type,
            description=spec.describe(request.text or request.code or "requirements"),
            required_capabilities=self._required_capabilities(request),
            estimated_cost=spec.base_cost,
            compliance_required=(
                compliance_level is not ComplianceLevel.BASIC
                or task_type is TaskType.COMPLIANCE_CHECK
            ),
            priority=spec.priority,
            sequence_number=next(self._sequence),
            assigned_agent=spec.agent,
        )

    @staticmethod
    def _required_capabilities(request: MultimodalInput) -> frozenset[Modality]:
        modalities = {Modality.TEXT}
        if request.code:
            modalities.add(Modality.CODE)
        if request.images:
            modalities.add(Modality.IMAGE)
        if request.videos:
            modalities.add(Modality.VIDEO)
        if request.documents:
            modalities.add(Modality.DOCUMENT)
        if request.compliance_policies:
            modalities.add(Modality.COMPLIANCE_POLICY)
        return frozenset(modalities)
