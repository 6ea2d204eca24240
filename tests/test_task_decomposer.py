"""Task decomposition tests."""

from __future__ import annotations

import pytest

from core.errors import DecompositionError
from planner.task_decomposer import TaskDecomposer
from planner.task_registry import TaskRegistry
from planner.types import ComplianceLevel, Modality, MultimodalInput, TaskType


def test_generate_and_test_request_yields_generation_and_testing() -> None:
    tasks = TaskDecomposer().decompose(MultimodalInput(text="generate and test a login function"))

    assert [t.type for t in tasks] == [TaskType.CODE_GENERATION, TaskType.TESTING]
    assert all(not t.dependencies for t in tasks)
    assert tasks[0].description == "Generate code based on: generate and test a login function"
    assert tasks[0].estimated_cost == 25
    assert tasks[0].priority == 8
    assert tasks[0].assigned_agent == "CodeGenerationAgent"
    assert tasks[0].sequence_number < tasks[1].sequence_number
    assert len({t.id for t in tasks}) == 2


def test_keywords_match_inside_longer_words() -> None:
    decomposer = TaskDecomposer()

    assert decomposer.classify(MultimodalInput(text="autogenerate the readme")) == [
        TaskType.CODE_GENERATION,
        TaskType.DOCUMENTATION,
    ]
    assert decomposer.classify(MultimodalInput(text="retest the login")) == [TaskType.TESTING]
    assert decomposer.classify(MultimodalInput(text="prebuild and redeploy")) == [
        TaskType.CODE_GENERATION,
        TaskType.DEPLOYMENT,
    ]
    assert decomposer.classify(MultimodalInput(text="community outreach plan")) == [
        TaskType.TESTING
    ]
    assert decomposer.classify(MultimodalInput(text="Testing the RELEASE")) == [
        TaskType.TESTING,
        TaskType.DEPLOYMENT,
    ]


def test_code_content_is_classified_too() -> None:
    request = MultimodalInput(code="def f():\n    # fix the off-by-one error\n    pass")

    tasks = TaskDecomposer().decompose(request)

    assert [t.type for t in tasks] == [TaskType.DEBUGGING]
    assert tasks[0].required_capabilities == frozenset({Modality.TEXT, Modality.CODE})


def test_compliance_policies_always_add_compliance_check() -> None:
    request = MultimodalInput(
        text="document the api",
        images=["diagram.png"],
        documents=["doc-1"],
        compliance_policies=["SOC2"],
    )

    tasks = TaskDecomposer().decompose(request, ComplianceLevel.BASIC)

    assert [t.type for t in tasks] == [TaskType.DOCUMENTATION, TaskType.COMPLIANCE_CHECK]
    docs, compliance = tasks
    assert docs.compliance_required is False
    assert compliance.compliance_required is True
    assert compliance.required_capabilities == frozenset(
        {Modality.TEXT, Modality.IMAGE, Modality.DOCUMENT, Modality.COMPLIANCE_POLICY}
    )


def test_non_basic_compliance_level_marks_every_task() -> None:
    tasks = TaskDecomposer().decompose(
        MultimodalInput(text="build and deploy"), ComplianceLevel.ENTERPRISE
    )

    assert [t.type for t in tasks] == [TaskType.CODE_GENERATION, TaskType.DEPLOYMENT]
    assert all(t.compliance_required for t in tasks)


def test_unmatched_request_falls_back_to_code_generation() -> None:
    tasks = TaskDecomposer().decompose(MultimodalInput(text="hello there"))

    assert len(tasks) == 1
    assert tasks[0].type is TaskType.CODE_GENERATION


def test_empty_request_uses_requirements_placeholder() -> None:
    tasks = TaskDecomposer().decompose(MultimodalInput())

    assert tasks[0].description == "Generate code based on: requirements"


def test_disabled_fallback_raises_decomposition_error() -> None:
    decomposer = TaskDecomposer(fallback_type=None)

    with pytest.raises(DecompositionError):
        decomposer.decompose(MultimodalInput(text="hello there"))


def test_cost_and_priority_come_from_registry() -> None:
    registry = TaskRegistry.from_mapping({"TESTING": {"base_cost": 3, "priority": 99}})

    tasks = TaskDecomposer(registry=registry).decompose(MultimodalInput(text="unit tests"))

    assert tasks[0].estimated_cost == 3
    assert tasks[0].priority == 99
