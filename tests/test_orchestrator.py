"""Conductor facade, plan storage and runtime wiring tests."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from core.errors import CyclicDependencyError, PlanNotFoundError
from core.event_bus import PLAN_CREATED, EventBus
from core.orchestrator import Conductor, Orchestrator
from executor.coordinator import ExecutionCoordinator
from executor.mock_executor import MockExecutor
from governance.budget_ledger import InMemoryBudgetLedger
from planner.dependency_graph import ChainRule, DependencyResolver
from planner.execution_plan import Plan
from planner.scheduler_hint import PassthroughHint
from planner.task_decomposer import TaskDecomposer
from planner.types import ComplianceLevel, ComplianceStatus, ConductorMode, MultimodalInput, TaskType
from storage.plan_store import InMemoryPlanStore, SQLPlanStore
from storage.sql_store import SQLStore

CONFIG = """
engine:
  max_concurrency: 1
budget:
  default_grant: 200
store:
  backend: memory
paths:
  db_path: workspace/plans.db
  audit_log_path: logs/audit.jsonl
"""


class CountingStore(InMemoryPlanStore):
    def __init__(self) -> None:
        super().__init__()
        self.saved: list[str] = []

    def save(self, plan: Plan) -> None:
        self.saved.append(plan.id)
        super().save(plan)


def make_conductor(
    grant: float = 200, resolver: DependencyResolver | None = None
) -> tuple[Conductor, CountingStore, EventBus]:
    bus = EventBus()
    store = CountingStore()
    coordinator = ExecutionCoordinator(
        executors={task_type: MockExecutor() for task_type in TaskType},
        ledger=InMemoryBudgetLedger({"alice": grant}),
        event_bus=bus,
        sleep=lambda _: None,
    )
    conductor = Conductor(
        decomposer=TaskDecomposer(),
        resolver=resolver or DependencyResolver(),
        coordinator=coordinator,
        store=store,
    )
    return conductor, store, bus


def test_create_then_execute_plan() -> None:
    conductor, store, bus = make_conductor()
    created: list[dict[str, Any]] = []
    bus.subscribe(PLAN_CREATED, created.append)

    plan = conductor.create_plan(
        "alice", MultimodalInput(text="generate and test a login function"), ConductorMode.GUIDED
    )
    report = conductor.execute_plan(plan.id)

    assert store.load(plan.id) == plan
    assert created[0]["plan_id"] == plan.id
    assert created[0]["mode"] == "GUIDED"
    assert report.overall_success
    assert report.total_tasks == 2
    assert report.total_cost_consumed == 45
    assert report.compliance_summary.overall is ComplianceStatus.COMPLIANT


def test_guided_execution_runs_only_approved_tasks() -> None:
    conductor, _, _ = make_conductor()
    plan = conductor.create_plan("alice", MultimodalInput(text="generate and test"))
    gen_id, _ = plan.task_ids

    report = conductor.execute_plan(plan.id, [gen_id])

    assert [r.task_id for r in report.results] == [gen_id]
    assert report.total_cost_consumed == 25


def test_unknown_plan_raises() -> None:
    conductor, _, _ = make_conductor()

    with pytest.raises(PlanNotFoundError):
        conductor.execute_plan("plan_missing")


def test_cyclic_plan_is_never_stored() -> None:
    resolver = DependencyResolver(
        [
            ChainRule(TaskType.CODE_GENERATION, TaskType.TESTING),
            ChainRule(TaskType.TESTING, TaskType.CODE_GENERATION),
        ]
    )
    conductor, store, _ = make_conductor(resolver=resolver)

    with pytest.raises(CyclicDependencyError):
        conductor.create_plan("alice", MultimodalInput(text="generate and test"))

    assert store.saved == []


def test_sql_plan_store_round_trip(tmp_path: Path) -> None:
    store = SQLPlanStore(SQLStore(tmp_path / "plans.db"))
    tasks = TaskDecomposer().decompose(
        MultimodalInput(text="generate code and deploy", compliance_policies=["SOC2"]),
        ComplianceLevel.GOVERNMENT,
    )
    plan = DependencyResolver().resolve(
        tasks, owner_id="alice", compliance_level=ComplianceLevel.GOVERNMENT
    )

    store.save(plan)
    store.save(plan)
    loaded = store.load(plan.id)

    assert loaded == plan
    assert store.load("plan_missing") is None
    assert store.list_plan_ids() == [plan.id]
    assert store.list_plan_ids(owner_id="bob") == []


def test_orchestrator_builds_runtime_from_config(tmp_path: Path) -> None:
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "default.yaml").write_text(CONFIG, encoding="utf-8")

    bundle = Orchestrator(root=tmp_path, overrides={"budget": {"grants": {"carol": 30}}}).build()

    assert isinstance(bundle.store, InMemoryPlanStore)
    assert bundle.ledger.remaining("alice") == 200
    assert bundle.ledger.remaining("carol") == 30
    assert bundle.registry[TaskType.TESTING].base_cost == 20

    plan = bundle.conductor.create_plan("carol", MultimodalInput(text="generate and test"))
    report = bundle.conductor.execute_plan(plan.id)

    assert [r.success for r in report.results] == [True, False]
    assert (tmp_path / "logs" / "audit.jsonl").exists()


def test_orchestrator_rejects_unknown_backends(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="executor backend"):
        Orchestrator(root=tmp_path, overrides={"executors": {"backend": "carrier-pigeon"}}).build()


def test_in_memory_sql_store_keeps_plans_across_sessions() -> None:
    store = SQLPlanStore(SQLStore())
    plan = DependencyResolver().resolve(TaskDecomposer().decompose(MultimodalInput(text="write docs")))

    store.save(plan)

    assert store.load(plan.id) == plan


def test_conductor_defaults_to_passthrough_hint() -> None:
    conductor, _, _ = make_conductor()

    assert isinstance(conductor.scheduler_hint, PassthroughHint)
