"""Top-level orchestration facade and runtime wiring."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.errors import PlanNotFoundError
from core.event_bus import PLAN_CREATED, EventBus
from core.policy_runtime import config_value, load_effective_config, resolve_runtime_paths
from core.result_aggregator import ExecutionReport, aggregate
from executor.base_executor import BaseExecutor
from executor.coordinator import ExecutionCoordinator
from executor.llm_executor import LLMExecutor
from executor.mock_executor import MockExecutor
from executor.retry import RetryPolicy
from governance.audit_logger import AuditLogger
from governance.budget_ledger import InMemoryBudgetLedger
from llm.llm_factory import build_llm
from planner.dependency_graph import DependencyResolver
from planner.execution_plan import ExecutionResult, Plan
from planner.scheduler_hint import PassthroughHint, SchedulerHint
from planner.task_decomposer import TaskDecomposer
from planner.task_registry import TaskRegistry
from planner.types import ComplianceLevel, ConductorMode, MultimodalInput, TaskType
from storage.plan_store import InMemoryPlanStore, PlanStore, SQLPlanStore
from storage.sql_store import SQLStore

logger = logging.getLogger("conductor.orchestrator")


class Conductor:
    """Plans a request, stores the plan and executes it on demand."""

    def __init__(
        self,
        decomposer: TaskDecomposer,
        resolver: DependencyResolver,
        coordinator: ExecutionCoordinator,
        store: PlanStore,
        event_bus: EventBus | None = None,
        scheduler_hint: SchedulerHint | None = None,
    ) -> None:
        self.decomposer = decomposer
        self.resolver = resolver
        self.coordinator = coordinator
        self.store = store
        self.event_bus = event_bus or coordinator.event_bus
        self.scheduler_hint = scheduler_hint or PassthroughHint()

    def create_plan(
        self,
        owner_id: str,
        request: MultimodalInput,
        mode: ConductorMode = ConductorMode.AUTO,
        compliance_level: ComplianceLevel = ComplianceLevel.BASIC,
    ) -> Plan:
        """Decompose and resolve a request; nothing is stored if either step fails."""
        tasks = self.decomposer.decompose(request, compliance_level)
        plan = self.resolver.resolve(
            tasks, owner_id=owner_id, mode=mode, compliance_level=compliance_level
        )
        self.store.save(plan)
        self.event_bus.emit(
            PLAN_CREATED,
            {
                "plan_id": plan.id,
                "owner_id": owner_id,
                "task_count": len(plan.tasks),
                "estimated_cost": plan.estimated_cost,
                "mode": mode.value,
            },
        )
        return plan

    def execute_plan(
        self,
        plan_id: str,
        approved_task_ids: Iterable[str] | None = None,
        *,
        prior_results: Iterable[ExecutionResult] = (),
        cancel_event: threading.Event | None = None,
    ) -> ExecutionReport:
        """Run a stored plan and aggregate its results."""
        plan = self.store.load(plan_id)
        if plan is None:
            raise PlanNotFoundError(plan_id)
        results = self.coordinator.execute(
            plan,
            approved_task_ids,
            prior_results=prior_results,
            cancel_event=cancel_event,
            scheduler_hint=self.scheduler_hint,
        )
        report = aggregate(results)
        logger.info(
            "Plan %s finished: success=%s cost=%.2f compliance=%s",
            plan_id,
            report.overall_success,
            report.total_cost_consumed,
            report.compliance_summary.overall.value,
        )
        return report


@dataclass
class RuntimeBundle:
    """Holds initialized runtime components."""

    config: dict[str, Any]
    conductor: Conductor
    registry: TaskRegistry
    ledger: InMemoryBudgetLedger
    store: PlanStore
    event_bus: EventBus


class Orchestrator:
    """Creates and wires runtime components from configuration."""

    def __init__(self, root: Path | None = None, overrides: dict[str, Any] | None = None) -> None:
        default_root = Path(__file__).resolve().parents[1]
        self.root = (root or default_root).resolve()
        self.overrides = overrides or {}

    def build(self) -> RuntimeBundle:
        config = load_effective_config(self.root, self.overrides)
        paths = resolve_runtime_paths(self.root, config)

        registry = TaskRegistry.from_yaml(paths["task_registry_path"])
        fallback = config_value(config, "decomposer.fallback_type", TaskType.CODE_GENERATION.value)
        decomposer = TaskDecomposer(
            registry=registry,
            fallback_type=TaskType(fallback) if fallback else None,
        )
        resolver = DependencyResolver(
            seconds_per_task=float(config_value(config, "engine.seconds_per_task_estimate", 30))
        )

        ledger = InMemoryBudgetLedger(
            grants=config_value(config, "budget.grants", {}),
            default_grant=float(config_value(config, "budget.default_grant", 0)),
        )
        event_bus = EventBus()
        timeout = config_value(config, "engine.task_timeout_seconds")
        coordinator = ExecutionCoordinator(
            executors=self._executors(config),
            ledger=ledger,
            retry_policy=RetryPolicy.from_config(config),
            event_bus=event_bus,
            audit_logger=AuditLogger(paths["audit_log_path"]),
            task_timeout=float(timeout) if timeout is not None else None,
            max_concurrency=int(config_value(config, "engine.max_concurrency", 1)),
        )
        store = self._store(config, paths["db_path"])
        conductor = Conductor(
            decomposer=decomposer,
            resolver=resolver,
            coordinator=coordinator,
            store=store,
            event_bus=event_bus,
        )
        return RuntimeBundle(
            config=config,
            conductor=conductor,
            registry=registry,
            ledger=ledger,
            store=store,
            event_bus=event_bus,
        )

    @staticmethod
    def _executors(config: dict[str, Any]) -> dict[TaskType, BaseExecutor]:
        backend = config_value(config, "executors.backend", "mock")
        executor: BaseExecutor
        if backend == "llm":
            executor = LLMExecutor(build_llm(config))
        elif backend == "mock":
            executor = MockExecutor()
        else:
            raise ValueError(f"Unknown executor backend: {backend}")
        return {task_type: executor for task_type in TaskType}

    @staticmethod
    def _store(config: dict[str, Any], db_path: Path) -> PlanStore:
        backend = config_value(config, "store.backend", "sql")
        if backend == "memory":
            return InMemoryPlanStore()
        if backend == "sql":
            return SQLPlanStore(SQLStore(db_path))
        raise ValueError(f"Unknown plan store backend: {backend}")
