"""Plan persistence interface and its in-memory and SQLite implementations."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod

from sqlalchemy import select

from planner.execution_plan import Plan
from storage.schemas import PlanRecord
from storage.sql_store import SQLStore


class PlanStore(ABC):
    """Persists plans keyed by plan id."""

    @abstractmethod
    def save(self, plan: Plan) -> None:
        """Insert or replace a plan."""

    @abstractmethod
    def load(self, plan_id: str) -> Plan | None:
        """Return the plan, or ``None`` when absent."""


class InMemoryPlanStore(PlanStore):
    """Process-local store; plans are lost when the process exits."""

    def __init__(self) -> None:
        self._plans: dict[str, Plan] = {}
        self._lock = threading.Lock()

    def save(self, plan: Plan) -> None:
        with self._lock:
            self._plans[plan.id] = plan

    def load(self, plan_id: str) -> Plan | None:
        with self._lock:
            return self._plans.get(plan_id)


class SQLPlanStore(PlanStore):
    """Plans serialized as JSON rows in SQLite."""

    def __init__(self, sql_store: SQLStore) -> None:
        self.sql_store = sql_store
        self.sql_store.create_all()

    def save(self, plan: Plan) -> None:
        payload = plan.to_dict()
        with self.sql_store.session() as sess:
            record = sess.scalar(select(PlanRecord).where(PlanRecord.plan_id == plan.id))
            if record is None:
                record = PlanRecord(plan_id=plan.id, created_at=plan.created_at)
                sess.add(record)
            record.owner_id = plan.owner_id
            record.mode = plan.mode.value
            record.task_count = len(plan.tasks)
            record.estimated_cost = plan.estimated_cost
            record.payload = payload

    def load(self, plan_id: str) -> Plan | None:
        with self.sql_store.session() as sess:
            record = sess.scalar(select(PlanRecord).where(PlanRecord.plan_id == plan_id))
            if record is None:
                return None
            return Plan.from_dict(record.payload)

    def list_plan_ids(self, owner_id: str | None = None, limit: int = 20) -> list[str]:
        """Most recent plan ids, optionally for one owner."""
        stmt = select(PlanRecord.plan_id).order_by(PlanRecord.id.desc()).limit(limit)
        if owner_id is not None:
            stmt = stmt.where(PlanRecord.owner_id == owner_id)
        with self.sql_store.session() as sess:
            return list(sess.scalars(stmt))
