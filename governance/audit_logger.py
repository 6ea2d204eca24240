"""Structured JSONL audit trail of task outcomes."""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger("conductor.audit")


def hash_inputs(inputs: dict[str, Any]) -> str:
    payload = json.dumps(inputs, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


@dataclass(frozen=True)
class AuditRecord:
    """One task outcome. Inputs are stored only as a hash."""

    plan_id: str
    task_id: str
    task_type: str
    inputs_hash: str
    outcome: str
    cost: float
    reason: str = ""
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())


class AuditLogger:
    """Appends one JSON line per completed, failed, skipped or cancelled task."""

    def __init__(self, log_path: Path) -> None:
        self.log_path = log_path
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def log(
        self,
        plan_id: str,
        task_id: str,
        task_type: str,
        inputs: dict[str, Any],
        outcome: str,
        cost: float,
        reason: str = "",
    ) -> AuditRecord:
        record = AuditRecord(
            plan_id=plan_id,
            task_id=task_id,
            task_type=task_type,
            inputs_hash=hash_inputs(inputs),
            outcome=outcome,
            cost=cost,
            reason=reason,
        )
        line = json.dumps(asdict(record), ensure_ascii=True)
        # Workers share the file in parallel mode.
        with self._lock, self.log_path.open("a", encoding="utf-8") as fh:
            fh.write(line + "\n")
        logger.debug(line)
        return record

    def records(self, plan_id: str | None = None) -> list[AuditRecord]:
        """Read the trail back, optionally for a single plan."""
        if not self.log_path.exists():
            return []
        with self._lock:
            lines = self.log_path.read_text(encoding="utf-8").splitlines()
        records = [AuditRecord(**json.loads(line)) for line in lines if line.strip()]
        if plan_id is None:
            return records
        return [r for r in records if r.plan_id == plan_id]
