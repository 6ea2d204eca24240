"""Roll-up of per-task results into a cost and compliance report."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from planner.execution_plan import ExecutionResult
from planner.types import ComplianceStatus


@dataclass(frozen=True)
class ComplianceSummary:
    compliant: int = 0
    non_compliant: int = 0
    requires_review: int = 0

    @property
    def overall(self) -> ComplianceStatus:
        # REQUIRES_REVIEW alone never makes the run non-compliant.
        if self.non_compliant:
            return ComplianceStatus.NON_COMPLIANT
        return ComplianceStatus.COMPLIANT

    def to_dict(self) -> dict[str, Any]:
        return {
            "compliant": self.compliant,
            "non_compliant": self.non_compliant,
            "requires_review": self.requires_review,
            "overall": self.overall.value,
        }


@dataclass(frozen=True)
class ExecutionReport:
    results: list[ExecutionResult] = field(default_factory=list)
    total_cost_consumed: float = 0.0
    overall_success: bool = True
    compliance_summary: ComplianceSummary = field(default_factory=ComplianceSummary)
    total_duration_ms: int = 0

    @property
    def total_tasks(self) -> int:
        return len(self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "total_tasks": self.total_tasks,
            "total_cost_consumed": self.total_cost_consumed,
            "overall_success": self.overall_success,
            "compliance_summary": self.compliance_summary.to_dict(),
            "total_duration_ms": self.total_duration_ms,
        }


def aggregate(results: Sequence[ExecutionResult]) -> ExecutionReport:
    """Summarize results; an empty run counts as successful."""
    statuses = [r.compliance_status for r in results]
    summary = ComplianceSummary(
        compliant=statuses.count(ComplianceStatus.COMPLIANT),
        non_compliant=statuses.count(ComplianceStatus.NON_COMPLIANT),
        requires_review=statuses.count(ComplianceStatus.REQUIRES_REVIEW),
    )
    return ExecutionReport(
        results=list(results),
        total_cost_consumed=sum(r.cost_consumed for r in results),
        overall_success=all(r.success for r in results),
        compliance_summary=summary,
        total_duration_ms=sum(r.duration_ms for r in results),
    )
