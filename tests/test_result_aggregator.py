"""Result aggregation tests."""

from __future__ import annotations

from core.result_aggregator import aggregate
from planner.execution_plan import ExecutionResult
from planner.types import ComplianceStatus, TaskStatus


def test_mixed_results_roll_up() -> None:
    results = [
        ExecutionResult("a", True, cost_consumed=25, compliance_status=ComplianceStatus.COMPLIANT, duration_ms=10),
        ExecutionResult("b", True, cost_consumed=20, compliance_status=ComplianceStatus.REQUIRES_REVIEW, duration_ms=5),
        ExecutionResult(
            "c",
            False,
            compliance_status=ComplianceStatus.NON_COMPLIANT,
            status=TaskStatus.SKIPPED,
            error="dependencies not satisfied",
        ),
    ]

    report = aggregate(results)

    assert report.total_tasks == 3
    assert report.total_cost_consumed == 45
    assert report.overall_success is False
    assert report.total_duration_ms == 15
    assert report.compliance_summary.compliant == 1
    assert report.compliance_summary.requires_review == 1
    assert report.compliance_summary.non_compliant == 1
    assert report.compliance_summary.overall is ComplianceStatus.NON_COMPLIANT


def test_review_only_results_stay_compliant() -> None:
    report = aggregate(
        [ExecutionResult("a", True, compliance_status=ComplianceStatus.REQUIRES_REVIEW)]
    )

    assert report.overall_success
    assert report.compliance_summary.overall is ComplianceStatus.COMPLIANT


def test_empty_run_is_successful() -> None:
    report = aggregate([])

    assert report.overall_success
    assert report.total_tasks == 0
    assert report.to_dict()["compliance_summary"]["overall"] == "COMPLIANT"
