"""Budget-guarded, retrying execution of resolved plans.

Tasks run in plan order on one worker unless ``max_concurrency`` is above one,
in which case independent branches share a thread pool and a task is only
submitted once all of its dependencies have a result. Every task passes the
same gates in order: cancellation, dependencies, budget, the executor call
with retries, validation of what the executor reported, and only then the
budget charge. Failures are recorded per task; only a missing executor
aborts the whole plan.
"""

from __future__ import annotations

import logging
import math
import queue
import threading
import time
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any

from core.errors import (
    ExecutorFatalError,
    ExecutorNotFoundError,
    ExecutorTransientError,
    InsufficientResourceError,
)
from core.event_bus import PLAN_COMPLETED, TASK_COMPLETED, TASK_STARTED, EventBus
from executor.base_executor import BaseExecutor, ExecutorOutput, TaskContext
from executor.retry import RetryPolicy
from governance.audit_logger import AuditLogger
from governance.budget_ledger import BudgetLedger
from planner.execution_plan import ExecutionResult, Plan, Task
from planner.scheduler_hint import SchedulerHint, apply_hint
from planner.types import ComplianceStatus, TaskStatus, TaskType

logger = logging.getLogger("conductor.coordinator")

DEPENDENCIES_NOT_SATISFIED = "dependencies not satisfied"
INSUFFICIENT_BUDGET = "insufficient budget"
CANCELLED = "cancelled before dispatch"
DISCARDED = "cancelled while in flight; result discarded"
INVALID_REPORT = "invalid executor report"


@dataclass
class _Attempt:
    output: ExecutorOutput | None
    error: str
    attempts: int
    cancelled: bool = False


class _PlanRun:
    """Shared, synchronized state of one ``execute`` call."""

    def __init__(
        self,
        plan: Plan,
        prior_results: Iterable[ExecutionResult],
        cancel_event: threading.Event | None,
    ) -> None:
        self.plan = plan
        self.cancel_event = cancel_event
        self._lock = threading.Lock()
        self._results: dict[str, ExecutionResult] = {}
        self._outputs: dict[str, Any] = {
            r.task_id: r.output for r in prior_results if r.success
        }

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def wait(self, seconds: float, sleep: Callable[[float], None]) -> bool:
        """Back off for ``seconds``; return True if cancelled meanwhile."""
        if self.cancel_event is not None:
            return self.cancel_event.wait(seconds)
        if seconds > 0:
            sleep(seconds)
        return False

    def successful_outputs(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._outputs)

    def has_result(self, task_id: str) -> bool:
        with self._lock:
            return task_id in self._results

    def record(self, result: ExecutionResult) -> None:
        with self._lock:
            self._results[result.task_id] = result
            if result.success:
                self._outputs[result.task_id] = result.output

    def ordered(self, tasks: Iterable[Task]) -> list[ExecutionResult]:
        with self._lock:
            return [self._results[t.id] for t in tasks if t.id in self._results]


class ExecutionCoordinator:
    """Walks a plan, gating and dispatching each task to its executor."""

    def __init__(
        self,
        executors: Mapping[TaskType, BaseExecutor],
        ledger: BudgetLedger,
        retry_policy: RetryPolicy | None = None,
        event_bus: EventBus | None = None,
        audit_logger: AuditLogger | None = None,
        task_timeout: float | None = None,
        max_concurrency: int = 1,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1.")
        self.executors = dict(executors)
        self.ledger = ledger
        self.retry_policy = retry_policy or RetryPolicy()
        self.event_bus = event_bus or EventBus()
        self.audit_logger = audit_logger
        self.task_timeout = task_timeout
        self.max_concurrency = max_concurrency
        self._sleep = sleep
        self._clock = clock

    def execute(
        self,
        plan: Plan,
        selected_task_ids: Iterable[str] | None = None,
        *,
        prior_results: Iterable[ExecutionResult] = (),
        cancel_event: threading.Event | None = None,
        scheduler_hint: SchedulerHint | None = None,
    ) -> list[ExecutionResult]:
        """Execute the plan (or the selected subset) and return results in run order."""
        tasks = apply_hint(plan, scheduler_hint)
        if selected_task_ids is not None:
            selected = set(selected_task_ids)
            unknown = selected - set(plan.task_ids)
            if unknown:
                logger.warning(
                    "Ignoring %d selected ids not in plan %s", len(unknown), plan.id
                )
            tasks = [task for task in tasks if task.id in selected]

        for task in tasks:
            if task.type not in self.executors:
                raise ExecutorNotFoundError(task.type)

        run = _PlanRun(plan, prior_results, cancel_event)
        logger.info(
            "Executing plan %s for %s: %d tasks, concurrency %d",
            plan.id,
            plan.owner_id,
            len(tasks),
            self.max_concurrency,
        )
        if self.max_concurrency == 1:
            for task in tasks:
                self._run_task(run, task)
        else:
            self._run_parallel(run, tasks)

        results = run.ordered(tasks)
        self.event_bus.emit(
            PLAN_COMPLETED,
            {
                "plan_id": plan.id,
                "owner_id": plan.owner_id,
                "task_count": len(results),
                "total_cost_consumed": sum(r.cost_consumed for r in results),
                "overall_success": all(r.success for r in results),
            },
        )
        return results

    def _run_parallel(self, run: _PlanRun, tasks: list[Task]) -> None:
        pending = list(tasks)
        scheduled = {task.id for task in tasks}
        in_flight: dict[Future[ExecutionResult], Task] = {}
        with ThreadPoolExecutor(
            max_workers=self.max_concurrency, thread_name_prefix="conductor"
        ) as pool:
            while pending or in_flight:
                for task in list(pending):
                    if len(in_flight) >= self.max_concurrency:
                        break
                    if all(
                        dep_id not in scheduled or run.has_result(dep_id)
                        for dep_id in task.dependencies
                    ):
                        pending.remove(task)
                        in_flight[pool.submit(self._run_task, run, task)] = task
                if not in_flight:
                    raise RuntimeError(f"Plan {run.plan.id} has tasks that can never become ready.")
                done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    in_flight.pop(future)
                    future.result()

    def _run_task(self, run: _PlanRun, task: Task) -> ExecutionResult:
        plan = run.plan
        self.event_bus.emit(
            TASK_STARTED,
            {"plan_id": plan.id, "task_id": task.id, "task_type": task.type.value},
        )

        if run.cancelled:
            return self._finish(run, task, self._cancelled(task, CANCELLED))

        outputs = run.successful_outputs()
        if any(dep_id not in outputs for dep_id in task.dependencies):
            return self._finish(
                run,
                task,
                self._failed(task, DEPENDENCIES_NOT_SATISFIED, status=TaskStatus.SKIPPED),
            )

        if not self.ledger.has_budget(plan.owner_id, task.estimated_cost):
            return self._finish(run, task, self._failed(task, INSUFFICIENT_BUDGET))

        executor = self.executors.get(task.type)
        if executor is None:
            raise ExecutorNotFoundError(task.type)

        context = TaskContext.build(plan.id, plan.owner_id, task, outputs)
        started = self._clock()
        attempt = self._invoke_with_retry(run, executor, task, context)
        duration_ms = int((self._clock() - started) * 1000)

        if attempt.cancelled or run.cancelled:
            return self._finish(
                run, task, self._cancelled(task, DISCARDED, attempt.attempts, duration_ms)
            )
        if attempt.output is None:
            return self._finish(
                run,
                task,
                self._failed(task, attempt.error, attempts=attempt.attempts, duration_ms=duration_ms),
            )

        try:
            result = self._completed(task, attempt.output, attempt.attempts, duration_ms)
        except (TypeError, ValueError) as exc:
            logger.warning("Task %s returned an invalid report: %s", task.id, exc)
            return self._finish(
                run,
                task,
                self._failed(
                    task,
                    f"{INVALID_REPORT}: {exc}",
                    attempts=attempt.attempts,
                    duration_ms=duration_ms,
                ),
            )

        try:
            self.ledger.consume(plan.owner_id, result.cost_consumed)
        except InsufficientResourceError as exc:
            logger.warning("Budget refused charge for task %s: %s", task.id, exc)
            return self._finish(
                run,
                task,
                self._failed(
                    task, INSUFFICIENT_BUDGET, attempts=attempt.attempts, duration_ms=duration_ms
                ),
            )
        return self._finish(run, task, result)

    def _completed(
        self, task: Task, reported: ExecutorOutput, attempts: int, duration_ms: int
    ) -> ExecutionResult:
        """Validate the executor's report into a successful result; nothing is charged yet."""
        if reported.cost_consumed is None:
            cost = task.estimated_cost
        else:
            cost = float(reported.cost_consumed)
            if not math.isfinite(cost) or cost < 0:
                raise ValueError(f"cost_consumed must be finite and non-negative, got {cost!r}")
        return ExecutionResult(
            task_id=task.id,
            success=True,
            output=reported.output,
            cost_consumed=cost,
            compliance_status=self._compliance(task, reported),
            duration_ms=duration_ms,
            confidence=self._confidence(task, reported),
            status=TaskStatus.COMPLETED,
            attempts=attempts,
        )

    def _invoke_with_retry(
        self,
        run: _PlanRun,
        executor: BaseExecutor,
        task: Task,
        context: TaskContext,
    ) -> _Attempt:
        policy = self.retry_policy
        attempt = 0
        while True:
            attempt += 1
            try:
                raw = self._call(executor, task, context)
            except ExecutorTransientError as exc:
                if attempt >= policy.max_attempts:
                    logger.warning(
                        "Task %s failed after %d attempts: %s", task.id, attempt, exc
                    )
                    return _Attempt(None, f"transient failure after {attempt} attempts: {exc}", attempt)
                delay = policy.delay_for(attempt)
                logger.info(
                    "Task %s attempt %d/%d failed (%s); retrying in %.2fs",
                    task.id,
                    attempt,
                    policy.max_attempts,
                    exc,
                    delay,
                )
                if run.wait(delay, self._sleep):
                    return _Attempt(None, DISCARDED, attempt, cancelled=True)
                continue
            except ExecutorFatalError as exc:
                logger.warning("Task %s failed fatally: %s", task.id, exc)
                return _Attempt(None, f"fatal executor error: {exc}", attempt)
            except Exception as exc:
                logger.exception("Executor for task %s raised unexpectedly", task.id)
                return _Attempt(None, f"executor error: {type(exc).__name__}: {exc}", attempt)
            output = raw if isinstance(raw, ExecutorOutput) else ExecutorOutput(output=raw)
            return _Attempt(output, "", attempt)

    def _call(self, executor: BaseExecutor, task: Task, context: TaskContext) -> Any:
        if self.task_timeout is None:
            return executor.execute(task, context)

        box: queue.Queue[tuple[bool, Any]] = queue.Queue(maxsize=1)

        def target() -> None:
            try:
                box.put((True, executor.execute(task, context)))
            except Exception as exc:
                box.put((False, exc))

        threading.Thread(target=target, name=f"conductor-{task.id}", daemon=True).start()
        try:
            ok, value = box.get(timeout=self.task_timeout)
        except queue.Empty:
            raise ExecutorTransientError(
                f"Task {task.id} timed out after {self.task_timeout:g}s"
            ) from None
        if not ok:
            raise value
        return value

    @staticmethod
    def _compliance(task: Task, reported: ExecutorOutput) -> ComplianceStatus:
        if not task.compliance_required:
            return ComplianceStatus.COMPLIANT
        if reported.compliance_status is None:
            return ComplianceStatus.REQUIRES_REVIEW
        return ComplianceStatus(reported.compliance_status)

    @staticmethod
    def _confidence(task: Task, reported: ExecutorOutput) -> float:
        if reported.confidence is not None:
            reported_confidence = float(reported.confidence)
            if not math.isfinite(reported_confidence):
                raise ValueError(f"confidence must be finite, got {reported_confidence!r}")
            return min(max(reported_confidence, 0.0), 1.0)
        confidence = 0.8
        payload = reported.output
        if isinstance(payload, Mapping):
            tokens = payload.get("tokens_used")
            if isinstance(tokens, (int, float)) and tokens > 100:
                confidence += 0.1
            if task.type is TaskType.CODE_GENERATION and "code" in payload:
                confidence += 0.1
        return min(confidence, 1.0)

    @staticmethod
    def _failed(
        task: Task,
        reason: str,
        *,
        status: TaskStatus = TaskStatus.FAILED,
        attempts: int = 0,
        duration_ms: int = 0,
    ) -> ExecutionResult:
        return ExecutionResult(
            task_id=task.id,
            success=False,
            compliance_status=ComplianceStatus.NON_COMPLIANT,
            duration_ms=duration_ms,
            status=status,
            error=reason,
            attempts=attempts,
        )

    @staticmethod
    def _cancelled(
        task: Task, reason: str, attempts: int = 0, duration_ms: int = 0
    ) -> ExecutionResult:
        return ExecutionResult(
            task_id=task.id,
            success=False,
            compliance_status=ComplianceStatus.REQUIRES_REVIEW,
            duration_ms=duration_ms,
            status=TaskStatus.CANCELLED,
            error=reason,
            attempts=attempts,
        )

    def _finish(self, run: _PlanRun, task: Task, result: ExecutionResult) -> ExecutionResult:
        run.record(result)
        if result.success:
            logger.info("Task %s (%s) completed", task.id, task.type.value)
        else:
            logger.info("Task %s (%s) %s: %s", task.id, task.type.value, result.status.value.lower(), result.error)
        if self.audit_logger is not None:
            self.audit_logger.log(
                plan_id=run.plan.id,
                task_id=task.id,
                task_type=task.type.value,
                inputs={"description": task.description, "dependencies": sorted(task.dependencies)},
                outcome=result.status.value.lower(),
                cost=result.cost_consumed,
                reason=result.error,
            )
        self.event_bus.emit(
            TASK_COMPLETED,
            {
                "plan_id": run.plan.id,
                "task_id": task.id,
                "task_type": task.type.value,
                "success": result.success,
                "status": result.status.value,
                "cost_consumed": result.cost_consumed,
                "error": result.error,
            },
        )
        return result
