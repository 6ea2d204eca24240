"""Typer command handlers."""

from __future__ import annotations

import json
from enum import Enum
from pathlib import Path
from typing import TypeVar

import typer

from core.errors import ConductorError
from core.orchestrator import Orchestrator, RuntimeBundle
from planner.dependency_graph import execution_layers
from planner.execution_plan import Plan
from planner.types import ComplianceLevel, ConductorMode, MultimodalInput
from storage.plan_store import SQLPlanStore

E = TypeVar("E", bound=Enum)


def _runtime(root: Path | None = None) -> RuntimeBundle:
    bundle = Orchestrator(root=root).build()
    return bundle


def _choice(enum_cls: type[E], value: str, option: str) -> E:
    try:
        return enum_cls(value.upper())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        typer.echo(f"Invalid --{option} {value!r}; expected one of: {allowed}", err=True)
        raise typer.Exit(code=1) from None


def _request(text: str, code: str | None, policies: list[str]) -> MultimodalInput:
    return MultimodalInput(text=text, code=code, compliance_policies=list(policies))


def _echo_plan(plan: Plan) -> None:
    typer.echo(f"Plan: {plan.id} (owner={plan.owner_id}, mode={plan.mode.value})")
    for index, task in enumerate(plan.tasks, start=1):
        deps = ", ".join(sorted(task.dependencies)) or "-"
        typer.echo(
            f"{index}. {task.id} {task.type.value} cost={task.estimated_cost:g} "
            f"priority={task.priority} deps={deps}"
        )
    layers = " | ".join(", ".join(layer) for layer in execution_layers(plan))
    typer.echo(f"Layers: {layers}")
    typer.echo(f"Critical path: {' -> '.join(plan.critical_path)}")
    typer.echo(
        f"Estimated cost: {plan.estimated_cost:g} | "
        f"Estimated duration: {plan.estimated_duration_ms / 1000:g}s"
    )
    for warning in plan.compliance_warnings:
        typer.echo(f"Warning: {warning}")


def plan(
    text: str,
    code: str | None,
    policies: list[str],
    owner: str,
    mode: str,
    compliance: str,
) -> None:
    """Create and store a plan."""
    mode_value = _choice(ConductorMode, mode, "mode")
    level = _choice(ComplianceLevel, compliance, "compliance")
    bundle = _runtime()
    try:
        created = bundle.conductor.create_plan(
            owner_id=owner,
            request=_request(text, code, policies),
            mode=mode_value,
            compliance_level=level,
        )
    except ConductorError as exc:
        typer.echo(f"Planning failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    _echo_plan(created)


def run(text: str, code: str | None, policies: list[str], owner: str, compliance: str) -> None:
    """Plan and execute one request."""
    level = _choice(ComplianceLevel, compliance, "compliance")
    bundle = _runtime()
    try:
        created = bundle.conductor.create_plan(
            owner_id=owner,
            request=_request(text, code, policies),
            compliance_level=level,
        )
        _echo_plan(created)
        report = bundle.conductor.execute_plan(created.id)
    except ConductorError as exc:
        typer.echo(f"Run failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(json.dumps(report.to_dict(), indent=2, default=str))


def execute(plan_id: str, task_ids: list[str]) -> None:
    """Execute a stored plan."""
    bundle = _runtime()
    try:
        report = bundle.conductor.execute_plan(plan_id, task_ids or None)
    except ConductorError as exc:
        typer.echo(f"Execution failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(json.dumps(report.to_dict(), indent=2, default=str))


def plans_list(owner: str | None, limit: int) -> None:
    """List stored plan ids."""
    bundle = _runtime()
    if not isinstance(bundle.store, SQLPlanStore):
        typer.echo("Plan listing needs the sql store backend.", err=True)
        raise typer.Exit(code=1)
    for plan_id in bundle.store.list_plan_ids(owner_id=owner, limit=limit):
        typer.echo(plan_id)


def config_show() -> None:
    """Show effective runtime config."""
    bundle = _runtime()
    typer.echo(json.dumps(bundle.config, indent=2, default=str))


def registry_list() -> None:
    """List task types and their registry entries."""
    bundle = _runtime()
    for task_type, spec in bundle.registry.items():
        typer.echo(
            f"{task_type.value}: cost={spec.base_cost:g} priority={spec.priority} agent={spec.agent}"
        )
