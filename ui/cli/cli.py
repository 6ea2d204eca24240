"""CLI entrypoint for the orchestration engine."""

from __future__ import annotations

from typing import Optional

import typer

from ui.cli import commands

app = typer.Typer(help="Multimodal Task Orchestration Engine")
plans_app = typer.Typer(help="Stored plan commands")
config_app = typer.Typer(help="Configuration commands")
registry_app = typer.Typer(help="Task registry commands")


@app.command("plan")
def plan_cmd(
    text: str = typer.Argument(..., help="Request text"),
    code: Optional[str] = typer.Option(None, help="Code attached to the request"),
    policy: list[str] = typer.Option([], "--policy", help="Compliance policy id (repeatable)"),
    owner: str = typer.Option("cli", help="Owner id charged for execution"),
    mode: str = typer.Option("AUTO", help="AUTO, GUIDED or MANUAL"),
    compliance: str = typer.Option("BASIC", help="BASIC, ENTERPRISE or GOVERNMENT"),
) -> None:
    """Decompose and resolve a request into a stored plan."""
    commands.plan(
        text=text, code=code, policies=policy, owner=owner, mode=mode, compliance=compliance
    )


@app.command("run")
def run_cmd(
    text: str = typer.Argument(..., help="Request text"),
    code: Optional[str] = typer.Option(None, help="Code attached to the request"),
    policy: list[str] = typer.Option([], "--policy", help="Compliance policy id (repeatable)"),
    owner: str = typer.Option("cli", help="Owner id charged for execution"),
    compliance: str = typer.Option("BASIC", help="BASIC, ENTERPRISE or GOVERNMENT"),
) -> None:
    """Plan a request and execute it immediately."""
    commands.run(text=text, code=code, policies=policy, owner=owner, compliance=compliance)


@app.command("execute")
def execute_cmd(
    plan_id: str = typer.Argument(..., help="Stored plan id"),
    task: list[str] = typer.Option([], "--task", help="Approved task id (repeatable)"),
) -> None:
    """Execute a stored plan, optionally only the approved tasks."""
    commands.execute(plan_id=plan_id, task_ids=task)


@plans_app.command("list")
def plans_list_cmd(
    owner: Optional[str] = typer.Option(None, help="Only plans of this owner"),
    limit: int = typer.Option(20, min=1, max=200),
) -> None:
    """List recently stored plan ids."""
    commands.plans_list(owner=owner, limit=limit)


@config_app.command("show")
def config_show_cmd() -> None:
    """Show effective configuration."""
    commands.config_show()


@registry_app.command("list")
def registry_list_cmd() -> None:
    """List task types with cost and priority."""
    commands.registry_list()


app.add_typer(plans_app, name="plans")
app.add_typer(config_app, name="config")
app.add_typer(registry_app, name="registry")


def main() -> None:
    """Console script entrypoint."""
    app()


if __name__ == "__main__":
    main()
