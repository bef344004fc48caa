"""Workflow inspection commands."""

from typing import Annotated

import typer

from taskweave.cli.common import (
    console,
    create_table,
    error,
    format_status,
    info,
    success,
)
from taskweave.models import ProjectRole, TaskStatus, WorkflowType
from taskweave.status import normalize_task_status
from taskweave.workflow import TransitionValidator, build_default_registry

app = typer.Typer(
    name="workflow",
    help="Inspect workflow transition tables",
    no_args_is_help=True,
)


def _parse_status(value: str) -> TaskStatus:
    status = normalize_task_status(value)
    if status is None:
        error(f"Unknown status: {value}")
        raise typer.Exit(code=1)
    return status


@app.command("list")
def list_workflows() -> None:
    """List workflow types and their descriptions."""
    registry = build_default_registry()
    table = create_table("Workflows", "Type", "Rules", "Description")
    for definition in registry:
        rules = "stored scheme" if definition.is_dynamic else str(len(definition.rules))
        table.add_row(definition.workflow_type.value, rules, definition.description)
    console.print(table)


@app.command("show")
def show_workflow(
    workflow_type: Annotated[WorkflowType, typer.Argument(help="Workflow type")],
    from_status: Annotated[
        str | None, typer.Option("--from", "-f", help="Only rules leaving this status")
    ] = None,
) -> None:
    """Print a workflow's transition table."""
    registry = build_default_registry()
    definition = registry.get(workflow_type)
    info(definition.description)

    if definition.is_dynamic:
        info("Rules come from the project's stored workflow scheme")
        return

    status = _parse_status(from_status) if from_status else None
    table = create_table(f"{workflow_type.value} transitions", "Name", "From", "To", "Role")
    for rule in definition.rules:
        if status is not None and rule.from_status != status:
            continue
        table.add_row(
            rule.name,
            format_status(rule.from_status.value),
            format_status(rule.to_status.value),
            rule.required_role.value if rule.required_role else "-",
        )
    console.print(table)


@app.command("check")
def check_transition(
    workflow_type: Annotated[WorkflowType, typer.Argument(help="Workflow type")],
    from_status: Annotated[str, typer.Argument(help="Current status")],
    to_status: Annotated[str, typer.Argument(help="Target status")],
    role: Annotated[
        ProjectRole | None, typer.Option("--role", "-r", help="Acting project role")
    ] = None,
) -> None:
    """Say whether a role may move a task between two statuses."""
    validator = TransitionValidator(build_default_registry())
    source = _parse_status(from_status)
    target = _parse_status(to_status)

    if validator.is_transition_allowed(workflow_type, source, target, role):
        success(f"{source} -> {target} allowed")
        return
    error(f"{source} -> {target} not allowed for role {role.value if role else 'none'}")
    raise typer.Exit(code=1)
