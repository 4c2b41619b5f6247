"""Rich output formatting for the zdd CLI.

All functions write to a :class:`rich.console.Console` instance (typically
bound to *stderr*) so that machine-readable output on *stdout*, such as the
schema dump, is never polluted with human-readable decoration.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from zdd_engine.executor.plan_executor import ExecutionEvent, Observer

if TYPE_CHECKING:
    from zdd_engine.models.deployment import Deployment, DeploymentStatus
    from zdd_engine.models.plan import ExecutionReport, Plan, Task

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_PHASE_COLOURS: dict[str, str] = {
    "expand": "green",
    "migrate": "cyan",
    "contract": "magenta",
    "post": "yellow",
}


def _format_timestamp(value: datetime | None) -> str:
    return value.strftime(_TIMESTAMP_FORMAT) if value is not None else "-"


def _coloured_phase(phase: str) -> str:
    colour = _PHASE_COLOURS.get(phase, "white")
    return f"[{colour}]{phase}[/{colour}]"


def sql_phase_tags(deployment: Deployment) -> str:
    """Return ``" [expand+contract]"`` style tags, or ``""`` when no phase has SQL."""
    phases = [phase.value for phase in deployment.sql_phases()]
    return f" [{'+'.join(phases)}]" if phases else ""


# ---------------------------------------------------------------------------
# Status report
# ---------------------------------------------------------------------------


def display_status(console: Console, status: DeploymentStatus) -> None:
    """Render the applied / pending / missing partition.

    Parameters
    ----------
    console:
        Rich console to write to (typically stderr).
    status:
        Output of :func:`~zdd_engine.planner.comparator.compare_deployments`.
    """
    console.print("[bold]Deployment Status:[/bold]")
    console.print("==================")

    if status.applied:
        console.print(f"\n[bold green]Applied ({len(status.applied)}):[/bold green]")
        for d in status.applied:
            console.print(
                f"  [green]✓[/green] {d.id} - {escape(d.name)} (applied: {_format_timestamp(d.applied_at)})"
            )

    if status.pending:
        console.print(f"\n[bold yellow]Pending ({len(status.pending)}):[/bold yellow]")
        for d in status.pending:
            console.print(f"  [yellow]○[/yellow] {d.id} - {escape(d.name)}{escape(sql_phase_tags(d))}")

    if status.missing:
        console.print(f"\n[bold red]Missing Locally ({len(status.missing)}):[/bold red]")
        for d in status.missing:
            console.print(
                f"  [red]![/red] {d.id} - {escape(d.name)} (applied: {_format_timestamp(d.applied_at)})"
            )

    if status.is_up_to_date:
        console.print("\n[green]All deployments are up to date![/green]")


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------


def display_plan(console: Console, plan: Plan) -> None:
    """Render the ordered task list, marking the head deployment."""
    if plan.is_empty:
        console.print("[dim]No pending deployments to apply.[/dim]")
        return

    head_id = plan.head_deployment_id
    deployments = plan.deployments()
    console.print(
        Panel(
            "\n".join(
                [
                    f"[bold]Deployments:[/bold] {len(deployments)}",
                    f"[bold]Tasks:[/bold]       {len(plan.tasks)}",
                    f"[bold]Head:[/bold]        {head_id}",
                ]
            ),
            title="Deployment Plan",
            border_style="blue",
        )
    )

    table = Table(title="Plan Tasks", show_lines=False, pad_edge=True, expand=False)
    table.add_column("#", style="dim", width=4, justify="right")
    table.add_column("Deployment", style="bold")
    table.add_column("Phase")
    table.add_column("Kind")
    table.add_column("Path", overflow="fold")
    table.add_column("Head", justify="center")

    for idx, task in enumerate(plan.tasks, start=1):
        table.add_row(
            str(idx),
            escape(task.deployment.dir_name),
            _coloured_phase(task.phase.value),
            task.kind.value,
            escape(task.path),
            "[bold green]✓[/bold green]" if task.deployment_id == head_id else "",
        )

    console.print(table)


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def make_progress_observer(console: Console) -> Observer:
    """Return an executor observer that prints one line per event."""

    def _observe(event: ExecutionEvent, deployment: Deployment, task: Task | None) -> None:
        label = f"{deployment.id} - {escape(deployment.name)}"
        if event is ExecutionEvent.DEPLOYMENT_STARTED:
            console.print(f"[bold]Applying[/bold] {label}")
        elif event is ExecutionEvent.TASK_STARTED and task is not None:
            console.print(f"  {_coloured_phase(task.phase.value)} {task.kind.value}: {escape(task.path)}")
        elif event is ExecutionEvent.DEPLOYMENT_APPLIED:
            console.print(f"  [green]✓[/green] Applied {label}")
        elif event is ExecutionEvent.DEPLOYMENT_SKIPPED:
            console.print(f"  [dim]Skipped {label} (already applied)[/dim]")

    return _observe


def display_execution_report(console: Console, report: ExecutionReport) -> None:
    """Summarise a completed run."""
    if not report.applied and not report.skipped:
        console.print("[green]No pending deployments to apply.[/green]")
        return
    console.print(
        f"\n[bold green]Applied {len(report.applied)} deployment(s), "
        f"executed {report.tasks_executed} task(s).[/bold green]"
    )


def display_error(console: Console, exc: BaseException) -> None:
    """Render a terminal error in red."""
    console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}")
