"""zdd CLI application -- Typer-based operator interface.

Provides commands to scaffold deployments, inspect their status against the
ledger, preview the execution plan, apply it, and dump the current schema.
Human-readable output goes to *stderr* via Rich; the schema dump goes to
*stdout* so it can be redirected.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console

from zdd_cli.display import (
    display_error,
    display_execution_report,
    display_plan,
    display_status,
    make_progress_observer,
)
from zdd_engine.config import Settings, load_settings
from zdd_engine.errors import ZddError
from zdd_engine.executor.plan_executor import PlanExecutor
from zdd_engine.executor.shell_executor import ShellCommandExecutor
from zdd_engine.loader.deployment_loader import load_deployments
from zdd_engine.loader.factory import create_deployment
from zdd_engine.logging_config import configure_logging
from zdd_engine.models.deployment import DeploymentStatus
from zdd_engine.models.plan import ExecutionReport, Plan
from zdd_engine.planner.comparator import compare_deployments
from zdd_engine.planner.plan_builder import build_plan
from zdd_engine.state.provider import SQLAlchemyDatabaseProvider

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App & global state
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="zdd",
    help="zdd - zero-downtime expand/migrate/contract deployments",
    no_args_is_help=True,
)
console = Console(stderr=True)

# Mutable global options populated by the Typer callback.
_settings: Settings | None = None


# ---------------------------------------------------------------------------
# Callback -- global options
# ---------------------------------------------------------------------------


@app.callback()
def _global_options(
    database_url: str | None = typer.Option(
        None,
        "--database-url",
        "-d",
        help="Database connection URL (postgresql://... or sqlite:///...).",
        envvar="ZDD_DATABASE_URL",
    ),
    deployments_path: Path | None = typer.Option(
        None,
        "--deployments-path",
        "-m",
        help="Directory holding deployment folders [default: migrations].",
        envvar="ZDD_DEPLOYMENTS_PATH",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit log records as JSON lines."),
) -> None:
    """Global options applied to every command."""
    global _settings  # noqa: PLW0603
    overrides: dict[str, object] = {}
    if database_url is not None:
        overrides["database_url"] = database_url
    if deployments_path is not None:
        overrides["deployments_path"] = deployments_path
    if verbose:
        overrides["debug"] = True
    if json_logs:
        overrides["structured_logging"] = True

    _settings = load_settings(**overrides)
    configure_logging(verbose=_settings.debug, structured=_settings.structured_logging)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_settings() -> Settings:
    return _settings if _settings is not None else load_settings()


def _require_database_url(settings: Settings) -> str:
    if not settings.is_database_configured():
        console.print("[red]A database URL is required (--database-url or ZDD_DATABASE_URL).[/red]")
        raise typer.Exit(code=1)
    return str(settings.database_url)


def _fail(exc: ZddError) -> typer.Exit:
    logger.debug("Command failed: %s", exc, exc_info=exc, extra=exc.log_context())
    display_error(console, exc)
    return typer.Exit(code=1)


def _open_database(settings: Settings, database_url: str) -> SQLAlchemyDatabaseProvider:
    return SQLAlchemyDatabaseProvider.from_url(
        database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )


async def _load_status(settings: Settings) -> DeploymentStatus:
    local = load_deployments(settings.deployments_path)
    if not settings.is_database_configured():
        return compare_deployments(local, [])

    async with _open_database(settings, str(settings.database_url)) as db:
        await db.init_schema()
        ledger = await db.get_applied_deployments()
    return compare_deployments(local, ledger)


async def _build(settings: Settings, database_url: str) -> Plan:
    async with _open_database(settings, database_url) as db:
        await db.init_schema()
        return await build_plan(settings.deployments_path, db)


async def _deploy(settings: Settings, database_url: str) -> ExecutionReport:
    commands = ShellCommandExecutor(timeout=settings.script_timeout_seconds)
    async with _open_database(settings, database_url) as db:
        await db.init_schema()
        plan = await build_plan(settings.deployments_path, db)
        executor = PlanExecutor(db, commands, observer=make_progress_observer(console))
        return await executor.execute(plan)


async def _dump_schema(settings: Settings, database_url: str) -> str:
    async with _open_database(settings, database_url) as db:
        return await db.dump_schema()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def create(
    name: str = typer.Argument(..., help="Human-readable deployment name."),
) -> None:
    """Scaffold a new deployment with the next sequential ID."""
    settings = _get_settings()
    try:
        deployment = create_deployment(settings.deployments_path, name)
    except ZddError as exc:
        raise _fail(exc) from exc
    console.print(f"Created deployment [bold]{deployment.directory}[/bold]")


@app.command("list")
def list_deployments() -> None:
    """Show applied, pending and missing deployments."""
    settings = _get_settings()
    try:
        status = asyncio.run(_load_status(settings))
    except ZddError as exc:
        raise _fail(exc) from exc
    display_status(console, status)


@app.command()
def plan() -> None:
    """Print the ordered task list without executing anything."""
    settings = _get_settings()
    database_url = _require_database_url(settings)
    try:
        built = asyncio.run(_build(settings, database_url))
    except ZddError as exc:
        raise _fail(exc) from exc
    display_plan(console, built)


@app.command()
def deploy() -> None:
    """Apply every pending deployment in ID order."""
    settings = _get_settings()
    database_url = _require_database_url(settings)
    try:
        report = asyncio.run(_deploy(settings, database_url))
    except ZddError as exc:
        raise _fail(exc) from exc
    display_execution_report(console, report)


app.command("migrate", help="Alias for 'deploy'.")(deploy)


@app.command()
def schema() -> None:
    """Print the current database schema to stdout."""
    settings = _get_settings()
    database_url = _require_database_url(settings)
    try:
        dump = asyncio.run(_dump_schema(settings, database_url))
    except ZddError as exc:
        raise _fail(exc) from exc
    typer.echo(dump)
