"""Capability interfaces for the plan executor's collaborators.

The planner and executor depend only on these protocols.  Production code
uses :class:`~zdd_engine.state.provider.SQLAlchemyDatabaseProvider` and
:class:`~zdd_engine.executor.shell_executor.ShellCommandExecutor`; tests may
substitute any object with matching method signatures.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field

from zdd_engine.models.deployment import AppliedDeploymentRecord, Deployment


class CommandResult(BaseModel):
    """Outcome of a successful script or shell command."""

    exit_code: int = 0
    output: str = Field(default="", description="Combined stdout and stderr.")
    duration_seconds: float = Field(default=0.0, ge=0.0)


class DatabaseProvider(Protocol):
    """Structural interface for the ledger and SQL execution backend.

    Implementations are **not** required to subclass this protocol; they only
    need to expose methods with matching signatures (duck typing).
    """

    async def init_schema(self) -> None:
        """Create the ledger schema, table and index if they do not exist."""
        ...

    async def get_applied_deployments(self) -> list[AppliedDeploymentRecord]:
        """Return every ledger row ordered by ``applied_at`` then ``id``."""
        ...

    async def get_last_applied_deployment(self) -> AppliedDeploymentRecord | None:
        """Return the most recently applied ledger row, or ``None``."""
        ...

    async def execute_sql_in_transaction(self, *sql: str) -> None:
        """Execute one or more SQL batches atomically.

        Parameters
        ----------
        sql:
            Raw SQL batches.  Each may contain several statements; all of
            them run inside a single transaction that is rolled back on the
            first error.
        """
        ...

    async def record_deployment(self, deployment: Deployment, checksum: str) -> None:
        """Insert the ledger row for a fully applied deployment.

        Parameters
        ----------
        deployment:
            The deployment whose tasks all succeeded.
        checksum:
            Fingerprint from :func:`~zdd_engine.planner.checksum.calculate_checksum`.
        """
        ...

    async def dump_schema(self) -> str:
        """Return a human-readable description of the current schema."""
        ...

    def connection_url(self) -> str:
        """Return a driver-free connection string suitable for scripts."""
        ...

    async def close(self) -> None:
        """Release pooled connections."""
        ...


class CommandExecutor(Protocol):
    """Structural interface for running phase scripts and shell commands."""

    async def run_script(
        self,
        path: Path,
        working_dir: Path,
        env: Mapping[str, str],
        timeout: float | None = None,
    ) -> CommandResult:
        """Run an executable file.

        Parameters
        ----------
        path:
            The script to execute.
        working_dir:
            Working directory for the child process.
        env:
            Variables merged over the parent environment.
        timeout:
            Wall-clock limit in seconds; ``None`` uses the executor default.

        Raises
        ------
        CommandExecutionError
            On non-zero exit, signal termination, or timeout.
        """
        ...

    async def run_command(
        self,
        command: str,
        working_dir: Path,
        env: Mapping[str, str],
        timeout: float | None = None,
    ) -> CommandResult:
        """Run *command* through ``sh -c``; same contract as :meth:`run_script`."""
        ...
