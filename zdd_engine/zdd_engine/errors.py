"""Exception hierarchy for the zdd engine.

Every failure surfaced to the caller derives from :class:`ZddError` so that
the CLI can render a single terminal error without catching unrelated
exceptions.  Messages always name the deployment, phase, or file involved.
"""

from __future__ import annotations


class ZddError(Exception):
    """Base exception for all zdd engine errors."""

    def log_context(self) -> dict[str, str]:
        """Return the deployment ID, phase and path this error carries, for ``extra=``."""
        context: dict[str, str] = {}
        for field in ("deployment_id", "phase", "path"):
            value = getattr(self, field, None)
            if value is not None:
                context[field] = value
        return context


class DeploymentLoadError(ZddError):
    """The deployments directory or one of its units could not be read."""


class DeploymentCreateError(ZddError):
    """A new deployment could not be scaffolded on disk."""


class ValidationError(ZddError):
    """A structural invariant of the deployments or the plan was violated."""


class DatabaseError(ZddError):
    """A ledger or SQL operation failed inside the database provider."""


class CommandExecutionError(ZddError):
    """A script or shell command exited non-zero, was killed, or timed out."""

    def __init__(
        self,
        message: str,
        *,
        exit_code: int | None = None,
        output: str = "",
        timed_out: bool = False,
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output
        self.timed_out = timed_out


class ExecutionError(ZddError):
    """A plan task failed; the remaining plan was aborted."""

    def __init__(self, message: str, *, deployment_id: str, phase: str, path: str) -> None:
        super().__init__(message)
        self.deployment_id = deployment_id
        self.phase = phase
        self.path = path


class RecordError(ZddError):
    """A deployment executed successfully but could not be written to the ledger."""

    def __init__(self, message: str, *, deployment_id: str) -> None:
        super().__init__(message)
        self.deployment_id = deployment_id
