"""Deployment domain models.

A deployment is a read-only reconstruction of a ``{id}_{name}`` directory on
disk.  Its phase files are held in a fixed record with one field per phase so
that execution order is decided by :class:`Phase` declaration order, never by
mapping iteration.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class Phase(str, Enum):
    """Deployment phases, declared in execution order."""

    EXPAND = "expand"
    MIGRATE = "migrate"
    CONTRACT = "contract"
    POST = "post"

    @property
    def carries_sql(self) -> bool:
        """Whether SQL files are accepted for this phase (``post`` is script-only)."""
        return self is not Phase.POST

    @property
    def position(self) -> int:
        return _PHASE_ORDER.index(self)


_PHASE_ORDER: tuple[Phase, ...] = tuple(Phase)

# Phases that may contribute SQL, in order.
SQL_PHASES: tuple[Phase, ...] = tuple(p for p in _PHASE_ORDER if p.carries_sql)


class SQLFile(BaseModel):
    """A single non-empty SQL file belonging to one phase."""

    path: str = Field(..., min_length=1, description="Absolute or root-relative file path.")
    sequence: int = Field(
        default=0,
        ge=0,
        description="Batch number from ``phase.N.sql``; 0 for an un-numbered file.",
    )
    content: str = Field(default="", description="Full file text as read at load time.")


class ScriptFile(BaseModel):
    """An executable phase hook."""

    path: str = Field(..., min_length=1)
    is_default: bool = Field(
        default=False,
        description="True when resolved from the deployments root rather than the deployment itself.",
    )


class PhaseFiles(BaseModel):
    """The SQL batches and optional script contributed to a single phase."""

    sql_files: list[SQLFile] = Field(default_factory=list)
    script: ScriptFile | None = None

    @property
    def has_sql(self) -> bool:
        return bool(self.sql_files)

    @property
    def is_empty(self) -> bool:
        return not self.sql_files and self.script is None


class DeploymentPhases(BaseModel):
    """Fixed-size record of phase contents, one field per :class:`Phase`."""

    expand: PhaseFiles = Field(default_factory=PhaseFiles)
    migrate: PhaseFiles = Field(default_factory=PhaseFiles)
    contract: PhaseFiles = Field(default_factory=PhaseFiles)
    post: PhaseFiles = Field(default_factory=PhaseFiles)

    def get(self, phase: Phase) -> PhaseFiles:
        return getattr(self, phase.value)

    def ordered(self) -> Iterator[tuple[Phase, PhaseFiles]]:
        """Yield ``(phase, files)`` pairs in execution order."""
        for phase in _PHASE_ORDER:
            yield phase, self.get(phase)


class Deployment(BaseModel):
    """A named, ID-ordered unit of schema change."""

    id: str = Field(..., min_length=1, description="Fixed-width, sortable numeric identifier.")
    name: str = Field(..., description="Sanitized label embedded in the directory name.")
    directory: str | None = Field(
        default=None,
        description="Owning directory; ``None`` for deployments known only from the ledger.",
    )
    phases: DeploymentPhases = Field(default_factory=DeploymentPhases)
    applied_at: datetime | None = Field(
        default=None,
        description="Populated only once the deployment is recorded in the ledger.",
    )

    @property
    def dir_name(self) -> str:
        return f"{self.id}_{self.name}"

    def sql_phases(self) -> list[Phase]:
        """Return the phases that carry non-empty SQL, in execution order."""
        return [phase for phase in SQL_PHASES if self.phases.get(phase).has_sql]


class AppliedDeploymentRecord(BaseModel):
    """A row of the applied-deployments ledger."""

    id: str = Field(..., min_length=1)
    name: str
    applied_at: datetime
    checksum: str = ""


class DeploymentStatus(BaseModel):
    """Partition of local deployments against the ledger."""

    local: list[Deployment] = Field(default_factory=list)
    applied: list[Deployment] = Field(default_factory=list)
    pending: list[Deployment] = Field(default_factory=list)
    missing: list[Deployment] = Field(
        default_factory=list,
        description="Ledger entries with no matching local directory.",
    )

    @property
    def is_up_to_date(self) -> bool:
        return not self.pending and not self.missing
