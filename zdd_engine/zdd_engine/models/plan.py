"""Execution plan models.

A plan is an ordered, ephemeral list of tasks produced for a single run.  It
is never persisted: the only durable state is the applied-deployments ledger,
which the plan executor updates once per fully-successful deployment.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from zdd_engine.models.deployment import Deployment, Phase


class TaskKind(str, Enum):
    """What a task executes."""

    SQL = "sql"
    SCRIPT = "script"


class Task(BaseModel):
    """An atomic, schedulable unit of a plan."""

    model_config = ConfigDict(frozen=True)

    kind: TaskKind
    path: str = Field(..., min_length=1, description="File to execute.")
    phase: Phase
    deployment: Deployment = Field(..., description="Owning deployment.")

    @property
    def deployment_id(self) -> str:
        return self.deployment.id


class Plan(BaseModel):
    """Ordered tasks for every pending deployment, plus the applied-ID snapshot."""

    tasks: list[Task] = Field(default_factory=list)
    already_applied: set[str] = Field(
        default_factory=set,
        description="Deployment IDs recorded in the ledger at planning time.",
    )
    deployments_path: str = Field(default="", description="Deployments root the plan was built from.")

    @property
    def is_empty(self) -> bool:
        return not self.tasks

    @property
    def head_deployment_id(self) -> str | None:
        """ID of the deployment owning the last task, or ``None`` for an empty plan."""
        if not self.tasks:
            return None
        return self.tasks[-1].deployment_id

    def deployments(self) -> list[Deployment]:
        """Return the distinct deployments in first-appearance order."""
        seen: dict[str, Deployment] = {}
        for task in self.tasks:
            seen.setdefault(task.deployment_id, task.deployment)
        return list(seen.values())


class ExecutionReport(BaseModel):
    """Outcome of a successful plan execution."""

    applied: list[str] = Field(
        default_factory=list,
        description="Deployment IDs recorded during this run, in order.",
    )
    tasks_executed: int = Field(default=0, ge=0)
    skipped: list[str] = Field(
        default_factory=list,
        description="Deployment IDs skipped because they were already in the ledger.",
    )
