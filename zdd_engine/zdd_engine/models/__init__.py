"""Domain models for the zdd engine."""

from zdd_engine.models.deployment import (
    SQL_PHASES,
    AppliedDeploymentRecord,
    Deployment,
    DeploymentPhases,
    DeploymentStatus,
    Phase,
    PhaseFiles,
    ScriptFile,
    SQLFile,
)
from zdd_engine.models.plan import ExecutionReport, Plan, Task, TaskKind

__all__ = [
    "SQL_PHASES",
    "AppliedDeploymentRecord",
    "Deployment",
    "DeploymentPhases",
    "DeploymentStatus",
    "ExecutionReport",
    "Phase",
    "PhaseFiles",
    "Plan",
    "SQLFile",
    "ScriptFile",
    "Task",
    "TaskKind",
]
