"""Plan execution and its collaborator interfaces."""

from zdd_engine.executor.base import CommandExecutor, CommandResult, DatabaseProvider
from zdd_engine.executor.plan_executor import (
    ExecutionEvent,
    Observer,
    PlanExecutor,
    build_script_env,
)
from zdd_engine.executor.shell_executor import ShellCommandExecutor

__all__ = [
    "CommandExecutor",
    "CommandResult",
    "DatabaseProvider",
    "ExecutionEvent",
    "Observer",
    "PlanExecutor",
    "ShellCommandExecutor",
    "build_script_env",
]
