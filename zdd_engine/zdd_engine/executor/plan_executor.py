"""Execute a plan task by task and record each completed deployment.

Execution is strictly sequential and fail-fast.  A deployment is written to
the ledger immediately after its last task succeeds, so a later failure in
the same run never un-records an earlier deployment.  The failing deployment
and everything after it stay pending.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from enum import Enum
from itertools import groupby
from pathlib import Path

from zdd_engine.errors import CommandExecutionError, ExecutionError, RecordError
from zdd_engine.executor.base import CommandExecutor, DatabaseProvider
from zdd_engine.models.deployment import Deployment
from zdd_engine.models.plan import ExecutionReport, Plan, Task, TaskKind
from zdd_engine.planner.checksum import calculate_checksum
from zdd_engine.planner.validation import validate_plan

logger = logging.getLogger(__name__)


class ExecutionEvent(str, Enum):
    """Progress notifications emitted to an observer."""

    DEPLOYMENT_STARTED = "deployment_started"
    TASK_STARTED = "task_started"
    DEPLOYMENT_APPLIED = "deployment_applied"
    DEPLOYMENT_SKIPPED = "deployment_skipped"


Observer = Callable[[ExecutionEvent, Deployment, Task | None], None]


def build_script_env(
    task: Task,
    *,
    is_head: bool,
    deployments_path: str,
    database_url: str,
) -> dict[str, str]:
    """Return the ``ZDD_*`` variables passed to a phase script."""
    deployment = task.deployment
    return {
        "ZDD_IS_HEAD": "true" if is_head else "false",
        "ZDD_DEPLOYMENT_ID": deployment.id,
        "ZDD_DEPLOYMENT_NAME": deployment.name,
        "ZDD_PHASE": task.phase.value,
        "ZDD_DEPLOYMENTS_PATH": deployments_path,
        "ZDD_DATABASE_URL": database_url,
    }


def _task_context(task: Task) -> dict[str, str]:
    return {"deployment_id": task.deployment_id, "phase": task.phase.value, "path": task.path}


def _group_by_deployment(tasks: list[Task]) -> Iterator[tuple[Deployment, list[Task]]]:
    for _, group in groupby(tasks, key=lambda t: t.deployment_id):
        grouped = list(group)
        yield grouped[0].deployment, grouped


class PlanExecutor:
    """Run a :class:`~zdd_engine.models.plan.Plan` against its collaborators.

    Parameters
    ----------
    db:
        Ledger and SQL backend.
    commands:
        Script runner.
    script_timeout:
        Per-script wall-clock limit in seconds; ``None`` uses the command
        executor's default.
    observer:
        Optional callback receiving progress events.
    """

    def __init__(
        self,
        db: DatabaseProvider,
        commands: CommandExecutor,
        *,
        script_timeout: float | None = None,
        observer: Observer | None = None,
    ) -> None:
        self._db = db
        self._commands = commands
        self._script_timeout = script_timeout
        self._observer = observer

    async def execute(self, plan: Plan) -> ExecutionReport:
        """Execute every task of *plan* in order.

        Returns
        -------
        ExecutionReport
            IDs recorded in this run, the number of tasks executed and the
            IDs skipped because the ledger already held them.

        Raises
        ------
        ValidationError
            If the plan's tasks are not in canonical order.
        ExecutionError
            If a script or SQL task fails.  Nothing after it runs.
        RecordError
            If a deployment succeeded but its ledger row could not be written.
        """
        report = ExecutionReport()
        if plan.is_empty:
            logger.info("No pending deployments to apply")
            return report

        validate_plan(plan)

        head_id = plan.head_deployment_id
        database_url = self._db.connection_url()
        logger.info("Executing %d task(s); head deployment is %s", len(plan.tasks), head_id)

        for deployment, tasks in _group_by_deployment(plan.tasks):
            if deployment.id in plan.already_applied:
                logger.info("Skipping deployment %s: already applied", deployment.id)
                report.skipped.append(deployment.id)
                self._notify(ExecutionEvent.DEPLOYMENT_SKIPPED, deployment, None)
                continue

            is_head = deployment.id == head_id
            logger.info(
                "Applying deployment %s (%s)%s",
                deployment.id,
                deployment.name,
                " [head]" if is_head else "",
            )
            self._notify(ExecutionEvent.DEPLOYMENT_STARTED, deployment, None)

            for task in tasks:
                self._notify(ExecutionEvent.TASK_STARTED, deployment, task)
                logger.info(
                    "Running %s %s for deployment %s: %s",
                    task.phase.value,
                    task.kind.value,
                    deployment.id,
                    task.path,
                    extra=_task_context(task),
                )
                if task.kind is TaskKind.SCRIPT:
                    env = build_script_env(
                        task,
                        is_head=is_head,
                        deployments_path=plan.deployments_path,
                        database_url=database_url,
                    )
                    await self._run_script(task, env)
                else:
                    await self._run_sql(task)
                report.tasks_executed += 1

            await self._record(deployment)
            report.applied.append(deployment.id)
            self._notify(ExecutionEvent.DEPLOYMENT_APPLIED, deployment, None)

        logger.info(
            "Applied %d deployment(s), executed %d task(s)",
            len(report.applied),
            report.tasks_executed,
        )
        return report

    # ------------------------------------------------------------------
    # Task handlers
    # ------------------------------------------------------------------

    async def _run_script(self, task: Task, env: dict[str, str]) -> None:
        deployment = task.deployment
        working_dir = Path(deployment.directory) if deployment.directory else Path(task.path).parent
        logger.debug("Script environment for %s: %s", task.path, env, extra=_task_context(task))
        try:
            await self._commands.run_script(
                Path(task.path),
                working_dir,
                env,
                timeout=self._script_timeout,
            )
        except CommandExecutionError as exc:
            raise ExecutionError(
                f"Failed to execute {task.phase.value} script for deployment {deployment.id}: {exc}",
                deployment_id=deployment.id,
                phase=task.phase.value,
                path=task.path,
            ) from exc

    async def _run_sql(self, task: Task) -> None:
        deployment = task.deployment
        try:
            sql = Path(task.path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ExecutionError(
                f"Failed to read {task.path} for deployment {deployment.id}: {exc}",
                deployment_id=deployment.id,
                phase=task.phase.value,
                path=task.path,
            ) from exc

        try:
            await self._db.execute_sql_in_transaction(sql)
        except Exception as exc:
            raise ExecutionError(
                f"Failed to execute {task.phase.value} SQL for deployment {deployment.id}: {exc}",
                deployment_id=deployment.id,
                phase=task.phase.value,
                path=task.path,
            ) from exc

    async def _record(self, deployment: Deployment) -> None:
        checksum = calculate_checksum(deployment)
        try:
            await self._db.record_deployment(deployment, checksum)
        except Exception as exc:
            raise RecordError(
                f"Failed to record deployment {deployment.id}: {exc}",
                deployment_id=deployment.id,
            ) from exc
        logger.info("Recorded deployment %s (checksum %s)", deployment.id, checksum[:12])

    def _notify(self, event: ExecutionEvent, deployment: Deployment, task: Task | None) -> None:
        if self._observer is not None:
            self._observer(event, deployment, task)
