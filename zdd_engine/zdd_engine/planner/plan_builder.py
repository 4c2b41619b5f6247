"""Turn pending deployments into one flat, ordered task list.

Order within a deployment is fixed::

    expand(script, sql*) -> migrate(script, sql*) -> contract(script, sql*) -> post(script)

and every task of deployment N precedes every task of deployment N+1.
"""

from __future__ import annotations

import logging
from pathlib import Path

from zdd_engine.executor.base import DatabaseProvider
from zdd_engine.loader.deployment_loader import load_deployments
from zdd_engine.models.deployment import Deployment
from zdd_engine.models.plan import Plan, Task, TaskKind
from zdd_engine.planner.validation import validate_unique_ids

logger = logging.getLogger(__name__)


def deployment_tasks(deployment: Deployment) -> list[Task]:
    """Return the tasks for a single deployment in execution order."""
    tasks: list[Task] = []
    for phase, files in deployment.phases.ordered():
        if files.script is not None:
            tasks.append(
                Task(kind=TaskKind.SCRIPT, path=files.script.path, phase=phase, deployment=deployment)
            )
        if not phase.carries_sql:
            continue
        for sql_file in files.sql_files:
            tasks.append(Task(kind=TaskKind.SQL, path=sql_file.path, phase=phase, deployment=deployment))
    return tasks


def plan_for(
    deployments: list[Deployment],
    already_applied: set[str],
    deployments_path: str = "",
) -> Plan:
    """Build a plan from already-loaded deployments and a set of applied IDs."""
    tasks: list[Task] = []
    for deployment in sorted(deployments, key=lambda d: d.id):
        if deployment.id in already_applied:
            continue
        tasks.extend(deployment_tasks(deployment))
    return Plan(tasks=tasks, already_applied=set(already_applied), deployments_path=deployments_path)


async def build_plan(root: Path, db: DatabaseProvider) -> Plan:
    """Load deployments under *root*, read the ledger from *db* and plan the rest.

    Raises
    ------
    DeploymentLoadError
        If the deployments directory cannot be read.
    ValidationError
        If two local deployments share an ID.
    """
    root = Path(root)
    deployments = load_deployments(root)
    validate_unique_ids(deployments)

    applied = await db.get_applied_deployments()
    applied_ids = {record.id for record in applied}

    plan = plan_for(deployments, applied_ids, str(root.absolute()))
    logger.info(
        "Planned %d task(s) across %d pending deployment(s); %d already applied",
        len(plan.tasks),
        len(plan.deployments()),
        len(applied_ids),
    )
    return plan
