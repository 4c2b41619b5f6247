"""Structural checks run before any task executes.

Only structural invariants are enforced here.  Any number of pending
deployments may carry expand or contract SQL; catch-up versus live-rollout
decisions are made by operator scripts through ``ZDD_IS_HEAD``.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from zdd_engine.errors import ValidationError
from zdd_engine.models.deployment import Deployment, Phase
from zdd_engine.models.plan import Plan, TaskKind


def validate_unique_ids(deployments: Sequence[Deployment]) -> None:
    """Raise :class:`ValidationError` if two deployment directories share an ID."""
    counts = Counter(d.id for d in deployments)
    duplicates = sorted(dep_id for dep_id, count in counts.items() if count > 1)
    if not duplicates:
        return

    details = []
    for dep_id in duplicates:
        dirs = [d.directory or d.dir_name for d in deployments if d.id == dep_id]
        details.append(f"{dep_id} ({', '.join(dirs)})")
    raise ValidationError(f"Duplicate deployment IDs: {'; '.join(details)}")


def validate_plan(plan: Plan) -> None:
    """Check that the plan's tasks are in canonical order.

    Raises
    ------
    ValidationError
        If deployments are interleaved or out of ID order, phases regress
        within a deployment, a script follows SQL (or appears twice) within a
        phase, or a SQL task is attached to ``post``.
    """
    finished: set[str] = set()
    current_id: str | None = None
    last_position = -1
    last_kind: TaskKind | None = None

    for index, task in enumerate(plan.tasks):
        where = f"task {index} ({task.deployment_id}/{task.phase.value}: {task.path})"

        if task.phase is Phase.POST and task.kind is TaskKind.SQL:
            raise ValidationError(f"SQL is not allowed in the post phase: {where}")

        if task.deployment_id != current_id:
            if task.deployment_id in finished:
                raise ValidationError(f"Deployment tasks are interleaved at {where}")
            if current_id is not None:
                if task.deployment_id < current_id:
                    raise ValidationError(
                        f"Deployment {task.deployment_id} is planned after {current_id}"
                    )
                finished.add(current_id)
            current_id = task.deployment_id
            last_position = -1
            last_kind = None

        position = task.phase.position
        if position < last_position:
            raise ValidationError(f"Phase order regresses at {where}")
        if position > last_position:
            last_position = position
            last_kind = None

        if task.kind is TaskKind.SCRIPT and last_kind is not None:
            raise ValidationError(f"Script must be the first task of its phase: {where}")
        last_kind = task.kind
