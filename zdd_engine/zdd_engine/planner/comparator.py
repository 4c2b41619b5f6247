"""Partition local deployments against the applied ledger."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from zdd_engine.models.deployment import (
    AppliedDeploymentRecord,
    Deployment,
    DeploymentStatus,
)

logger = logging.getLogger(__name__)


def compare_deployments(
    local: Sequence[Deployment],
    ledger: Sequence[AppliedDeploymentRecord],
) -> DeploymentStatus:
    """Split *local* into applied and pending, and report ledger-only entries.

    Parameters
    ----------
    local:
        Deployments loaded from disk, expected to be sorted by ID.
    ledger:
        Rows of the applied-deployments table.

    Returns
    -------
    DeploymentStatus
        ``applied`` carries copies of local deployments with ``applied_at``
        taken from the ledger.  ``missing`` holds synthetic deployments (no
        directory, no phases) for ledger rows that have no local directory.
        Every list preserves the order of its input.
    """
    by_id = {record.id: record for record in ledger}
    local_ids = {deployment.id for deployment in local}

    status = DeploymentStatus(local=list(local))
    for deployment in local:
        record = by_id.get(deployment.id)
        if record is None:
            status.pending.append(deployment)
        else:
            status.applied.append(deployment.model_copy(update={"applied_at": record.applied_at}))

    for record in ledger:
        if record.id not in local_ids:
            status.missing.append(
                Deployment(id=record.id, name=record.name, applied_at=record.applied_at)
            )

    if status.missing:
        logger.warning(
            "%d applied deployment(s) have no local directory: %s",
            len(status.missing),
            ", ".join(d.id for d in status.missing),
        )
    return status
