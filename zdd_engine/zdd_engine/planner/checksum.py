"""Integrity fingerprint for a deployment's SQL content."""

from __future__ import annotations

import hashlib

from zdd_engine.models.deployment import SQL_PHASES, Deployment


def calculate_checksum(deployment: Deployment) -> str:
    """Return the SHA-256 hex digest of the deployment's expand, migrate and contract SQL.

    The hash covers each SQL phase in execution order: the phase name, then
    every SQL file's content in sequence order, each followed by a null-byte
    separator.  Post-phase scripts and all script content are excluded, so
    the result depends only on the SQL text.
    """
    hasher = hashlib.sha256()
    for phase in SQL_PHASES:
        hasher.update(phase.value.encode("utf-8"))
        hasher.update(b"\x00")
        for sql_file in deployment.phases.get(phase).sql_files:
            hasher.update(sql_file.content.encode("utf-8"))
            hasher.update(b"\x00")
    return hasher.hexdigest()
