"""File-name grammar for deployment directories and phase files.

Accepted forms::

    dir_name   := ID "_" NAME          ID := DIGIT{6}     NAME := CHAR+
    phase_file := SQL_PHASE "." [SEQ "."] "sql"
                | PHASE "." "sh"
    SEQ        := DIGIT+
    SQL_PHASE  := "expand" | "migrate" | "contract"
    PHASE      := SQL_PHASE | "post"

The parsers return a typed result or ``None`` when a name does not match, so
callers can skip unrelated entries without exception handling.
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple

from zdd_engine.models.deployment import Phase

ID_WIDTH = 6
MIN_DEPLOYMENT_ID = 1
MAX_DEPLOYMENT_ID = 10**ID_WIDTH - 1

_DIGITS = frozenset("0123456789")


class FileKind(str, Enum):
    SQL = "sql"
    SCRIPT = "sh"


class DeploymentDirName(NamedTuple):
    id: str
    name: str


class PhaseFileName(NamedTuple):
    phase: Phase
    kind: FileKind
    sequence: int = 0


def _is_digits(value: str) -> bool:
    return bool(value) and all(ch in _DIGITS for ch in value)


def format_deployment_id(number: int) -> str:
    """Render *number* as a fixed-width, zero-padded deployment ID."""
    if not MIN_DEPLOYMENT_ID <= number <= MAX_DEPLOYMENT_ID:
        raise ValueError(f"Deployment ID {number} is outside 1..{MAX_DEPLOYMENT_ID}")
    return f"{number:0{ID_WIDTH}d}"


def parse_deployment_dir_name(dir_name: str) -> DeploymentDirName | None:
    """Parse ``{id}_{name}``; return ``None`` for anything else."""
    if len(dir_name) < ID_WIDTH + 2:
        return None
    deployment_id, sep, name = dir_name[:ID_WIDTH], dir_name[ID_WIDTH], dir_name[ID_WIDTH + 1 :]
    if sep != "_" or not _is_digits(deployment_id) or not name:
        return None
    return DeploymentDirName(id=deployment_id, name=name)


def _parse_phase(value: str) -> Phase | None:
    try:
        return Phase(value)
    except ValueError:
        return None


def parse_phase_file_name(file_name: str) -> PhaseFileName | None:
    """Parse a phase file name such as ``expand.sql``, ``migrate.2.sql`` or ``post.sh``."""
    parts = file_name.split(".")
    if len(parts) not in (2, 3):
        return None

    phase = _parse_phase(parts[0])
    if phase is None:
        return None

    extension = parts[-1]
    if extension == FileKind.SCRIPT.value:
        if len(parts) != 2:
            return None
        return PhaseFileName(phase=phase, kind=FileKind.SCRIPT)

    if extension != FileKind.SQL.value or not phase.carries_sql:
        return None

    sequence = 0
    if len(parts) == 3:
        if not _is_digits(parts[1]):
            return None
        sequence = int(parts[1])
    return PhaseFileName(phase=phase, kind=FileKind.SQL, sequence=sequence)
