"""Load deployments from a deployments root directory.

Each immediate subdirectory named ``{id}_{name}`` is one deployment.  Inside
it, phase files are recognised by :mod:`zdd_engine.loader.naming`; anything
else is ignored.  Deployment entities are rebuilt from disk on every call.

Typical usage::

    deployments = load_deployments(Path("migrations"))
"""

from __future__ import annotations

import logging
import stat
from pathlib import Path

from zdd_engine.errors import DeploymentLoadError
from zdd_engine.loader.naming import (
    FileKind,
    parse_deployment_dir_name,
    parse_phase_file_name,
)
from zdd_engine.models.deployment import (
    Deployment,
    DeploymentPhases,
    Phase,
    ScriptFile,
    SQLFile,
)
from zdd_engine.parser.sql_text import has_sql_content

logger = logging.getLogger(__name__)


def _is_executable(path: Path) -> bool:
    try:
        mode = path.stat().st_mode
    except OSError:
        return False
    return stat.S_ISREG(mode) and bool(mode & 0o111)


def load_default_scripts(root: Path) -> dict[Phase, ScriptFile]:
    """Return the root-level ``{phase}.sh`` fallbacks that exist and are executable."""
    defaults: dict[Phase, ScriptFile] = {}
    for phase in Phase:
        candidate = root / f"{phase.value}.sh"
        if _is_executable(candidate):
            defaults[phase] = ScriptFile(path=str(candidate), is_default=True)
    return defaults


def _read_sql(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DeploymentLoadError(f"Failed to read SQL file '{path}': {exc}") from exc


def load_deployment(
    directory: Path,
    defaults: dict[Phase, ScriptFile] | None = None,
) -> Deployment | None:
    """Load a single deployment directory.

    Returns ``None`` if the directory name does not follow ``{id}_{name}``.

    Raises
    ------
    DeploymentLoadError
        If the directory or one of its SQL files cannot be read.
    """
    parsed = parse_deployment_dir_name(directory.name)
    if parsed is None:
        return None

    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        raise DeploymentLoadError(f"Failed to read deployment directory '{directory}': {exc}") from exc

    phases = DeploymentPhases()
    for entry in entries:
        file_name = parse_phase_file_name(entry.name)
        if file_name is None or entry.is_dir():
            continue

        phase_files = phases.get(file_name.phase)
        if file_name.kind is FileKind.SQL:
            content = _read_sql(entry)
            if not has_sql_content(content):
                logger.debug("Ignoring comment-only SQL file %s", entry)
                continue
            phase_files.sql_files.append(
                SQLFile(path=str(entry), sequence=file_name.sequence, content=content),
            )
            continue

        if _is_executable(entry):
            phase_files.script = ScriptFile(path=str(entry))
        else:
            logger.warning("Ignoring %s: script is not executable", entry)

    for phase, phase_files in phases.ordered():
        phase_files.sql_files.sort(key=lambda f: (f.sequence, f.path))
        if phase_files.script is None and defaults and phase in defaults:
            phase_files.script = defaults[phase]

    return Deployment(
        id=parsed.id,
        name=parsed.name,
        directory=str(directory),
        phases=phases,
    )


def load_deployments(root: Path) -> list[Deployment]:
    """Discover and parse every deployment under *root*.

    Parameters
    ----------
    root:
        The deployments root.  A missing root yields an empty list.

    Returns
    -------
    list[Deployment]
        Deployments sorted ascending by ID (directory name breaks ties).

    Raises
    ------
    DeploymentLoadError
        If *root* exists but is not a listable directory, or a deployment
        within it cannot be read.
    """
    root = Path(root)
    if not root.exists():
        logger.debug("Deployments root %s does not exist", root)
        return []

    try:
        entries = sorted(root.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        raise DeploymentLoadError(f"Failed to read deployments directory '{root}': {exc}") from exc

    defaults = load_default_scripts(root)

    deployments: list[Deployment] = []
    for entry in entries:
        if not entry.is_dir():
            continue
        deployment = load_deployment(entry, defaults)
        if deployment is None:
            logger.debug("Skipping non-deployment directory %s", entry.name)
            continue
        deployments.append(deployment)

    deployments.sort(key=lambda d: (d.id, d.dir_name))
    logger.debug("Loaded %d deployment(s) from %s", len(deployments), root)
    return deployments
