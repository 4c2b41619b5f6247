"""Deployment factory: allocate the next ID and scaffold a new deployment.

Scaffold text lives in ``loader/templates`` as Jinja2 sources.  It is read
once per process into an immutable :class:`TemplateBundle`; callers may pass
their own bundle to :func:`create_deployment` instead.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from pathlib import Path
from types import MappingProxyType

from jinja2 import Environment, StrictUndefined, TemplateError

from zdd_engine.errors import DeploymentCreateError, DeploymentLoadError
from zdd_engine.loader.deployment_loader import (
    load_default_scripts,
    load_deployment,
    load_deployments,
)
from zdd_engine.loader.naming import FileKind, format_deployment_id
from zdd_engine.models.deployment import SQL_PHASES, Deployment, Phase

logger = logging.getLogger(__name__)

SQL_FILE_MODE = 0o644
SCRIPT_FILE_MODE = 0o755

_TEMPLATE_DIR = "templates"

_jinja_env = Environment(
    undefined=StrictUndefined,
    keep_trailing_newline=True,
    autoescape=False,
)


# ---------------------------------------------------------------------------
# Template bundle
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TemplateBundle:
    """Immutable Jinja2 sources for every scaffolded file.

    ``sql`` holds one source per SQL-carrying phase, ``scripts`` one per
    phase.  Both mappings are read-only views.
    """

    sql: Mapping[Phase, str]
    scripts: Mapping[Phase, str]

    def __post_init__(self) -> None:
        missing_sql = [p.value for p in SQL_PHASES if p not in self.sql]
        missing_scripts = [p.value for p in Phase if p not in self.scripts]
        if missing_sql or missing_scripts:
            raise ValueError(
                f"Template bundle incomplete: sql={missing_sql}, scripts={missing_scripts}"
            )
        object.__setattr__(self, "sql", MappingProxyType(dict(self.sql)))
        object.__setattr__(self, "scripts", MappingProxyType(dict(self.scripts)))

    def files(self) -> list[tuple[str, str, int]]:
        """Return ``(file_name, source, mode)`` for every file to scaffold."""
        entries: list[tuple[str, str, int]] = []
        for phase in SQL_PHASES:
            entries.append((f"{phase.value}.{FileKind.SQL.value}", self.sql[phase], SQL_FILE_MODE))
        for phase in Phase:
            entries.append(
                (f"{phase.value}.{FileKind.SCRIPT.value}", self.scripts[phase], SCRIPT_FILE_MODE)
            )
        return entries


@lru_cache(maxsize=1)
def load_default_templates() -> TemplateBundle:
    """Read the packaged templates once and cache the bundle for the process."""
    root = resources.files(__package__).joinpath(_TEMPLATE_DIR)

    def _read(file_name: str) -> str:
        return root.joinpath(file_name).read_text(encoding="utf-8")

    return TemplateBundle(
        sql={phase: _read(f"{phase.value}.sql") for phase in SQL_PHASES},
        scripts={phase: _read(f"{phase.value}.sh") for phase in Phase},
    )


# ---------------------------------------------------------------------------
# Naming and ID allocation
# ---------------------------------------------------------------------------


def sanitize_name(raw_name: str) -> str:
    """Lowercase *raw_name*, trim it and replace spaces with underscores.

    Raises
    ------
    DeploymentCreateError
        If nothing usable remains or the name contains a path separator.
    """
    name = raw_name.strip().lower().replace(" ", "_")
    if not name:
        raise DeploymentCreateError("Deployment name must not be empty")
    if "/" in name or "\\" in name or name in {".", ".."}:
        raise DeploymentCreateError(f"Invalid deployment name: {raw_name!r}")
    return name


def next_deployment_id(existing: list[Deployment]) -> str:
    """Return ``max(existing) + 1`` as a padded ID, or the first ID if none exist."""
    highest = max((int(d.id) for d in existing), default=0)
    try:
        return format_deployment_id(highest + 1)
    except ValueError as exc:
        raise DeploymentCreateError(str(exc)) from exc


# ---------------------------------------------------------------------------
# Scaffolding
# ---------------------------------------------------------------------------


def _write_file(path: Path, content: str, mode: int) -> None:
    try:
        path.write_text(content, encoding="utf-8")
        path.chmod(mode)
    except OSError as exc:
        raise DeploymentCreateError(f"Failed to write '{path}': {exc}") from exc


def create_deployment(
    root: Path,
    raw_name: str,
    templates: TemplateBundle | None = None,
) -> Deployment:
    """Scaffold a new deployment directory under *root*.

    Parameters
    ----------
    root:
        Deployments root; created if it does not exist.
    raw_name:
        Human label, sanitized before use.
    templates:
        Optional template bundle; defaults to the packaged templates.

    Returns
    -------
    Deployment
        The freshly loaded deployment.  Its SQL lists are empty because the
        scaffolded SQL is comment-only.

    Raises
    ------
    DeploymentCreateError
        On an invalid name or any filesystem failure.  Partially created
        directories are left in place.
    """
    root = Path(root)
    name = sanitize_name(raw_name)
    bundle = templates or load_default_templates()

    try:
        existing = load_deployments(root)
    except DeploymentLoadError as exc:
        raise DeploymentCreateError(f"Cannot allocate deployment ID: {exc}") from exc

    deployment_id = next_deployment_id(existing)
    directory = root / f"{deployment_id}_{name}"

    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DeploymentCreateError(f"Failed to create directory '{directory}': {exc}") from exc

    context = {"deployment_id": deployment_id, "deployment_name": name}
    for file_name, source, mode in bundle.files():
        try:
            content = _jinja_env.from_string(source).render(**context)
        except TemplateError as exc:
            raise DeploymentCreateError(f"Failed to render template for {file_name}: {exc}") from exc
        _write_file(directory / file_name, content, mode)

    logger.info("Created deployment %s at %s", deployment_id, directory)

    try:
        deployment = load_deployment(directory, load_default_scripts(root))
    except DeploymentLoadError as exc:
        raise DeploymentCreateError(str(exc)) from exc
    if deployment is None:
        raise DeploymentCreateError(f"Created directory has an unparseable name: {directory.name}")
    return deployment
