"""Deployment discovery and scaffolding."""

from zdd_engine.loader.deployment_loader import (
    load_default_scripts,
    load_deployment,
    load_deployments,
)
from zdd_engine.loader.factory import (
    TemplateBundle,
    create_deployment,
    load_default_templates,
    next_deployment_id,
    sanitize_name,
)
from zdd_engine.loader.naming import (
    ID_WIDTH,
    DeploymentDirName,
    FileKind,
    PhaseFileName,
    format_deployment_id,
    parse_deployment_dir_name,
    parse_phase_file_name,
)

__all__ = [
    "ID_WIDTH",
    "DeploymentDirName",
    "FileKind",
    "PhaseFileName",
    "TemplateBundle",
    "create_deployment",
    "format_deployment_id",
    "load_default_scripts",
    "load_default_templates",
    "load_deployment",
    "load_deployments",
    "next_deployment_id",
    "parse_deployment_dir_name",
    "parse_phase_file_name",
    "sanitize_name",
]
