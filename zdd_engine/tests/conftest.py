"""Shared fixtures for zdd_engine tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

WriteDeployment = Callable[..., Path]


def write_file(path: Path, content: str, executable: bool = False) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    path.chmod(0o755 if executable else 0o644)
    return path


@pytest.fixture()
def deployments_root(tmp_path: Path) -> Path:
    root = tmp_path / "migrations"
    root.mkdir()
    return root


@pytest.fixture()
def write_deployment(deployments_root: Path) -> WriteDeployment:
    """Return a factory that writes a deployment directory under the root.

    ``files`` maps file names to content; names ending in ``.sh`` are made
    executable unless listed in ``non_executable``.
    """

    def _write(
        dir_name: str,
        files: dict[str, str] | None = None,
        non_executable: tuple[str, ...] = (),
    ) -> Path:
        directory = deployments_root / dir_name
        directory.mkdir(parents=True, exist_ok=True)
        for file_name, content in (files or {}).items():
            executable = file_name.endswith(".sh") and file_name not in non_executable
            write_file(directory / file_name, content, executable=executable)
        return directory

    return _write
