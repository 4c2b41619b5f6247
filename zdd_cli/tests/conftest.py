"""Shared fixtures for CLI tests.

Every test runs in its own temporary working directory with the ZDD_*
environment cleared, so the relative default ``migrations`` path and any
``.env`` lookup stay inside ``tmp_path``.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from zdd_cli import app as cli_app

_ZDD_ENV = (
    "ZDD_DEBUG",
    "ZDD_DATABASE_URL",
    "ZDD_DATABASE_POOL_SIZE",
    "ZDD_DATABASE_MAX_OVERFLOW",
    "ZDD_DEPLOYMENTS_PATH",
    "ZDD_SCRIPT_TIMEOUT_SECONDS",
    "ZDD_STRUCTURED_LOGGING",
)


@pytest.fixture(autouse=True)
def _isolated_cli(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    for name in _ZDD_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    # Wide enough that plan tables and paths never wrap.
    monkeypatch.setattr(cli_app.console, "width", 200)
    monkeypatch.setattr(cli_app, "_settings", None)

    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture()
def database_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'app.db'}"
