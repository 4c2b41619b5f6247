"""Unit tests for zdd_engine.planner.checksum."""

from __future__ import annotations

import re

import pytest

from zdd_engine.models.deployment import (
    Deployment,
    DeploymentPhases,
    PhaseFiles,
    ScriptFile,
    SQLFile,
)
from zdd_engine.planner.checksum import calculate_checksum


def _deployment(
    expand: str = "",
    migrate: str = "",
    contract: str = "",
    *,
    deployment_id: str = "000001",
    with_scripts: bool = False,
) -> Deployment:
    def _phase(name: str, content: str) -> PhaseFiles:
        files = [SQLFile(path=f"/d/{name}.sql", content=content)] if content else []
        script = ScriptFile(path=f"/d/{name}.sh") if with_scripts else None
        return PhaseFiles(sql_files=files, script=script)

    return Deployment(
        id=deployment_id,
        name="users",
        directory="/d",
        phases=DeploymentPhases(
            expand=_phase("expand", expand),
            migrate=_phase("migrate", migrate),
            contract=_phase("contract", contract),
            post=PhaseFiles(script=ScriptFile(path="/d/post.sh") if with_scripts else None),
        ),
    )


class TestCalculateChecksum:
    def test_is_sha256_hex(self) -> None:
        assert re.fullmatch(r"[0-9a-f]{64}", calculate_checksum(_deployment("A")))

    def test_identical_content_identical_checksum(self) -> None:
        a = _deployment("ALTER 1;", "UPDATE 2;", "DROP 3;", deployment_id="000001")
        b = _deployment("ALTER 1;", "UPDATE 2;", "DROP 3;", deployment_id="000042")
        assert calculate_checksum(a) == calculate_checksum(b)

    @pytest.mark.parametrize(
        "changed",
        [
            {"expand": "ALTER 1!", "migrate": "UPDATE 2;", "contract": "DROP 3;"},
            {"expand": "ALTER 1;", "migrate": "UPDATE 2!", "contract": "DROP 3;"},
            {"expand": "ALTER 1;", "migrate": "UPDATE 2;", "contract": "DROP 3!"},
        ],
    )
    def test_one_character_changes_checksum(self, changed: dict[str, str]) -> None:
        base = _deployment("ALTER 1;", "UPDATE 2;", "DROP 3;")
        assert calculate_checksum(base) != calculate_checksum(_deployment(**changed))

    def test_content_moved_between_phases_changes_checksum(self) -> None:
        assert calculate_checksum(_deployment(expand="X")) != calculate_checksum(_deployment(migrate="X"))

    def test_scripts_do_not_affect_checksum(self) -> None:
        plain = _deployment("A", "B", "C")
        scripted = _deployment("A", "B", "C", with_scripts=True)
        assert calculate_checksum(plain) == calculate_checksum(scripted)

    def test_batch_order_matters(self) -> None:
        first = _deployment()
        first.phases.migrate.sql_files = [
            SQLFile(path="/d/migrate.1.sql", sequence=1, content="A"),
            SQLFile(path="/d/migrate.2.sql", sequence=2, content="B"),
        ]
        second = _deployment()
        second.phases.migrate.sql_files = [
            SQLFile(path="/d/migrate.1.sql", sequence=1, content="B"),
            SQLFile(path="/d/migrate.2.sql", sequence=2, content="A"),
        ]
        assert calculate_checksum(first) != calculate_checksum(second)
