"""Unit tests for zdd_engine.loader.deployment_loader."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from zdd_engine.errors import DeploymentLoadError
from zdd_engine.loader.deployment_loader import load_default_scripts, load_deployments
from zdd_engine.models.deployment import Phase

CREATE_USERS = "CREATE TABLE users (id INTEGER PRIMARY KEY);\n"
SCRIPT = "#!/bin/sh\nexit 0\n"


class TestLoadDeployments:
    def test_missing_root_returns_empty(self, tmp_path: Path) -> None:
        assert load_deployments(tmp_path / "does-not-exist") == []

    def test_empty_root(self, deployments_root: Path) -> None:
        assert load_deployments(deployments_root) == []

    def test_skips_non_matching_entries(self, deployments_root: Path, write_deployment) -> None:
        write_deployment("000001_users", {"migrate.sql": CREATE_USERS})
        write_deployment("scratch", {"migrate.sql": CREATE_USERS})
        write_deployment("1_short", {"migrate.sql": CREATE_USERS})
        (deployments_root / "000002_not_a_dir").write_text("", encoding="utf-8")

        deployments = load_deployments(deployments_root)
        assert [d.id for d in deployments] == ["000001"]

    def test_sorted_by_id(self, write_deployment, deployments_root: Path) -> None:
        for dir_name in ("000003_c", "000001_a", "000002_b"):
            write_deployment(dir_name, {"migrate.sql": CREATE_USERS})

        deployments = load_deployments(deployments_root)
        assert [d.id for d in deployments] == ["000001", "000002", "000003"]
        assert [d.name for d in deployments] == ["a", "b", "c"]

    def test_parses_all_phase_files(self, write_deployment, deployments_root: Path) -> None:
        directory = write_deployment(
            "000001_users",
            {
                "expand.sql": "ALTER TABLE users ADD COLUMN email TEXT;",
                "migrate.sql": "UPDATE users SET email = '';",
                "contract.sql": "ALTER TABLE users DROP COLUMN legacy;",
                "expand.sh": SCRIPT,
                "migrate.sh": SCRIPT,
                "contract.sh": SCRIPT,
                "post.sh": SCRIPT,
                "notes.txt": "ignored",
            },
        )

        (deployment,) = load_deployments(deployments_root)
        assert deployment.directory == str(directory)
        for phase in Phase:
            files = deployment.phases.get(phase)
            assert files.script is not None
            assert files.script.path == str(directory / f"{phase.value}.sh")
            assert files.script.is_default is False
            assert len(files.sql_files) == (0 if phase is Phase.POST else 1)
        assert deployment.sql_phases() == [Phase.EXPAND, Phase.MIGRATE, Phase.CONTRACT]

    def test_numbered_batches_ordered_by_sequence(self, write_deployment, deployments_root: Path) -> None:
        write_deployment(
            "000001_batches",
            {
                "migrate.10.sql": "SELECT 10;",
                "migrate.2.sql": "SELECT 2;",
                "migrate.sql": "SELECT 0;",
                "migrate.1.sql": "SELECT 1;",
            },
        )

        (deployment,) = load_deployments(deployments_root)
        sql_files = deployment.phases.migrate.sql_files
        assert [f.sequence for f in sql_files] == [0, 1, 2, 10]
        assert [Path(f.path).name for f in sql_files] == [
            "migrate.sql",
            "migrate.1.sql",
            "migrate.2.sql",
            "migrate.10.sql",
        ]
        assert sql_files[0].content == "SELECT 0;"

    def test_comment_only_sql_is_absent(self, write_deployment, deployments_root: Path) -> None:
        write_deployment(
            "000001_empty",
            {
                "expand.sql": "-- Expand phase SQL (optional)\n\n",
                "migrate.sql": "/* nothing */\n",
                "contract.sql": "   \n",
            },
        )

        (deployment,) = load_deployments(deployments_root)
        assert deployment.sql_phases() == []

    def test_non_executable_script_is_absent(self, write_deployment, deployments_root: Path) -> None:
        write_deployment("000001_noexec", {"expand.sh": SCRIPT}, non_executable=("expand.sh",))

        (deployment,) = load_deployments(deployments_root)
        assert deployment.phases.expand.script is None

    def test_root_default_scripts_are_fallbacks(self, write_deployment, deployments_root: Path) -> None:
        default_expand = deployments_root / "expand.sh"
        default_expand.write_text(SCRIPT, encoding="utf-8")
        default_expand.chmod(0o755)
        default_post = deployments_root / "post.sh"
        default_post.write_text(SCRIPT, encoding="utf-8")
        default_post.chmod(0o755)

        own = write_deployment("000001_own", {"expand.sh": SCRIPT})
        write_deployment("000002_inherits", {"migrate.sql": CREATE_USERS})

        first, second = load_deployments(deployments_root)

        assert first.phases.expand.script is not None
        assert first.phases.expand.script.path == str(own / "expand.sh")
        assert first.phases.expand.script.is_default is False
        assert first.phases.post.script is not None
        assert first.phases.post.script.is_default is True

        assert second.phases.expand.script is not None
        assert second.phases.expand.script.path == str(default_expand)
        assert second.phases.expand.script.is_default is True
        assert second.phases.migrate.script is None

    @pytest.mark.skipif(os.geteuid() == 0, reason="root ignores directory permissions")
    def test_unreadable_subdirectory_raises(self, write_deployment, deployments_root: Path) -> None:
        directory = write_deployment("000001_locked", {"migrate.sql": CREATE_USERS})
        directory.chmod(0o000)
        try:
            with pytest.raises(DeploymentLoadError, match="000001_locked"):
                load_deployments(deployments_root)
        finally:
            directory.chmod(0o755)

    def test_root_is_a_file_raises(self, tmp_path: Path) -> None:
        not_a_dir = tmp_path / "migrations"
        not_a_dir.write_text("", encoding="utf-8")
        with pytest.raises(DeploymentLoadError):
            load_deployments(not_a_dir)


class TestLoadDefaultScripts:
    def test_only_executable_defaults(self, deployments_root: Path) -> None:
        (deployments_root / "migrate.sh").write_text(SCRIPT, encoding="utf-8")
        (deployments_root / "migrate.sh").chmod(0o644)
        (deployments_root / "contract.sh").write_text(SCRIPT, encoding="utf-8")
        (deployments_root / "contract.sh").chmod(0o755)

        defaults = load_default_scripts(deployments_root)
        assert list(defaults) == [Phase.CONTRACT]
        assert defaults[Phase.CONTRACT].is_default is True
