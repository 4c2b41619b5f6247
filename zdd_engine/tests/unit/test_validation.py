"""Unit tests for zdd_engine.planner.validation."""

from __future__ import annotations

import pytest

from zdd_engine.errors import ValidationError
from zdd_engine.models.deployment import (
    Deployment,
    DeploymentPhases,
    Phase,
    PhaseFiles,
    SQLFile,
)
from zdd_engine.models.plan import Plan, Task, TaskKind
from zdd_engine.planner.validation import validate_plan, validate_unique_ids


def _dep(deployment_id: str, name: str = "d") -> Deployment:
    return Deployment(id=deployment_id, name=name, directory=f"/m/{deployment_id}_{name}")


def _task(dep: Deployment, phase: Phase, kind: TaskKind = TaskKind.SQL) -> Task:
    suffix = "sh" if kind is TaskKind.SCRIPT else "sql"
    return Task(kind=kind, path=f"{dep.directory}/{phase.value}.{suffix}", phase=phase, deployment=dep)


class TestValidateUniqueIds:
    def test_unique_passes(self) -> None:
        validate_unique_ids([_dep("000001"), _dep("000002")])

    def test_duplicate_names_both_directories(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            validate_unique_ids([_dep("000001", "a"), _dep("000001", "b"), _dep("000002")])
        message = str(exc_info.value)
        assert "000001_a" in message
        assert "000001_b" in message
        assert "000002" not in message


class TestValidatePlan:
    def test_canonical_plan_passes(self) -> None:
        a, b = _dep("000001"), _dep("000002")
        plan = Plan(
            tasks=[
                _task(a, Phase.EXPAND, TaskKind.SCRIPT),
                _task(a, Phase.EXPAND),
                _task(a, Phase.EXPAND),
                _task(a, Phase.POST, TaskKind.SCRIPT),
                _task(b, Phase.MIGRATE),
                _task(b, Phase.CONTRACT, TaskKind.SCRIPT),
            ]
        )
        validate_plan(plan)

    def test_empty_plan_passes(self) -> None:
        validate_plan(Plan())

    def test_multiple_pending_expand_contract_deployments_allowed(self) -> None:
        deployments = []
        for i in (1, 2):
            phases = DeploymentPhases(
                expand=PhaseFiles(sql_files=[SQLFile(path="/e.sql", content="A")]),
                contract=PhaseFiles(sql_files=[SQLFile(path="/c.sql", content="C")]),
            )
            deployments.append(Deployment(id=f"00000{i}", name="x", phases=phases))
        plan = Plan(
            tasks=[task for d in deployments for task in (_task(d, Phase.EXPAND), _task(d, Phase.CONTRACT))]
        )
        validate_plan(plan)

    def test_interleaved_deployments_rejected(self) -> None:
        a, b = _dep("000001"), _dep("000002")
        plan = Plan(tasks=[_task(a, Phase.EXPAND), _task(b, Phase.EXPAND), _task(a, Phase.MIGRATE)])
        with pytest.raises(ValidationError, match="interleaved"):
            validate_plan(plan)

    def test_descending_ids_rejected(self) -> None:
        a, b = _dep("000001"), _dep("000002")
        with pytest.raises(ValidationError, match="planned after"):
            validate_plan(Plan(tasks=[_task(b, Phase.EXPAND), _task(a, Phase.EXPAND)]))

    def test_phase_regression_rejected(self) -> None:
        a = _dep("000001")
        with pytest.raises(ValidationError, match="regresses"):
            validate_plan(Plan(tasks=[_task(a, Phase.CONTRACT), _task(a, Phase.EXPAND)]))

    def test_script_after_sql_rejected(self) -> None:
        a = _dep("000001")
        plan = Plan(tasks=[_task(a, Phase.MIGRATE), _task(a, Phase.MIGRATE, TaskKind.SCRIPT)])
        with pytest.raises(ValidationError, match="first task"):
            validate_plan(plan)

    def test_sql_in_post_rejected(self) -> None:
        a = _dep("000001")
        with pytest.raises(ValidationError, match="post"):
            validate_plan(Plan(tasks=[_task(a, Phase.POST, TaskKind.SQL)]))
