"""Tests for zdd_engine.errors."""

from __future__ import annotations

from zdd_engine.errors import CommandExecutionError, ExecutionError, RecordError, ZddError


class TestLogContext:
    def test_execution_error_carries_task(self) -> None:
        error = ExecutionError(
            "failed", deployment_id="000003", phase="contract", path="/m/000003_drop/contract.sql"
        )

        assert error.log_context() == {
            "deployment_id": "000003",
            "phase": "contract",
            "path": "/m/000003_drop/contract.sql",
        }

    def test_record_error_carries_deployment_only(self) -> None:
        assert RecordError("failed", deployment_id="000004").log_context() == {"deployment_id": "000004"}

    def test_plain_errors_are_empty(self) -> None:
        assert ZddError("boom").log_context() == {}
        assert CommandExecutionError("exit 1", exit_code=1).log_context() == {}
