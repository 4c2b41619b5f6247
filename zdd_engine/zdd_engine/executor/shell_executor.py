"""Run phase scripts and shell commands as asyncio subprocesses.

Each child runs in its own session so that a timeout can kill the whole
process group, including anything a script spawned.  Combined stdout and
stderr are captured, logged line by line, and returned to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import time
from collections.abc import Mapping, Sequence
from pathlib import Path

from zdd_engine.errors import CommandExecutionError
from zdd_engine.executor.base import CommandResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 300.0


class ShellCommandExecutor:
    """Execute scripts and ``sh -c`` commands with a wall-clock timeout.

    Parameters
    ----------
    timeout:
        Default limit in seconds applied when a call does not pass its own.
    shell:
        Interpreter used by :meth:`run_command`.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS, shell: str = "sh") -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self._timeout = timeout
        self._shell = shell

    @property
    def timeout(self) -> float:
        return self._timeout

    async def run_script(
        self,
        path: Path,
        working_dir: Path,
        env: Mapping[str, str],
        timeout: float | None = None,
    ) -> CommandResult:
        """Execute *path* directly; see :class:`~zdd_engine.executor.base.CommandExecutor`.

        A relative *path* is taken from the current directory, not *working_dir*.
        """
        script = Path(path).absolute()
        return await self._run([str(script)], Path(working_dir), env, timeout, label=script.name)

    async def run_command(
        self,
        command: str,
        working_dir: Path,
        env: Mapping[str, str],
        timeout: float | None = None,
    ) -> CommandResult:
        """Execute *command* through the shell.  An empty command is a no-op."""
        if not command.strip():
            return CommandResult()
        return await self._run(
            [self._shell, "-c", command], Path(working_dir), env, timeout, label=command
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run(
        self,
        argv: Sequence[str],
        working_dir: Path,
        env: Mapping[str, str],
        timeout: float | None,
        label: str,
    ) -> CommandResult:
        limit = timeout if timeout is not None else self._timeout
        merged_env = {**os.environ, **env}
        started = time.monotonic()

        logger.debug("Running %s in %s (timeout %.0fs)", label, working_dir, limit)
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(working_dir),
                env=merged_env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                start_new_session=True,
            )
        except OSError as exc:
            raise CommandExecutionError(f"Failed to start {label}: {exc}") from exc

        chunks: list[bytes] = []
        try:
            await asyncio.wait_for(
                asyncio.gather(self._drain(proc.stdout, chunks), proc.wait()),
                timeout=limit,
            )
        except asyncio.TimeoutError as exc:
            self._kill(proc)
            await proc.wait()
            output = self._log_output(label, chunks)
            raise CommandExecutionError(
                f"{label} timed out after {limit:g}s",
                timed_out=True,
                output=output,
            ) from exc

        output = self._log_output(label, chunks)

        duration = time.monotonic() - started
        exit_code = proc.returncode if proc.returncode is not None else -1
        if exit_code < 0:
            raise CommandExecutionError(
                f"{label} was terminated by signal {-exit_code}",
                exit_code=exit_code,
                output=output,
            )
        if exit_code != 0:
            raise CommandExecutionError(
                f"{label} exited with code {exit_code}",
                exit_code=exit_code,
                output=output,
            )

        return CommandResult(exit_code=exit_code, output=output, duration_seconds=duration)

    @staticmethod
    async def _drain(stream: asyncio.StreamReader | None, chunks: list[bytes]) -> None:
        """Append everything read from *stream* to *chunks* until EOF."""
        if stream is None:
            return
        while True:
            chunk = await stream.read(4096)
            if not chunk:
                return
            chunks.append(chunk)

    @staticmethod
    def _log_output(label: str, chunks: list[bytes]) -> str:
        output = b"".join(chunks).decode("utf-8", errors="replace")
        for line in output.splitlines():
            logger.info("[%s] %s", label, line)
        return output

    @staticmethod
    def _kill(proc: asyncio.subprocess.Process) -> None:
        try:
            os.killpg(proc.pid, signal.SIGKILL)
        except (ProcessLookupError, PermissionError):
            try:
                proc.kill()
            except ProcessLookupError:
                pass
