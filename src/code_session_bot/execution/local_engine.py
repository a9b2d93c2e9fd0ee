from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from ..languages import prepare_source
from .config import (
    BINARY_NAME,
    SOURCE_STEM,
    TEMP_DIR_PREFIX,
    compile_command,
    run_command,
    validate_sandbox_command,
)
from .types import ExecutionOutcome, ExecutionRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class _Completed:
    """Decoded streams of a process that exited before the deadline.

    Example:
        ```python
        done = _Completed(stdout="2\\n", stderr="")
        ```
    """

    stdout: str
    stderr: str


class _StepFailed(Exception):
    """Carries the outcome of a step that could not complete.

    Example:
        ```python
        raise _StepFailed(ExecutionOutcome.timeout())
        ```
    """

    def __init__(self, outcome: ExecutionOutcome) -> None:
        """Wrap a terminal outcome.

        Example:
            ```python
            err = _StepFailed(ExecutionOutcome.other("boom"))
            ```
        """
        super().__init__(outcome.text or outcome.kind.value)
        self.outcome = outcome


def _decode(raw: bytes) -> str:
    """Decode process output, replacing invalid UTF-8.

    Example:
        ```python
        text = _decode(b"caf\\xc3\\xa9")
        ```
    """
    return raw.decode("utf-8", errors="replace")


async def _reap(proc: asyncio.subprocess.Process, *, kill_group: bool) -> None:
    """Wait for the leader, killing its process group first when still needed.

    The group is only signalled on timeout or while the leader is unreaped;
    once the leader has been reaped its pid may belong to another group.

    Example:
        ```python
        await _reap(proc, kill_group=True)
        ```
    """
    if kill_group or proc.returncode is None:
        with contextlib.suppress(ProcessLookupError, PermissionError):
            os.killpg(proc.pid, signal.SIGKILL)
    await proc.wait()


class LocalEngine:
    """Execute code in a local sandboxed subprocess.

    The run step is prefixed with a sandbox command (firejail by default) that
    gives the program a private overlay filesystem. Compilation runs outside
    the sandbox inside the per-call temporary directory.

    Example:
        ```python
        engine = LocalEngine(sandbox_command=["firejail", "--quiet", "--overlay-tmpfs", "--private"])
        ```
    """

    def __init__(self, *, sandbox_command: Sequence[str] | None = None) -> None:
        """Initialize the engine with a sandbox command prefix.

        Example:
            ```python
            engine = LocalEngine(sandbox_command=[])
            ```
        """
        self._sandbox = validate_sandbox_command(
            list(sandbox_command) if sandbox_command is not None else None
        )

    @property
    def sandbox_command(self) -> list[str]:
        """Return the sandbox prefix used for the run step.

        Example:
            ```python
            prefix = engine.sandbox_command
            ```
        """
        return list(self._sandbox)

    async def execute(self, request: ExecutionRequest, timeout_seconds: float) -> ExecutionOutcome:
        """Write, optionally compile, and run one program under a timeout.

        Example:
            ```python
            outcome = await engine.execute(ExecutionRequest(Language.BASH, "echo hi"), timeout_seconds=5)
            ```
        """
        try:
            workdir = tempfile.TemporaryDirectory(prefix=TEMP_DIR_PREFIX, ignore_cleanup_errors=True)
        except OSError as exc:
            return ExecutionOutcome.other(f"Cannot create temporary directory: {exc}")
        with workdir as tmp:
            try:
                return await self._execute_in(Path(tmp), request, timeout_seconds)
            except _StepFailed as failed:
                return failed.outcome

    async def _execute_in(
        self,
        root: Path,
        request: ExecutionRequest,
        timeout_seconds: float,
    ) -> ExecutionOutcome:
        """Run every step of one execution inside `root`.

        Example:
            ```python
            outcome = await engine._execute_in(Path(tmp), request, 5)
            ```
        """
        caps = request.language.capabilities
        source = root / f"{SOURCE_STEM}{caps.source_suffix}"
        binary = root / BINARY_NAME
        try:
            source.write_text(
                prepare_source(request.language, request.code, request.stdin),
                encoding="utf-8",
            )
        except OSError as exc:
            return ExecutionOutcome.other(f"Cannot write code into file: {exc}")

        if caps.needs_compile:
            compiled = await self._communicate(
                compile_command(source, binary),
                stdin=None,
                timeout_seconds=timeout_seconds,
                role="compiler",
            )
            if compiled.stderr:
                return ExecutionOutcome.compile_error(compiled.stderr.rstrip())

        stdin = request.stdin.encode("utf-8") if caps.feeds_stdin else None
        completed = await self._communicate(
            run_command(request.language, source, binary, self._sandbox),
            stdin=stdin,
            timeout_seconds=timeout_seconds,
            role="runner",
        )
        if completed.stderr:
            return ExecutionOutcome.runtime_error(completed.stderr.strip())
        return ExecutionOutcome.success(completed.stdout.strip())

    async def _communicate(
        self,
        argv: list[str],
        *,
        stdin: bytes | None,
        timeout_seconds: float,
        role: str,
    ) -> _Completed:
        """Spawn `argv`, feed stdin, and race completion against the timeout.

        Example:
            ```python
            done = await engine._communicate(["bash", "x.sh"], stdin=b"", timeout_seconds=5, role="runner")
            ```
        """
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as exc:
            raise _StepFailed(ExecutionOutcome.other(f"Cannot spawn {role} process: {exc}")) from exc

        timed_out = False
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(stdin), timeout=timeout_seconds)
        except asyncio.TimeoutError:
            timed_out = True
            logger.debug("%s pid=%s exceeded %ss, killing process group", role, proc.pid, timeout_seconds)
            raise _StepFailed(ExecutionOutcome.timeout()) from None
        except OSError as exc:
            raise _StepFailed(
                ExecutionOutcome.other(f"Cannot communicate with {role} process: {exc}")
            ) from exc
        finally:
            await _reap(proc, kill_group=timed_out)
        return _Completed(stdout=_decode(stdout), stderr=_decode(stderr))
