# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Process execution manager.

Spawns and supervises external commands on behalf of the agent. Execution
fails closed: :class:`ProcessExecutor` refuses every request until
``AGENTBOX_ALLOW_EXECUTE=1`` has been set in the configuration.

Three modes are supported:

- ``buffered`` collects stdout and stderr separately and renders
  ``exit N / stdout / stderr`` sections.
- ``streamed`` drains both pipes concurrently and returns them interleaved in
  arrival order.
- ``background`` discards output and returns the process id immediately.

Buffered and streamed runs honour the same timeout. On expiry the whole
process group is killed and the result carries exit code ``124``.

Example usage::

    executor = ProcessExecutor(Workspace(), AgentboxConfig.from_env())
    result = executor.execute(ExecutionRequest(command="ls", args=("-la",)))
    print(result.render())
"""

from __future__ import annotations

import codecs
import math
import os
import signal
import subprocess  # nosec: B404
import threading
import time
from collections.abc import Mapping, Sequence
from dataclasses import field
from typing import IO, Final, Literal, cast, get_args

from ..config import ALLOW_EXECUTE_ENV, AgentboxConfig
from ..dataclasses import FrozenDataclass
from ..errors import (
    ExecutionDisabledError,
    PolicyDeniedError,
    SpawnFailedError,
    ToolValidationError,
)
from ..filesystem import ResolvedPath, Workspace
from ..output import cap_output
from ..runtime.logging import StructuredLogger, get_logger
from ._audit import AuditLog
from ._policy import CommandPolicy

__all__ = [
    "TIMEOUT_EXIT_CODE",
    "CapturedRun",
    "ExecutionMode",
    "ExecutionRequest",
    "ExecutionResult",
    "ProcessExecutor",
]

ExecutionMode = Literal["buffered", "streamed", "background"]

TIMEOUT_EXIT_CODE: Final[int] = 124
_MAX_ENV_VARS: Final[int] = 64
_MAX_COMMAND_LENGTH: Final[int] = 4_096
_READ_CHUNK: Final[int] = 4_096
_DRAIN_GRACE_SECONDS: Final[float] = 1.0
_MODES: Final[tuple[str, ...]] = get_args(ExecutionMode)

_LOGGER: StructuredLogger = get_logger(__name__, context={"component": "execution"})


@FrozenDataclass()
class ExecutionRequest:
    """Parameters for a single process execution."""

    command: str
    args: tuple[str, ...] = ()
    cwd: str = "."
    env: Mapping[str, str] = field(default_factory=lambda: dict[str, str]())
    timeout: float | None = None
    max_output_bytes: int | None = None
    mode: ExecutionMode = "buffered"


@FrozenDataclass()
class ExecutionResult:
    """Outcome of a process execution; ``output`` is already capped."""

    command: str
    args: tuple[str, ...]
    cwd: str
    mode: ExecutionMode
    exit_code: int | None
    output: str
    truncated: bool
    timed_out: bool
    pid: int | None
    duration_ms: int

    def render(self) -> str:
        return self.output


@FrozenDataclass()
class CapturedRun:
    """Raw result of an internal fixed-argv command."""

    exit_code: int
    stdout: str
    stderr: str


def normalize_command(command: object) -> str:
    if not isinstance(command, str) or not command.strip():
        raise ToolValidationError("command must be a non-empty string.")
    if "\x00" in command:
        raise ToolValidationError("command must not contain NUL characters.")
    if len(command) > _MAX_COMMAND_LENGTH:
        raise ToolValidationError("command is too long (limit 4,096 characters).")
    return command


def normalize_args(args: object) -> tuple[str, ...]:
    if isinstance(args, str) or not isinstance(args, Sequence):
        raise ToolValidationError("args must be a list of strings.")
    normalized: list[str] = []
    total_length = 0
    for index, entry in enumerate(cast(Sequence[object], args)):
        if not isinstance(entry, str):
            raise ToolValidationError(f"args[{index}] must be a string.")
        if "\x00" in entry:
            raise ToolValidationError(f"args[{index}] must not contain NUL characters.")
        total_length += len(entry)
        normalized.append(entry)
    if total_length > _MAX_COMMAND_LENGTH * 8:
        raise ToolValidationError("args are too long (limit 32,768 characters).")
    return tuple(normalized)


def normalize_env(env: object) -> dict[str, str]:
    """Validate environment overrides.

    Raises:
        ToolValidationError: If env is not a string mapping or exceeds limits.
    """
    if not isinstance(env, Mapping):
        raise ToolValidationError("env must be an object of string values.")
    entries = cast(Mapping[object, object], env)
    if len(entries) > _MAX_ENV_VARS:
        raise ToolValidationError("env contains too many entries (max 64).")
    normalized: dict[str, str] = {}
    for key, value in entries.items():
        if not isinstance(key, str) or not key:
            raise ToolValidationError("env keys must be non-empty strings.")
        if "=" in key or "\x00" in key:
            raise ToolValidationError(f"env key {key!r} is not a valid name.")
        if not isinstance(value, str):
            raise ToolValidationError(f"env value for {key!r} must be a string.")
        if "\x00" in value:
            raise ToolValidationError(
                f"env value for {key!r} must not contain NUL characters."
            )
        normalized[key] = value
    return normalized


def normalize_timeout(timeout: object, fallback: float | None) -> float | None:
    if timeout is None:
        return fallback
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        raise ToolValidationError("timeout must be a number of seconds.")
    if math.isnan(timeout) or timeout <= 0:
        raise ToolValidationError("timeout must be a positive number of seconds.")
    return float(timeout)


def normalize_max_output(value: object, fallback: int) -> int:
    if value is None:
        return fallback
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ToolValidationError("max_output_bytes must be a positive integer.")
    return value


class ProcessExecutor:
    """Spawn and supervise commands confined to a workspace."""

    def __init__(
        self,
        workspace: Workspace,
        config: AgentboxConfig,
        *,
        audit: AuditLog | None = None,
        policy: CommandPolicy | None = None,
    ) -> None:
        super().__init__()
        self._workspace = workspace
        self._config = config
        self._audit = (
            audit
            if audit is not None
            else AuditLog.for_workspace(workspace, enabled=config.audit_enabled)
        )
        self._policy = policy if policy is not None else CommandPolicy.from_config(config)

    @property
    def audit(self) -> AuditLog:
        return self._audit

    def execute(self, request: ExecutionRequest) -> ExecutionResult:
        """Run ``request`` after gating, validation, policy and confinement.

        Raises:
            ExecutionDisabledError: If execution has not been enabled.
            ToolValidationError: If the request is malformed.
            PolicyDeniedError: If the allow or deny list rejects the command.
            OutsideWorkspaceError: If ``cwd`` escapes the workspace.
            SpawnFailedError: If the operating system cannot start the process.
        """
        if not self._config.execute_enabled:
            raise ExecutionDisabledError(
                f"Process execution is disabled; set {ALLOW_EXECUTE_ENV}=1 to enable it."
            )

        command = normalize_command(request.command)
        args = normalize_args(request.args)
        overrides = normalize_env(request.env)
        timeout = normalize_timeout(request.timeout, self._config.exec_timeout)
        max_bytes = normalize_max_output(
            request.max_output_bytes, self._config.exec_max_output_bytes
        )
        if request.mode not in _MODES:
            raise ToolValidationError(
                f"mode must be one of {', '.join(_MODES)}; got {request.mode!r}."
            )
        if not isinstance(request.cwd, str) or not request.cwd.strip():
            raise ToolValidationError("cwd must be a non-empty string.")

        try:
            self._policy.check(command)
        except PolicyDeniedError as error:
            _LOGGER.warning(
                "Command rejected by policy.",
                event="execution.denied",
                context={"command": command},
            )
            self._audit.record(
                command=command,
                args=args,
                cwd=self._workspace.relative(request.cwd),
                exit_code=None,
                mode=request.mode,
                error=str(error),
            )
            raise

        cwd = self._workspace.confine(request.cwd)
        if not cwd.path.is_dir():
            raise ToolValidationError(f"cwd is not a directory: {request.cwd}")

        env = {**os.environ, **overrides}
        argv = [command, *args]
        if request.mode == "background":
            return self._run_background(argv, cwd, env)
        if request.mode == "streamed":
            return self._run_streamed(argv, cwd, env, timeout, max_bytes)
        return self._run_buffered(argv, cwd, env, timeout, max_bytes)

    def run_captured(
        self, argv: Sequence[str], cwd: str = ".", *, timeout: float | None = None
    ) -> CapturedRun:
        """Run an internal fixed ``argv`` and capture both streams.

        This path serves built-in tools (git) and therefore skips the enable
        flag and the command policy. ``cwd`` is still confined.
        """
        resolved = self._workspace.confine(cwd)
        try:
            completed = subprocess.run(  # nosec B603
                list(argv),
                cwd=resolved.path,
                capture_output=True,
                stdin=subprocess.DEVNULL,
                timeout=timeout if timeout is not None else self._config.exec_timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as error:
            return CapturedRun(
                exit_code=TIMEOUT_EXIT_CODE,
                stdout=_decode(error.stdout),
                stderr=_decode(error.stderr),
            )
        except OSError as error:
            raise SpawnFailedError(
                f"Failed to start {argv[0]}: {error.strerror or error}"
            ) from error
        return CapturedRun(
            exit_code=completed.returncode,
            stdout=_decode(completed.stdout),
            stderr=_decode(completed.stderr),
        )

    def _spawn(
        self,
        argv: list[str],
        cwd: ResolvedPath,
        env: Mapping[str, str],
        *,
        mode: ExecutionMode,
        capture: bool,
    ) -> subprocess.Popen[bytes]:
        stream = subprocess.PIPE if capture else subprocess.DEVNULL
        try:
            process = subprocess.Popen(  # nosec B603
                argv,
                cwd=cwd.path,
                env=dict(env),
                stdin=subprocess.DEVNULL,
                stdout=stream,
                stderr=stream,
                start_new_session=os.name == "posix",
            )
        except OSError as error:
            message = f"Failed to start {argv[0]}: {error.strerror or error}"
            self._audit.record(
                command=argv[0],
                args=argv[1:],
                cwd=cwd.relative,
                exit_code=None,
                mode=mode,
                error=message,
            )
            raise SpawnFailedError(message) from error
        _LOGGER.debug(
            "Spawned process.",
            event="execution.spawned",
            context={"command": argv[0], "pid": process.pid, "mode": mode},
        )
        return process

    def _run_background(
        self, argv: list[str], cwd: ResolvedPath, env: Mapping[str, str]
    ) -> ExecutionResult:
        start = time.perf_counter()
        process = self._spawn(argv, cwd, env, mode="background", capture=False)
        self._audit.record(
            command=argv[0],
            args=argv[1:],
            cwd=cwd.relative,
            exit_code=None,
            mode="background",
        )
        return ExecutionResult(
            command=argv[0],
            args=tuple(argv[1:]),
            cwd=cwd.relative,
            mode="background",
            exit_code=None,
            output=f"started pid {process.pid}",
            truncated=False,
            timed_out=False,
            pid=process.pid,
            duration_ms=_elapsed_ms(start),
        )

    def _run_buffered(
        self,
        argv: list[str],
        cwd: ResolvedPath,
        env: Mapping[str, str],
        timeout: float | None,
        max_bytes: int,
    ) -> ExecutionResult:
        start = time.perf_counter()
        process = self._spawn(argv, cwd, env, mode="buffered", capture=True)
        timed_out = False
        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            timed_out = True
            _kill_group(process)
            stdout, stderr = _drain_after_kill(process)
        exit_code = TIMEOUT_EXIT_CODE if timed_out else process.returncode
        body = f"exit {exit_code}\nstdout:\n{_decode(stdout)}\nstderr:\n{_decode(stderr)}"
        if timed_out:
            body = f"timed out after {timeout:g}s\n{body}"
        return self._finish(
            argv,
            cwd,
            mode="buffered",
            exit_code=exit_code,
            body=body,
            max_bytes=max_bytes,
            timed_out=timed_out,
            timeout=timeout,
            pid=process.pid,
            start=start,
        )

    def _run_streamed(
        self,
        argv: list[str],
        cwd: ResolvedPath,
        env: Mapping[str, str],
        timeout: float | None,
        max_bytes: int,
    ) -> ExecutionResult:
        start = time.perf_counter()
        process = self._spawn(argv, cwd, env, mode="streamed", capture=True)
        chunks: list[str] = []
        lock = threading.Lock()
        readers = [
            threading.Thread(
                target=_drain,
                args=(cast(IO[bytes], pipe), chunks, lock),
                daemon=True,
            )
            for pipe in (process.stdout, process.stderr)
        ]
        for reader in readers:
            reader.start()

        timed_out = False
        try:
            _ = process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            timed_out = True
            _kill_group(process)
            _ = process.wait()
        for reader in readers:
            reader.join(timeout=_DRAIN_GRACE_SECONDS if timeout is not None else None)

        with lock:
            body = "".join(chunks)
        exit_code = TIMEOUT_EXIT_CODE if timed_out else process.returncode
        if timed_out:
            body = f"timed out after {timeout:g}s\n{body}"
        return self._finish(
            argv,
            cwd,
            mode="streamed",
            exit_code=exit_code,
            body=body,
            max_bytes=max_bytes,
            timed_out=timed_out,
            timeout=timeout,
            pid=process.pid,
            start=start,
        )

    def _finish(
        self,
        argv: list[str],
        cwd: ResolvedPath,
        *,
        mode: ExecutionMode,
        exit_code: int,
        body: str,
        max_bytes: int,
        timed_out: bool,
        timeout: float | None,
        pid: int,
        start: float,
    ) -> ExecutionResult:
        capped = cap_output(body, max_bytes)
        duration_ms = _elapsed_ms(start)
        error = f"timed out after {timeout:g}s" if timed_out else None
        self._audit.record(
            command=argv[0],
            args=argv[1:],
            cwd=cwd.relative,
            exit_code=exit_code,
            mode=mode,
            truncated=capped.truncated,
            error=error,
        )
        if timed_out:
            _LOGGER.warning(
                "Process exceeded its timeout.",
                event="execution.timed_out",
                context={"command": argv[0], "timeout": timeout, "pid": pid},
            )
        _LOGGER.info(
            "Process finished.",
            event="execution.completed",
            context={
                "command": argv[0],
                "exit_code": exit_code,
                "mode": mode,
                "duration_ms": duration_ms,
                "truncated": capped.truncated,
            },
        )
        return ExecutionResult(
            command=argv[0],
            args=tuple(argv[1:]),
            cwd=cwd.relative,
            mode=mode,
            exit_code=exit_code,
            output=capped.text,
            truncated=capped.truncated,
            timed_out=timed_out,
            pid=pid,
            duration_ms=duration_ms,
        )


def _drain(pipe: IO[bytes], chunks: list[str], lock: threading.Lock) -> None:
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    with pipe:
        while True:
            data = os.read(pipe.fileno(), _READ_CHUNK)
            if not data:
                break
            text = decoder.decode(data)
            if text:
                with lock:
                    chunks.append(text)
    tail = decoder.decode(b"", final=True)
    if tail:
        with lock:
            chunks.append(tail)


def _kill_group(process: subprocess.Popen[bytes]) -> None:
    try:
        if os.name == "posix":
            os.killpg(process.pid, signal.SIGKILL)
        else:  # pragma: no cover - windows
            process.kill()
    except ProcessLookupError:
        pass


def _drain_after_kill(
    process: subprocess.Popen[bytes],
) -> tuple[bytes | None, bytes | None]:
    """Collect what is left on the pipes once the group has been killed.

    A descendant that escaped the process group can hold the pipes open, so
    the drain is bounded and whatever arrived within the grace period is kept.
    """
    try:
        return process.communicate(timeout=_DRAIN_GRACE_SECONDS)
    except subprocess.TimeoutExpired as error:
        _LOGGER.warning(
            "Pipes still open after kill; abandoning drain.",
            event="execution.drain_abandoned",
            context={"pid": process.pid},
        )
        for pipe in (process.stdout, process.stderr):
            if pipe is not None:
                pipe.close()
        _ = process.wait()
        return error.stdout, error.stderr


def _decode(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, str):
        return data
    return data.decode("utf-8", errors="replace")


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1_000)
