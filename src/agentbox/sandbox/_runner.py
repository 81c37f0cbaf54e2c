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

"""Script sandbox built on the asteval interpreter.

Each call to :meth:`ScriptSandbox.run` builds a brand-new interpreter, runs
the script, drains deferred jobs one at a time and then releases the
interpreter. Nothing survives between calls.

Example usage::

    sandbox = ScriptSandbox(AgentboxConfig())
    outcome = sandbox.run("total = sum(range(10))\\nprint(total)\\ntotal * 2")
    assert outcome.status == "ok"
    assert outcome.result == "90"
    assert outcome.console == ("log: 45",)
"""

from __future__ import annotations

import math
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Final, Literal

import httpx

from ..config import AgentboxConfig
from ..dataclasses import FrozenDataclass
from ..errors import ToolValidationError
from ..output import cap_output
from ..runtime.logging import StructuredLogger, get_logger
from ._interpreter import (
    Deadline,
    create_interpreter,
    format_value,
    release_interpreter,
)
from ._network import build_fetch

__all__ = ["ScriptOutcome", "ScriptSandbox", "ScriptStatus"]

ScriptStatus = Literal["ok", "error", "timeout"]

MAX_CODE_LENGTH: Final[int] = 20_000
DEFAULT_SANDBOX_DIR: Final[str] = "/sandbox"

_LOGGER: StructuredLogger = get_logger(__name__, context={"component": "sandbox"})


@FrozenDataclass()
class ScriptOutcome:
    """Result of a sandboxed script run."""

    status: ScriptStatus = field(
        metadata={"description": "ok, error (script raised) or timeout."}
    )
    result: str = field(
        metadata={"description": "Rendered final value or the error message."}
    )
    console: tuple[str, ...] = field(
        default=(),
        metadata={"description": "Captured console lines in call order."},
    )
    truncated: bool = field(
        default=False,
        metadata={"description": "Whether render() had to drop output."},
    )
    max_output_bytes: int | None = field(
        default=None,
        metadata={"description": "Byte budget applied by render()."},
    )

    def render(self) -> str:
        parts = [f"status: {self.status}", f"result: {self.result}"]
        if self.console:
            parts.append("console:")
            parts.extend(self.console)
        text = "\n".join(parts)
        if self.max_output_bytes is None:
            return text
        return cap_output(text, self.max_output_bytes).text


@dataclass(slots=True)
class _Job:
    func: Callable[..., object]
    args: tuple[object, ...]


class _Console:
    """Console object exposed to scripts as ``console``."""

    def __init__(self, lines: list[str]) -> None:
        super().__init__()
        self._lines = lines

    def _emit(self, label: str, values: tuple[object, ...]) -> None:
        rendered = " ".join(format_value(value) for value in values)
        self._lines.append(f"{label}: {rendered}" if rendered else label)

    def log(self, *values: object) -> None:
        self._emit("log", values)

    def warn(self, *values: object) -> None:
        self._emit("warn", values)

    def error(self, *values: object) -> None:
        self._emit("error", values)


class ScriptSandbox:
    """Run untrusted Python snippets under a wall-clock budget."""

    def __init__(
        self,
        config: AgentboxConfig,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__()
        self._config = config
        self._transport = transport

    def run(
        self,
        code: str,
        *,
        timeout: float | None = None,
        max_output_bytes: int | None = None,
        allow_network: bool = False,
        sandbox_dir: str = DEFAULT_SANDBOX_DIR,
    ) -> ScriptOutcome:
        """Evaluate ``code`` and drain deferred jobs.

        The status is ``timeout`` whenever the deadline passes, during the
        main body or while draining; ``error`` when the script or a deferred
        job raises; ``ok`` otherwise.

        Raises:
            ToolValidationError: If the arguments are malformed.
        """
        code = _normalize_code(code)
        budget = _positive(timeout, "timeout", self._config.script_timeout)
        max_bytes = int(
            _positive(
                max_output_bytes,
                "max_output_bytes",
                self._config.script_max_output_bytes,
            )
        )
        if not isinstance(sandbox_dir, str):
            raise ToolValidationError("sandbox_dir must be a string.")

        console: list[str] = []
        jobs: deque[_Job] = deque()
        deadline = Deadline(budget)
        capabilities = self._capabilities(
            console, jobs, deadline, allow_network=allow_network, sandbox_dir=sandbox_dir
        )

        interpreter = create_interpreter(capabilities, deadline)
        status: ScriptStatus = "ok"
        try:
            try:
                value = interpreter.eval(code, show_errors=False, raise_errors=True)
                result = format_value(value)
            except Exception as error:
                status = "timeout" if deadline.expired else "error"
                result = _describe(error, deadline)

            while status == "ok" and jobs:
                if deadline.remaining() <= 0:
                    deadline.expired = True
                    status = "timeout"
                    result = _describe(None, deadline)
                    break
                job = jobs.popleft()
                interpreter.error = []
                interpreter.error_msg = None
                try:
                    _ = job.func(*job.args)
                except Exception as error:
                    status = "timeout" if deadline.expired else "error"
                    result = _describe(error, deadline)
        finally:
            release_interpreter(interpreter)

        outcome = ScriptOutcome(status=status, result=result, console=tuple(console))
        truncated = cap_output(outcome.render(), max_bytes).truncated
        outcome = outcome.update(truncated=truncated, max_output_bytes=max_bytes)
        if status == "timeout":
            _LOGGER.warning(
                "Script exceeded its time budget.",
                event="sandbox.timed_out",
                context={"timeout": budget},
            )
        _LOGGER.info(
            "Script finished.",
            event="sandbox.completed",
            context={
                "status": status,
                "console_lines": len(console),
                "network": allow_network,
                "truncated": outcome.truncated,
            },
        )
        return outcome

    def _capabilities(
        self,
        console: list[str],
        jobs: deque[_Job],
        deadline: Deadline,
        *,
        allow_network: bool,
        sandbox_dir: str,
    ) -> dict[str, object]:
        sandbox_console = _Console(console)

        def sandbox_print(*values: object, sep: str = " ") -> None:
            text = sep.join(format_value(value) for value in values)
            console.append(f"log: {text}" if text else "log")

        def defer(func: Callable[..., object], *args: object) -> None:
            if not callable(func):
                raise TypeError("defer() requires a callable.")
            jobs.append(_Job(func=func, args=args))

        granted: dict[str, object] = {
            "print": sandbox_print,
            "console": sandbox_console,
            "defer": defer,
            "SANDBOX_ROOT": sandbox_dir,
        }
        if allow_network:
            granted["fetch"] = build_fetch(deadline, transport=self._transport)
        return granted


def _normalize_code(code: object) -> str:
    if not isinstance(code, str) or not code.strip():
        raise ToolValidationError("code must be a non-empty string.")
    if len(code) > MAX_CODE_LENGTH:
        raise ToolValidationError("code exceeds maximum length of 20,000 characters.")
    return code


def _positive(value: object, name: str, fallback: float) -> float:
    if value is None:
        return fallback
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ToolValidationError(f"{name} must be a positive number.")
    if not math.isfinite(value) or value <= 0:
        raise ToolValidationError(f"{name} must be a positive number.")
    return float(value)


def _describe(error: BaseException | None, deadline: Deadline) -> str:
    if deadline.expired:
        return f"Script exceeded its time budget of {deadline.seconds:g}s."
    if error is None:
        return "None"
    lines = [line for line in str(error).splitlines() if line.strip()]
    message = lines[-1] if lines else ""
    name = type(error).__name__
    if message.startswith(f"{name}:") or not message:
        return message or name
    return f"{name}: {message}"
