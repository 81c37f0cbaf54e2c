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

"""Process and script tools."""

from __future__ import annotations

from typing import Final

from ..execution import ExecutionMode, ExecutionRequest
from ._args import (
    optional_bool,
    optional_int,
    optional_number,
    optional_str,
    optional_str_list,
    optional_str_map,
    require_str,
)
from ._types import Tool, ToolArgs, ToolContext, ToolResult, ToolSpec

__all__ = ["PROCESS_TOOLS"]


def _timeout_seconds(args: ToolArgs) -> float | None:
    millis = optional_number(args, "timeoutMs", minimum=1)
    return None if millis is None else millis / 1000


def execute(context: ToolContext, args: ToolArgs) -> ToolResult:
    """Run a command; timeouts are reported as an error result."""
    mode: ExecutionMode = "buffered"
    if optional_bool(args, "background"):
        mode = "background"
    elif optional_bool(args, "stream"):
        mode = "streamed"

    request = ExecutionRequest(
        command=require_str(args, "command"),
        args=optional_str_list(args, "args"),
        cwd=optional_str(args, "cwd", ".") or ".",
        env=optional_str_map(args, "env"),
        timeout=_timeout_seconds(args),
        max_output_bytes=optional_int(args, "maxOutputBytes", minimum=1),
        mode=mode,
    )
    result = context.executor.execute(request)
    return ToolResult(id="execute", output=result.render(), error=result.timed_out)


def run_script(context: ToolContext, args: ToolArgs) -> ToolResult:
    outcome = context.sandbox.run(
        require_str(args, "code"),
        timeout=_timeout_seconds(args),
        max_output_bytes=optional_int(args, "maxOutputBytes", minimum=1),
        allow_network=optional_bool(args, "allowNetwork"),
        sandbox_dir=optional_str(args, "sandboxDir", "/sandbox") or "/sandbox",
    )
    return ToolResult(
        id="run_script", output=outcome.render(), error=outcome.status != "ok"
    )


PROCESS_TOOLS: Final[tuple[Tool, ...]] = (
    Tool(
        spec=ToolSpec(
            name="execute",
            description="Run a command with optional args",
            parameters={
                "type": "object",
                "properties": {
                    "command": {"type": "string"},
                    "args": {"type": "array", "items": {"type": "string"}},
                    "cwd": {"type": "string"},
                    "env": {"type": "object"},
                    "timeoutMs": {"type": "number"},
                    "background": {"type": "boolean"},
                    "stream": {"type": "boolean"},
                    "maxOutputBytes": {"type": "number"},
                },
                "required": ["command"],
            },
        ),
        handler=execute,
        tag="execute",
    ),
    Tool(
        spec=ToolSpec(
            name="run_script",
            description="Evaluate Python in an isolated, time-boxed interpreter",
            parameters={
                "type": "object",
                "properties": {
                    "code": {"type": "string"},
                    "timeoutMs": {"type": "number"},
                    "maxOutputBytes": {"type": "number"},
                    "sandboxDir": {"type": "string"},
                    "allowNetwork": {"type": "boolean"},
                },
                "required": ["code"],
            },
        ),
        handler=run_script,
        tag="run_script",
    ),
)
