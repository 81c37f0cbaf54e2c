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

"""Git tools run through the executor's captured runner."""

from __future__ import annotations

from typing import Final

from ..errors import ToolValidationError
from ..execution import TIMEOUT_EXIT_CODE
from ..output import cap_output
from ._args import optional_bool, optional_str, require_str
from ._types import Tool, ToolArgs, ToolContext, ToolResult, ToolSpec

__all__ = ["GIT_TOOLS"]

_PATH_PROPERTY: Final[dict[str, str]] = {"type": "string"}


def _run_git(context: ToolContext, args: ToolArgs, tag: str, argv: list[str]) -> ToolResult:
    cwd = optional_str(args, "path", ".") or "."
    run = context.executor.run_captured(argv, cwd)
    body = f"exit {run.exit_code}\n{run.stdout}"
    if run.stderr:
        body += f"\nstderr:\n{run.stderr}"
    capped = cap_output(body, context.config.git_max_output_bytes)
    return ToolResult(id=tag, output=capped.text, error=run.exit_code == TIMEOUT_EXIT_CODE)


def git_status(context: ToolContext, args: ToolArgs) -> ToolResult:
    return _run_git(context, args, "git_status", ["git", "status", "--short", "--branch"])


def git_diff(context: ToolContext, args: ToolArgs) -> ToolResult:
    argv = ["git", "diff"]
    if optional_bool(args, "staged"):
        argv.append("--cached")
    ref = optional_str(args, "ref")
    if ref:
        if ref.startswith("-"):
            raise ToolValidationError("'ref' must not start with '-'.")
        argv.append(ref)
    file = optional_str(args, "file")
    if file:
        argv.extend(["--", file])
    return _run_git(context, args, "git_diff", argv)


def git_commit(context: ToolContext, args: ToolArgs) -> ToolResult:
    message = require_str(args, "message")
    argv = ["git", "commit"]
    if optional_bool(args, "all"):
        argv.append("--all")
    argv.extend(["-m", message])
    return _run_git(context, args, "git_commit", argv)


def git_stash(context: ToolContext, args: ToolArgs) -> ToolResult:
    action = optional_str(args, "action", "save") or "save"
    message = optional_str(args, "message")
    if action in {"save", "push"}:
        argv = ["git", "stash", "push"]
        if message:
            argv.extend(["-m", message])
    elif action == "pop":
        argv = ["git", "stash", "pop"]
    elif action == "list":
        argv = ["git", "stash", "list"]
    else:
        raise ToolValidationError(f"Unsupported stash action: {action}")
    return _run_git(context, args, "git_stash", argv)


GIT_TOOLS: Final[tuple[Tool, ...]] = (
    Tool(
        spec=ToolSpec(
            name="git_status",
            description="Show git status (short) for the workspace or subpath",
            parameters={"type": "object", "properties": {"path": _PATH_PROPERTY}},
        ),
        handler=git_status,
        tag="git_status",
    ),
    Tool(
        spec=ToolSpec(
            name="git_diff",
            description="Show git diff (optionally staged or for a path/ref)",
            parameters={
                "type": "object",
                "properties": {
                    "path": _PATH_PROPERTY,
                    "file": {"type": "string"},
                    "ref": {"type": "string"},
                    "staged": {"type": "boolean"},
                },
            },
        ),
        handler=git_diff,
        tag="git_diff",
    ),
    Tool(
        spec=ToolSpec(
            name="git_commit",
            description="Commit staged changes (optionally --all)",
            parameters={
                "type": "object",
                "properties": {
                    "path": _PATH_PROPERTY,
                    "message": {"type": "string"},
                    "all": {"type": "boolean"},
                },
                "required": ["message"],
            },
        ),
        handler=git_commit,
        tag="git_commit",
    ),
    Tool(
        spec=ToolSpec(
            name="git_stash",
            description="Manage git stash (save/pop/list)",
            parameters={
                "type": "object",
                "properties": {
                    "path": _PATH_PROPERTY,
                    "action": {"type": "string", "enum": ["save", "push", "pop", "list"]},
                    "message": {"type": "string"},
                },
            },
        ),
        handler=git_stash,
        tag="git_stash",
    ),
)
