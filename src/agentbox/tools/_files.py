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

"""File tools: read, create, list and summarise."""

from __future__ import annotations

import json
import re
import tomllib
from pathlib import Path
from typing import Final

from ..errors import PathExistsError, ToolValidationError
from ..filesystem import IGNORED_DIRECTORIES
from ._args import optional_bool, optional_int, optional_str, require_str
from ._types import Tool, ToolArgs, ToolContext, ToolResult, ToolSpec

__all__ = ["FILE_TOOLS"]

_LINE_SPLIT: Final[re.Pattern[str]] = re.compile(r"\r?\n")


def read_file(context: ToolContext, args: ToolArgs) -> ToolResult:
    raw_path = require_str(args, "path")
    start = optional_int(args, "startLine", minimum=1) or 1
    end = optional_int(args, "endLine", minimum=1)
    max_lines = optional_int(args, "maxLines", minimum=1) or context.config.read_max_lines
    max_bytes = optional_int(args, "maxBytes", minimum=1) or context.config.read_max_bytes
    if end is not None and end < start:
        raise ToolValidationError("'endLine' must not be before 'startLine'.")

    resolved = context.workspace.confine(raw_path)
    if not resolved.path.is_file():
        raise ToolValidationError(f"Not a file: {raw_path}")
    data = resolved.path.read_bytes()
    limited = data[:max_bytes].decode("utf-8", errors="ignore")
    lines = _LINE_SPLIT.split(limited)

    stop = end if end is not None else start - 1 + max_lines
    selected = lines[start - 1 : stop]
    last = end if end is not None else start - 1 + len(selected)
    truncated = len(data) > max_bytes or (end is None and len(lines) > stop)
    note = "\n[truncated]" if truncated else ""
    body = "\n".join(selected)
    return ToolResult(id="read", output=f"Lines {start}-{last}:\n{body}{note}")


def create_file(context: ToolContext, args: ToolArgs) -> ToolResult:
    raw_path = require_str(args, "path")
    content = optional_str(args, "content", "") or ""
    overwrite = optional_bool(args, "overwrite")

    resolved = context.workspace.confine(raw_path, must_exist=False)
    if resolved.exists and not overwrite:
        raise PathExistsError("File exists; set overwrite true to replace")
    if resolved.exists and resolved.path.is_dir():
        raise ToolValidationError(f"Path is a directory: {raw_path}")
    resolved.path.parent.mkdir(parents=True, exist_ok=True)
    _ = resolved.path.write_text(content, encoding="utf-8")
    return ToolResult(id="create_file", output=f"Created {resolved.relative}")


def list_dir(context: ToolContext, args: ToolArgs) -> ToolResult:
    raw_path = optional_str(args, "path", ".") or "."
    include_ignored = optional_bool(args, "includeIgnored")

    resolved = context.workspace.confine(raw_path)
    if not resolved.path.is_dir():
        raise ToolValidationError("Path is not a directory")
    entries: list[str] = []
    for entry in sorted(resolved.path.iterdir(), key=lambda item: item.name):
        if not include_ignored and entry.name in IGNORED_DIRECTORIES:
            continue
        entries.append(f"{entry.name}/" if entry.is_dir() else entry.name)
    return ToolResult(id="list_dir", output="\n".join(entries))


def workspace_summary(context: ToolContext, args: ToolArgs) -> ToolResult:
    del args
    root = context.workspace.real_root()
    dirs: list[str] = []
    files: list[str] = []
    for entry in sorted(root.iterdir(), key=lambda item: item.name):
        if entry.name in IGNORED_DIRECTORIES:
            continue
        (dirs if entry.is_dir() else files).append(entry.name)
    summary = [
        _project_info(root),
        f"dirs: {', '.join(dirs) or '-'}",
        f"files: {', '.join(files) or '-'}",
    ]
    return ToolResult(id="workspace_summary", output="\n".join(summary))


def _project_info(root: Path) -> str:
    pyproject = root / "pyproject.toml"
    if pyproject.is_file():
        try:
            with pyproject.open("rb") as handle:
                project = tomllib.load(handle).get("project", {})
        except (OSError, tomllib.TOMLDecodeError):
            project = {}
        if isinstance(project, dict) and project:
            return f"project: {project.get('name', 'unknown')}@{project.get('version', '')}"

    package_json = root / "package.json"
    try:
        package = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return "package: none"
    if not isinstance(package, dict):
        return "package: none"
    return f"package: {package.get('name', 'unknown')}@{package.get('version', '')}"


FILE_TOOLS: Final[tuple[Tool, ...]] = (
    Tool(
        spec=ToolSpec(
            name="read_file",
            description="Read file content with optional line range",
            parameters={
                "type": "object",
                "properties": {
                    "path": {"type": "string"},
                    "startLine": {"type": "number"},
                    "endLine": {"type": "number"},
                    "maxLines": {"type": "number"},
                    "maxBytes": {"type": "number"},
                },
                "required": ["path"],
            },
        ),
        handler=read_file,
        tag="read",
    ),
    Tool(
        spec=ToolSpec(
            name="create_file",
            description="Create or overwrite a file with content",
            parameters={
                "type": "object",
                "properties": {
                    "path": {"type": "string"},
                    "content": {"type": "string"},
                    "overwrite": {"type": "boolean"},
                },
                "required": ["path"],
            },
        ),
        handler=create_file,
        tag="create_file",
    ),
    Tool(
        spec=ToolSpec(
            name="list_dir",
            description="List directory entries (files and subdirectories)",
            parameters={
                "type": "object",
                "properties": {
                    "path": {"type": "string"},
                    "includeIgnored": {"type": "boolean"},
                },
            },
        ),
        handler=list_dir,
        tag="list_dir",
    ),
    Tool(
        spec=ToolSpec(
            name="workspace_summary",
            description="Basic workspace summary (project info, top-level dirs/files)",
            parameters={"type": "object", "properties": {}},
        ),
        handler=workspace_summary,
        tag="workspace_summary",
    ),
)
