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

"""Patch and todo tools."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Final

from ..errors import ToolValidationError
from ..patching import PatchEntry
from ..todo import TODO_STATUSES
from ._args import optional_bool, optional_int, optional_str, require_str
from ._types import Tool, ToolArgs, ToolContext, ToolResult, ToolSpec

__all__ = ["EDITING_TOOLS"]


def apply_patch(context: ToolContext, args: ToolArgs) -> ToolResult:
    """Apply one diff (``path`` + ``patch``) or a batch (``patches``)."""
    dry_run = optional_bool(args, "dryRun")
    batch = args.get("patches")
    if batch is not None:
        entries = _batch_entries(batch)
        results = context.patcher.apply_batch(entries, dry_run=dry_run)
        if dry_run:
            return ToolResult(id="edit", output=f"Dry-run OK for {len(results)} file(s)")
        return ToolResult(id="edit", output=f"Patched {len(results)} file(s)")

    result = context.patcher.apply(
        require_str(args, "path"), require_str(args, "patch"), dry_run=dry_run
    )
    return ToolResult(id="edit", output=result.render())


def _batch_entries(batch: object) -> list[PatchEntry]:
    if not isinstance(batch, (list, tuple)) or not batch:
        raise ToolValidationError("'patches' must be a non-empty array of {path, patch}.")
    entries: list[PatchEntry] = []
    for item in batch:
        if not isinstance(item, Mapping):
            raise ToolValidationError("'patches' must be an array of {path, patch}.")
        entries.append(
            PatchEntry(path=require_str(item, "path"), diff=require_str(item, "patch"))
        )
    return entries


def manage_todo(context: ToolContext, args: ToolArgs) -> ToolResult:
    action = require_str(args, "action")
    store = context.todo
    if action == "list":
        return ToolResult(id="todo", output=store.render())
    if action == "add":
        title = (optional_str(args, "title") or "").strip()
        if not title:
            raise ToolValidationError("'title' required for add")
        item = store.add(title)
        return ToolResult(id="todo", output=f"Added {item.id}. {item.title}")
    if action == "done":
        todo_id = optional_int(args, "id")
        if todo_id is None:
            raise ToolValidationError("'id' required for done")
        item = store.done(todo_id)
        return ToolResult(id="todo", output=f"Completed {item.id}. {item.title}")
    if action == "set_status":
        todo_id = optional_int(args, "id")
        status = optional_str(args, "status")
        if todo_id is None or not status:
            raise ToolValidationError("'id' and 'status' required for set_status")
        item = store.set_status(todo_id, status)
        return ToolResult(id="todo", output=f"Set {item.id} to {item.status}")
    raise ToolValidationError(f"Unsupported todo action: {action}")


EDITING_TOOLS: Final[tuple[Tool, ...]] = (
    Tool(
        spec=ToolSpec(
            name="apply_patch",
            description="Apply a unified diff patch to one file or a batch of files",
            parameters={
                "type": "object",
                "properties": {
                    "path": {"type": "string"},
                    "patch": {"type": "string"},
                    "patches": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "path": {"type": "string"},
                                "patch": {"type": "string"},
                            },
                            "required": ["path", "patch"],
                        },
                    },
                    "dryRun": {"type": "boolean"},
                },
            },
        ),
        handler=apply_patch,
        tag="edit",
    ),
    Tool(
        spec=ToolSpec(
            name="manage_todo",
            description="Manage a simple todo list",
            parameters={
                "type": "object",
                "properties": {
                    "action": {
                        "type": "string",
                        "enum": ["list", "add", "done", "set_status"],
                    },
                    "title": {"type": "string"},
                    "id": {"type": "number"},
                    "status": {"type": "string", "enum": list(TODO_STATUSES)},
                },
                "required": ["action"],
            },
        ),
        handler=manage_todo,
        tag="todo",
    ),
)
