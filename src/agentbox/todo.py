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

"""Workspace-local todo list persisted as a small JSON document."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Final, Literal, TypeGuard, get_args

from .dataclasses import FrozenDataclass
from .errors import ToolValidationError
from .filesystem import Workspace
from .runtime.logging import StructuredLogger, get_logger

__all__ = ["TODO_FILENAME", "TodoItem", "TodoStatus", "TodoStore", "is_todo_status"]

TodoStatus = Literal["not-started", "in-progress", "blocked", "done"]

TODO_FILENAME: Final[str] = ".agentbox-todo.json"
TODO_STATUSES: Final[tuple[str, ...]] = get_args(TodoStatus)

_LOGGER: StructuredLogger = get_logger(__name__, context={"component": "todo"})


def is_todo_status(value: object) -> TypeGuard[TodoStatus]:
    return isinstance(value, str) and value in TODO_STATUSES


@FrozenDataclass()
class TodoItem:
    id: int
    title: str
    status: TodoStatus = "not-started"

    def render(self) -> str:
        return f"{self.id}. [{self.status}] {self.title}"


class TodoStore:
    """Keyed todo items stored as ``{"nextId": n, "items": [...]}``.

    Every operation reloads the document so edits made between calls are
    observed. A missing or unreadable file starts an empty list.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self._path = path

    @classmethod
    def for_workspace(cls, workspace: Workspace) -> TodoStore:
        return cls(workspace.root / TODO_FILENAME)

    @property
    def path(self) -> Path:
        return self._path

    def list(self) -> tuple[TodoItem, ...]:
        _, items = self._load()
        return tuple(items)

    def render(self) -> str:
        items = self.list()
        if not items:
            return "No todos"
        return "\n".join(item.render() for item in items)

    def add(self, title: str) -> TodoItem:
        if not isinstance(title, str) or not title.strip():
            raise ToolValidationError("title must be a non-empty string.")
        next_id, items = self._load()
        item = TodoItem(id=next_id, title=title.strip())
        items.append(item)
        self._save(next_id + 1, items)
        _LOGGER.info(
            "Todo added.",
            event="todo.updated",
            context={"action": "add", "id": item.id},
        )
        return item

    def done(self, todo_id: int) -> TodoItem:
        return self.set_status(todo_id, "done")

    def set_status(self, todo_id: int, status: str) -> TodoItem:
        """Change the status of an existing item.

        Raises:
            ToolValidationError: If ``status`` is unknown or no item has
                ``todo_id``.
        """
        if not is_todo_status(status):
            choices = ", ".join(TODO_STATUSES)
            raise ToolValidationError(f"Invalid status {status!r}; expected one of {choices}.")
        next_id, items = self._load()
        for index, item in enumerate(items):
            if item.id == todo_id:
                updated = item.update(status=status)
                items[index] = updated
                break
        else:
            raise ToolValidationError(f"Todo {todo_id} not found")
        self._save(next_id, items)
        _LOGGER.info(
            "Todo status changed.",
            event="todo.updated",
            context={"action": "set_status", "id": todo_id, "status": status},
        )
        return updated

    def _load(self) -> tuple[int, list[TodoItem]]:
        try:
            payload = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return 1, []
        if not isinstance(payload, dict):
            return 1, []

        items: list[TodoItem] = []
        for raw in payload.get("items", []):
            if not isinstance(raw, dict):
                continue
            item_id = raw.get("id")
            title = raw.get("title")
            status = raw.get("status")
            if isinstance(item_id, bool) or not isinstance(item_id, int):
                continue
            if not isinstance(title, str):
                continue
            items.append(
                TodoItem(
                    id=item_id,
                    title=title,
                    status=status if is_todo_status(status) else "not-started",
                )
            )
        next_id = payload.get("nextId")
        floor = max((item.id for item in items), default=0) + 1
        if isinstance(next_id, bool) or not isinstance(next_id, int) or next_id < floor:
            next_id = floor
        return next_id, items

    def _save(self, next_id: int, items: list[TodoItem]) -> None:
        document = {
            "nextId": next_id,
            "items": [
                {"id": item.id, "title": item.title, "status": item.status}
                for item in items
            ],
        }
        _ = self._path.write_text(json.dumps(document, indent=2) + "\n", encoding="utf-8")
