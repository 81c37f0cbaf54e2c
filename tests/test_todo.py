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

"""Tests for the workspace todo store."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from agentbox.errors import ToolValidationError
from agentbox.filesystem import Workspace
from agentbox.todo import TODO_FILENAME, TodoItem, TodoStore


@pytest.fixture
def store(tmp_path: Path) -> TodoStore:
    return TodoStore(tmp_path / "todo.json")


def test_empty_store_renders_placeholder(store: TodoStore) -> None:
    assert store.list() == ()
    assert store.render() == "No todos"


def test_add_assigns_increasing_ids(store: TodoStore) -> None:
    first = store.add("write tests")
    second = store.add("  ship it  ")

    assert first == TodoItem(id=1, title="write tests")
    assert second.id == 2
    assert second.title == "ship it"
    assert store.render() == "1. [not-started] write tests\n2. [not-started] ship it"


def test_done_and_set_status(store: TodoStore) -> None:
    _ = store.add("task")
    _ = store.add("other")

    done = store.done(1)
    blocked = store.set_status(2, "blocked")

    assert done.status == "done"
    assert blocked.render() == "2. [blocked] other"
    assert [item.status for item in store.list()] == ["done", "blocked"]


def test_state_is_persisted_as_json(store: TodoStore) -> None:
    _ = store.add("task")

    document = json.loads(store.path.read_text())

    assert document == {
        "nextId": 2,
        "items": [{"id": 1, "title": "task", "status": "not-started"}],
    }
    assert TodoStore(store.path).list() == (TodoItem(id=1, title="task"),)


def test_unknown_id_is_rejected(store: TodoStore) -> None:
    with pytest.raises(ToolValidationError, match="Todo 7 not found"):
        _ = store.done(7)


def test_invalid_status_is_rejected(store: TodoStore) -> None:
    _ = store.add("task")

    with pytest.raises(ToolValidationError, match="Invalid status"):
        _ = store.set_status(1, "finished")


def test_empty_title_is_rejected(store: TodoStore) -> None:
    with pytest.raises(ToolValidationError):
        _ = store.add("   ")


def test_corrupt_file_starts_empty(store: TodoStore) -> None:
    _ = store.path.write_text("{not json")

    assert store.list() == ()
    assert store.add("fresh").id == 1


def test_ids_are_not_reused_after_external_edit(store: TodoStore) -> None:
    _ = store.path.write_text(
        json.dumps(
            {
                "nextId": 1,
                "items": [
                    {"id": 4, "title": "kept", "status": "weird"},
                    {"id": "x", "title": "dropped"},
                ],
            }
        )
    )

    assert store.list() == (TodoItem(id=4, title="kept"),)
    assert store.add("next").id == 5


def test_for_workspace_uses_workspace_root(workspace: Workspace) -> None:
    store = TodoStore.for_workspace(workspace)

    assert store.path == workspace.root / TODO_FILENAME
