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

"""Shared types for tool specs, handlers and results."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from ..config import AgentboxConfig
from ..dataclasses import FrozenDataclass
from ..execution import ProcessExecutor
from ..filesystem import Workspace
from ..patching import PatchApplier
from ..sandbox import ScriptSandbox
from ..search import SearchEngine
from ..todo import TodoStore

__all__ = ["Tool", "ToolArgs", "ToolContext", "ToolHandler", "ToolResult", "ToolSpec"]

ToolArgs = Mapping[str, object]


@FrozenDataclass()
class ToolSpec:
    """Schema definition advertised to the agent loop."""

    name: str = field(metadata={"description": "Tool name."})
    description: str = field(metadata={"description": "Short tool description."})
    parameters: Mapping[str, Any] = field(
        metadata={"description": "JSON Schema for tool parameters."}
    )

    def to_json(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": dict(self.parameters),
        }


@dataclass(slots=True)
class ToolResult:
    """Text response returned by a tool handler."""

    id: str
    output: str
    error: bool = False


@FrozenDataclass()
class ToolContext:
    """Components shared by every handler of a registry."""

    workspace: Workspace
    config: AgentboxConfig
    executor: ProcessExecutor
    sandbox: ScriptSandbox
    search: SearchEngine
    patcher: PatchApplier
    todo: TodoStore
    transport: httpx.BaseTransport | None = None


ToolHandler = Callable[[ToolContext, ToolArgs], ToolResult]


@FrozenDataclass()
class Tool:
    """A spec bound to its handler and result tag."""

    spec: ToolSpec
    handler: ToolHandler
    tag: str

    @property
    def name(self) -> str:
        return self.spec.name
