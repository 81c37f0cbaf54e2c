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

"""Tool registry dispatching flat argument objects to handlers.

Example usage::

    registry = ToolRegistry.default(workspace=Workspace("/repo"))
    result = registry.invoke("grep_search", {"pattern": "TODO"})
    print(result.output)

Spawn failures and patch conflicts come back as ``ToolResult(error=True)``
so the agent loop can show them to the model. Every other typed error
propagates to the caller.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from typing import Any

import httpx

from ..config import AgentboxConfig
from ..errors import AgentboxError, PatchConflictError, SpawnFailedError, ToolValidationError
from ..execution import ProcessExecutor
from ..filesystem import Workspace
from ..patching import PatchApplier
from ..runtime.logging import StructuredLogger, get_logger
from ..sandbox import ScriptSandbox
from ..search import SearchEngine
from ..todo import TodoStore
from ._editing import EDITING_TOOLS
from ._files import FILE_TOOLS
from ._git import GIT_TOOLS
from ._process import PROCESS_TOOLS
from ._search import SEARCH_TOOLS
from ._types import Tool, ToolContext, ToolResult, ToolSpec
from ._web import WEB_TOOLS

__all__ = ["DEFAULT_TOOLS", "ToolRegistry"]

DEFAULT_TOOLS: tuple[Tool, ...] = (
    *FILE_TOOLS[:1],
    *SEARCH_TOOLS,
    *FILE_TOOLS[1:],
    *PROCESS_TOOLS,
    *EDITING_TOOLS,
    *WEB_TOOLS,
    *GIT_TOOLS,
)

_LOGGER: StructuredLogger = get_logger(__name__, context={"component": "tools"})


class ToolRegistry:
    """Named tools bound to one :class:`ToolContext`."""

    def __init__(self, context: ToolContext, tools: Iterable[Tool] = ()) -> None:
        super().__init__()
        self._context = context
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    @classmethod
    def default(
        cls,
        workspace: Workspace | None = None,
        config: AgentboxConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> ToolRegistry:
        """Build a registry with every built-in tool.

        ``config`` defaults to :meth:`AgentboxConfig.from_env`; ``transport``
        replaces the HTTP transport for ``web_fetch`` and script ``fetch``.
        """
        workspace = workspace if workspace is not None else Workspace()
        config = config if config is not None else AgentboxConfig.from_env()
        context = ToolContext(
            workspace=workspace,
            config=config,
            executor=ProcessExecutor(workspace, config),
            sandbox=ScriptSandbox(config, transport=transport),
            search=SearchEngine(workspace, config),
            patcher=PatchApplier(workspace),
            todo=TodoStore.for_workspace(workspace),
            transport=transport,
        )
        return cls(context, DEFAULT_TOOLS)

    @property
    def context(self) -> ToolContext:
        return self._context

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool {tool.name!r} is already registered.")
        self._tools[tool.name] = tool

    def names(self) -> tuple[str, ...]:
        return tuple(self._tools)

    def definitions(self) -> tuple[ToolSpec, ...]:
        return tuple(tool.spec for tool in self._tools.values())

    def invoke(self, name: str, args: Mapping[str, Any] | None = None) -> ToolResult:
        """Run tool ``name`` with ``args``.

        Raises:
            ToolValidationError: If the tool is unknown or ``args`` is not an
                object.
            AgentboxError: Any typed failure other than spawn errors and
                patch conflicts.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolValidationError(f"Unknown tool: {name}")
        if args is None:
            args = {}
        if not isinstance(args, Mapping):
            raise ToolValidationError("Tool arguments must be an object.")

        _LOGGER.debug(
            "Invoking tool.",
            event="tools.invoke",
            context={"tool": name, "arguments": sorted(args)},
        )
        started = time.monotonic()
        try:
            result = tool.handler(self._context, args)
        except (SpawnFailedError, PatchConflictError) as error:
            self._log_failure(name, error)
            return ToolResult(id=tool.tag, output=str(error), error=True)
        except AgentboxError as error:
            self._log_failure(name, error)
            raise
        _LOGGER.info(
            "Tool finished.",
            event="tools.invoke",
            context={
                "tool": name,
                "error": result.error,
                "duration_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return result

    @staticmethod
    def _log_failure(name: str, error: AgentboxError) -> None:
        _LOGGER.warning(
            "Tool failed.",
            event="tools.failed",
            context={"tool": name, "error": type(error).__name__, "message": str(error)},
        )
