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

"""Workspace-confined tool runtime for coding agents."""

from __future__ import annotations

from . import cli, execution, filesystem, runtime, sandbox, search, tools
from ._version import __version__
from .config import AgentboxConfig
from .errors import (
    AgentboxError,
    ExecutionDisabledError,
    OutsideWorkspaceError,
    PatchConflictError,
    PathExistsError,
    PathNotFoundError,
    PolicyDeniedError,
    SpawnFailedError,
    ToolValidationError,
)
from .execution import ExecutionRequest, ExecutionResult, ProcessExecutor
from .filesystem import ResolvedPath, Workspace
from .output import CappedText, cap_output
from .patching import PatchApplier, apply_unified_diff
from .sandbox import ScriptOutcome, ScriptSandbox
from .search import SearchEngine, SearchOptions, SearchReport
from .todo import TodoStore
from .tools import ToolRegistry, ToolResult, ToolSpec

__all__ = [
    "AgentboxConfig",
    "AgentboxError",
    "CappedText",
    "ExecutionDisabledError",
    "ExecutionRequest",
    "ExecutionResult",
    "OutsideWorkspaceError",
    "PatchApplier",
    "PatchConflictError",
    "PathExistsError",
    "PathNotFoundError",
    "PolicyDeniedError",
    "ProcessExecutor",
    "ResolvedPath",
    "ScriptOutcome",
    "ScriptSandbox",
    "SearchEngine",
    "SearchOptions",
    "SearchReport",
    "SpawnFailedError",
    "TodoStore",
    "ToolRegistry",
    "ToolResult",
    "ToolSpec",
    "ToolValidationError",
    "Workspace",
    "__version__",
    "apply_unified_diff",
    "cap_output",
    "cli",
    "execution",
    "filesystem",
    "runtime",
    "sandbox",
    "search",
    "tools",
]
