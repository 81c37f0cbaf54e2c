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

"""Base exception hierarchy for :mod:`agentbox`."""

from __future__ import annotations


class AgentboxError(Exception):
    """Base class for all agentbox exceptions.

    This class serves as the root of the exception hierarchy, allowing callers
    (typically the agent loop) to catch every library-specific failure with a
    single handler and surface it as a failed tool turn, while standard Python
    exceptions propagate normally.

    Example:
        Surfacing a failure to the model instead of crashing::

            try:
                result = registry.invoke("read_file", {"path": "../etc/passwd"})
            except AgentboxError as e:
                reply = f"Tool failed: {e}"

    Note:
        Subclasses also inherit from the closest built-in exception type
        (``ValueError``, ``PermissionError``, ``OSError`` ...) so existing
        handlers for those types keep working.
    """


class ToolValidationError(AgentboxError, ValueError):
    """Raised when tool arguments are malformed.

    Validation happens before any I/O is performed. Common causes include:

    - Missing required arguments
    - Arguments with the wrong type
    - Values outside allowed ranges (negative line numbers, unknown statuses)
    - Patterns that fail to compile

    Example:
        Handling validation errors in a tool loop::

            try:
                registry.invoke("grep_search", {"pattern": 42})
            except ToolValidationError as e:
                return f"Invalid arguments: {e}"
    """


class OutsideWorkspaceError(AgentboxError, PermissionError):
    """Raised when a path resolves outside the workspace root.

    Resolution follows symlinks, so a link that lives inside the workspace but
    points outside of it is rejected as well. The message always names the
    requested path so the caller can correct it.
    """


class PathNotFoundError(AgentboxError, FileNotFoundError):
    """Raised when a confined path that must exist does not."""


class PathExistsError(AgentboxError, FileExistsError):
    """Raised when creating a file that already exists without overwrite."""


class ExecutionDisabledError(AgentboxError, PermissionError):
    """Raised when process execution is requested while it is disabled.

    Execution fails closed: it stays disabled until the enabling environment
    variable is set explicitly. The message names that variable.
    """


class PolicyDeniedError(AgentboxError, PermissionError):
    """Raised when a command is rejected by the allow or deny list.

    The message names the command and the list that rejected it.
    """


class SpawnFailedError(AgentboxError, OSError):
    """Raised when the operating system refuses to start a process.

    Typical causes are a missing executable or a permission problem on the
    binary. Timeouts are not spawn failures; they are reported through
    ``ExecutionResult.timed_out``.
    """


class PatchConflictError(AgentboxError, RuntimeError):
    """Raised when a unified diff does not apply to the current file text.

    The message names the file and the first hunk that failed.
    """


__all__ = [
    "AgentboxError",
    "ExecutionDisabledError",
    "OutsideWorkspaceError",
    "PatchConflictError",
    "PathExistsError",
    "PathNotFoundError",
    "PolicyDeniedError",
    "SpawnFailedError",
    "ToolValidationError",
]
