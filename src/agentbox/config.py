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

"""Explicit configuration passed to every agentbox component.

Components never read the environment while serving a call. The environment
is consulted once, by :meth:`AgentboxConfig.from_env`, and the resulting frozen
value is handed to each component at construction time.
"""

from __future__ import annotations

import math
import os
from collections.abc import Mapping
from dataclasses import field
from typing import Final

from .dataclasses import FrozenDataclass

__all__ = [
    "ALLOW_EXECUTE_ENV",
    "AgentboxConfig",
]

ALLOW_EXECUTE_ENV: Final[str] = "AGENTBOX_ALLOW_EXECUTE"
_EXEC_ALLOW_ENV: Final[str] = "AGENTBOX_EXEC_ALLOW"
_EXEC_DENY_ENV: Final[str] = "AGENTBOX_EXEC_DENY"
_EXEC_TIMEOUT_ENV: Final[str] = "AGENTBOX_EXEC_TIMEOUT"
_EXEC_MAX_OUTPUT_ENV: Final[str] = "AGENTBOX_EXEC_MAX_OUTPUT_BYTES"
_EXEC_AUDIT_ENV: Final[str] = "AGENTBOX_EXEC_AUDIT"
_SEARCH_MAX_RESULTS_ENV: Final[str] = "AGENTBOX_SEARCH_MAX_RESULTS"
_SEARCH_MAX_FILE_ENV: Final[str] = "AGENTBOX_SEARCH_MAX_FILE_BYTES"
_SCRIPT_TIMEOUT_ENV: Final[str] = "AGENTBOX_SCRIPT_TIMEOUT"
_SCRIPT_MAX_OUTPUT_ENV: Final[str] = "AGENTBOX_SCRIPT_MAX_OUTPUT_BYTES"
_READ_MAX_LINES_ENV: Final[str] = "AGENTBOX_READ_MAX_LINES"
_READ_MAX_BYTES_ENV: Final[str] = "AGENTBOX_READ_MAX_BYTES"
_WEB_MAX_BYTES_ENV: Final[str] = "AGENTBOX_WEB_MAX_BYTES"
_GIT_MAX_OUTPUT_ENV: Final[str] = "AGENTBOX_GIT_MAX_OUTPUT_BYTES"


@FrozenDataclass()
class AgentboxConfig:
    """Defaults for timeouts, output caps and execution gating."""

    execute_enabled: bool = field(
        default=False,
        metadata={"description": "Process execution is disabled unless set."},
    )
    exec_allow: tuple[str, ...] = field(
        default=(),
        metadata={"description": "Exclusive allow-list of command names."},
    )
    exec_deny: tuple[str, ...] = field(
        default=(),
        metadata={"description": "Command names that are always rejected."},
    )
    exec_timeout: float | None = field(
        default=30.0,
        metadata={"description": "Default process timeout in seconds; None waits."},
    )
    exec_max_output_bytes: int = field(
        default=32_000,
        metadata={"description": "Byte budget for captured process output."},
    )
    audit_enabled: bool = field(
        default=True,
        metadata={"description": "Append executions to the workspace audit log."},
    )
    search_max_results: int = field(
        default=80,
        metadata={"description": "Global cap on emitted search lines."},
    )
    search_max_file_bytes: int = field(
        default=512_000,
        metadata={"description": "Files larger than this are skipped by search."},
    )
    script_timeout: float = field(
        default=2.0,
        metadata={"description": "Default wall-clock budget for scripts in seconds."},
    )
    script_max_output_bytes: int = field(
        default=16_000,
        metadata={"description": "Byte budget for rendered script outcomes."},
    )
    read_max_lines: int = field(
        default=200,
        metadata={"description": "Default number of lines returned by read_file."},
    )
    read_max_bytes: int = field(
        default=16_000,
        metadata={"description": "Byte budget for read_file output."},
    )
    web_max_bytes: int = field(
        default=24_000,
        metadata={"description": "Byte budget for web_fetch bodies."},
    )
    git_max_output_bytes: int = field(
        default=16_000,
        metadata={"description": "Byte budget for git tool output."},
    )

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> AgentboxConfig:
        """Build a configuration from ``AGENTBOX_*`` environment variables."""

        env = env if env is not None else os.environ
        defaults = cls()
        return cls(
            execute_enabled=env.get(ALLOW_EXECUTE_ENV, "").strip() == "1",
            exec_allow=_env_list(env, _EXEC_ALLOW_ENV),
            exec_deny=_env_list(env, _EXEC_DENY_ENV),
            exec_timeout=_env_timeout(env, _EXEC_TIMEOUT_ENV, defaults.exec_timeout),
            exec_max_output_bytes=_env_int(
                env, _EXEC_MAX_OUTPUT_ENV, defaults.exec_max_output_bytes
            ),
            audit_enabled=env.get(_EXEC_AUDIT_ENV, "").strip() != "0",
            search_max_results=_env_int(
                env, _SEARCH_MAX_RESULTS_ENV, defaults.search_max_results
            ),
            search_max_file_bytes=_env_int(
                env, _SEARCH_MAX_FILE_ENV, defaults.search_max_file_bytes
            ),
            script_timeout=_env_float(
                env, _SCRIPT_TIMEOUT_ENV, defaults.script_timeout
            ),
            script_max_output_bytes=_env_int(
                env, _SCRIPT_MAX_OUTPUT_ENV, defaults.script_max_output_bytes
            ),
            read_max_lines=_env_int(env, _READ_MAX_LINES_ENV, defaults.read_max_lines),
            read_max_bytes=_env_int(env, _READ_MAX_BYTES_ENV, defaults.read_max_bytes),
            web_max_bytes=_env_int(env, _WEB_MAX_BYTES_ENV, defaults.web_max_bytes),
            git_max_output_bytes=_env_int(
                env, _GIT_MAX_OUTPUT_ENV, defaults.git_max_output_bytes
            ),
        )


def _env_list(env: Mapping[str, str], name: str) -> tuple[str, ...]:
    raw = env.get(name, "")
    return tuple(entry.strip() for entry in raw.split(",") if entry.strip())


def _env_int(env: Mapping[str, str], name: str, fallback: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return fallback
    try:
        parsed = int(raw, 10)
    except ValueError:
        return fallback
    return parsed if parsed > 0 else fallback


def _env_float(env: Mapping[str, str], name: str, fallback: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return fallback
    try:
        parsed = float(raw)
    except ValueError:
        return fallback
    if not math.isfinite(parsed) or parsed <= 0:
        return fallback
    return parsed


def _env_timeout(
    env: Mapping[str, str], name: str, fallback: float | None
) -> float | None:
    raw = env.get(name, "").strip()
    try:
        parsed = float(raw)
    except ValueError:
        return fallback
    # zero disables the timeout entirely
    if parsed == 0:
        return None
    return parsed if math.isfinite(parsed) and parsed > 0 else fallback
