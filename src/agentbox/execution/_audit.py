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

"""Append-only JSON lines audit log for process executions."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Final

from ..filesystem import Workspace
from ..runtime.logging import StructuredLogger, get_logger

__all__ = ["AUDIT_FILENAME", "AuditLog"]

AUDIT_FILENAME: Final[str] = ".agentbox-audit.jsonl"

_LOGGER: StructuredLogger = get_logger(__name__, context={"component": "execution"})


@dataclass(slots=True)
class AuditLog:
    """Best-effort audit sink.

    Each call to :meth:`record` appends one JSON object per line with the
    fields ``ts``, ``cmd``, ``args``, ``cwd``, ``exitCode``, ``mode``,
    ``truncated`` and ``error``. Write failures are logged at warning level
    and never reach the caller.
    """

    path: Path
    enabled: bool = True

    @classmethod
    def for_workspace(cls, workspace: Workspace, *, enabled: bool = True) -> AuditLog:
        return cls(path=workspace.real_root() / AUDIT_FILENAME, enabled=enabled)

    def record(
        self,
        *,
        command: str,
        args: Sequence[str],
        cwd: str,
        exit_code: int | None,
        mode: str,
        truncated: bool = False,
        error: str | None = None,
    ) -> None:
        if not self.enabled:
            return
        entry = {
            "ts": datetime.now(UTC).isoformat(timespec="milliseconds"),
            "cmd": command,
            "args": list(args),
            "cwd": cwd,
            "exitCode": exit_code,
            "mode": mode,
            "truncated": truncated,
            "error": error,
        }
        try:
            line = json.dumps(entry, ensure_ascii=False)
            with self.path.open("a", encoding="utf-8") as handle:
                _ = handle.write(f"{line}\n")
        except (OSError, TypeError, ValueError) as failure:
            _LOGGER.warning(
                "Audit log write failed.",
                event="execution.audit_failed",
                context={"path": str(self.path), "error": str(failure)},
            )
