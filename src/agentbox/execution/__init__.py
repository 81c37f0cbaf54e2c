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

"""Process execution with policy gating, timeouts and an audit trail."""

from __future__ import annotations

from ._audit import AUDIT_FILENAME, AuditLog
from ._manager import (
    TIMEOUT_EXIT_CODE,
    CapturedRun,
    ExecutionMode,
    ExecutionRequest,
    ExecutionResult,
    ProcessExecutor,
    normalize_args,
    normalize_env,
)
from ._policy import CommandPolicy

__all__ = [
    "AUDIT_FILENAME",
    "TIMEOUT_EXIT_CODE",
    "AuditLog",
    "CapturedRun",
    "CommandPolicy",
    "ExecutionMode",
    "ExecutionRequest",
    "ExecutionResult",
    "ProcessExecutor",
    "normalize_args",
    "normalize_env",
]
