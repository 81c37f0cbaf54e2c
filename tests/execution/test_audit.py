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

"""Tests for the execution audit log."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from agentbox.execution import AUDIT_FILENAME, AuditLog, CommandPolicy
from agentbox.errors import PolicyDeniedError
from agentbox.filesystem import Workspace


def test_for_workspace_places_log_at_root(workspace: Workspace) -> None:
    audit = AuditLog.for_workspace(workspace)

    assert audit.path == workspace.real_root() / AUDIT_FILENAME
    assert audit.enabled is True


def test_record_appends_json_lines(tmp_path: Path) -> None:
    audit = AuditLog(path=tmp_path / "audit.jsonl")

    audit.record(command="ls", args=["-la"], cwd=".", exit_code=0, mode="buffered")
    audit.record(
        command="sleep",
        args=["9"],
        cwd="sub",
        exit_code=124,
        mode="streamed",
        truncated=True,
        error="timed out after 1s",
    )

    lines = (tmp_path / "audit.jsonl").read_text().splitlines()
    assert len(lines) == 2
    first, second = (json.loads(line) for line in lines)
    assert set(first) == {"ts", "cmd", "args", "cwd", "exitCode", "mode", "truncated", "error"}
    assert first["error"] is None
    assert second["truncated"] is True
    assert second["error"] == "timed out after 1s"


def test_disabled_log_writes_nothing(tmp_path: Path) -> None:
    audit = AuditLog(path=tmp_path / "audit.jsonl", enabled=False)

    audit.record(command="ls", args=[], cwd=".", exit_code=0, mode="buffered")

    assert not (tmp_path / "audit.jsonl").exists()


def test_write_failures_are_logged_and_swallowed(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    audit = AuditLog(path=tmp_path / "missing-dir" / "audit.jsonl")

    with caplog.at_level(logging.WARNING, logger="agentbox.execution._audit"):
        audit.record(command="ls", args=[], cwd=".", exit_code=0, mode="buffered")

    assert [getattr(record, "event", None) for record in caplog.records] == [
        "execution.audit_failed"
    ]


def test_policy_matches_deny_on_basename() -> None:
    policy = CommandPolicy(deny=("rm",))

    policy.check("ls")
    with pytest.raises(PolicyDeniedError):
        policy.check("/usr/bin/rm")


def test_policy_allow_list_is_literal() -> None:
    policy = CommandPolicy(allow=("git",))

    policy.check("git")
    with pytest.raises(PolicyDeniedError, match="allow list"):
        policy.check("/usr/bin/git")
