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

"""Tests for the agentbox command line interface."""

from __future__ import annotations

import json

import pytest

from agentbox.cli import main
from agentbox.filesystem import Workspace


def _run(
    workspace: Workspace, capsys: pytest.CaptureFixture[str], *argv: str
) -> tuple[int, str, str]:
    code = main(["--workspace", str(workspace.root), *argv])
    captured = capsys.readouterr()
    return code, captured.out, captured.err


def test_tools_prints_definitions(
    workspace: Workspace, capsys: pytest.CaptureFixture[str]
) -> None:
    code, out, _ = _run(workspace, capsys, "tools")

    definitions = json.loads(out)
    assert code == 0
    assert [item["name"] for item in definitions][:2] == ["read_file", "grep_search"]
    assert all(item["parameters"]["type"] == "object" for item in definitions)


def test_call_prints_tool_output(
    workspace: Workspace, capsys: pytest.CaptureFixture[str]
) -> None:
    _ = (workspace.root / "notes.txt").write_text("alpha\nbeta")

    code, out, _ = _run(
        workspace, capsys, "call", "read_file", "--args", '{"path": "notes.txt"}'
    )

    assert code == 0
    assert out == "Lines 1-2:\nalpha\nbeta\n"


def test_call_defaults_to_empty_arguments(
    workspace: Workspace, capsys: pytest.CaptureFixture[str]
) -> None:
    (workspace.root / "src").mkdir()

    code, out, _ = _run(workspace, capsys, "call", "list_dir")

    assert code == 0
    assert out == "src/\n"


def test_error_result_exits_non_zero(
    workspace: Workspace, capsys: pytest.CaptureFixture[str]
) -> None:
    _ = (workspace.root / "a.txt").write_text("other\n")
    diff = "--- a/a.txt\n+++ b/a.txt\n@@ -1 +1 @@\n-line\n+LINE\n"

    code, out, _ = _run(
        workspace,
        capsys,
        "call",
        "apply_patch",
        "--args",
        json.dumps({"path": "a.txt", "patch": diff}),
    )

    assert code == 1
    assert out.startswith("Patch could not be applied to a.txt")


@pytest.mark.parametrize(
    ("arguments", "message"),
    [("{not json", "not valid JSON"), ("[1, 2]", "must be a JSON object")],
)
def test_bad_arguments_exit_with_usage_error(
    workspace: Workspace, capsys: pytest.CaptureFixture[str], arguments: str, message: str
) -> None:
    code, out, err = _run(workspace, capsys, "call", "list_dir", "--args", arguments)

    assert code == 2
    assert out == ""
    assert message in err


def test_typed_errors_are_reported_on_stderr(
    workspace: Workspace, capsys: pytest.CaptureFixture[str]
) -> None:
    code, _, err = _run(
        workspace, capsys, "call", "read_file", "--args", '{"path": "../escape.txt"}'
    )
    unknown, _, unknown_err = _run(workspace, capsys, "call", "no_such_tool")

    assert code == 1
    assert err.startswith("error: Path outside workspace")
    assert unknown == 1
    assert "Unknown tool: no_such_tool" in unknown_err


def test_execution_disabled_by_default(
    workspace: Workspace, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("AGENTBOX_ALLOW_EXECUTE", raising=False)

    code, _, err = _run(workspace, capsys, "call", "execute", "--args", '{"command": "ls"}')

    assert code == 1
    assert err.startswith("error: ")


def test_missing_subcommand_is_a_usage_error(capsys: pytest.CaptureFixture[str]) -> None:
    assert main([]) == 2
    assert "usage:" in capsys.readouterr().err
