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

"""Tests for the asteval-backed script sandbox."""

from __future__ import annotations

import socket
import threading
import time
from collections.abc import Iterator

import httpx
import pytest

from agentbox.config import AgentboxConfig
from agentbox.errors import ToolValidationError
from agentbox.sandbox import (
    MAX_RANGE_LENGTH,
    ScriptOutcome,
    ScriptSandbox,
    format_value,
)


@pytest.fixture
def sandbox(config: AgentboxConfig) -> ScriptSandbox:
    return ScriptSandbox(config)


@pytest.fixture
def trickle_port(monkeypatch: pytest.MonkeyPatch) -> Iterator[int]:
    """Serve a 12-byte body one byte every 0.15s on a local port."""

    for name in ("HTTP_PROXY", "http_proxy", "ALL_PROXY", "all_proxy"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("NO_PROXY", "*")
    monkeypatch.setenv("no_proxy", "*")

    listener = socket.create_server(("127.0.0.1", 0))
    listener.settimeout(5.0)
    stop = threading.Event()

    def serve() -> None:
        try:
            conn, _ = listener.accept()
            with conn:
                request = b""
                while b"\r\n\r\n" not in request:
                    data = conn.recv(1024)
                    if not data:
                        return
                    request += data
                conn.sendall(b"HTTP/1.1 200 OK\r\nContent-Length: 12\r\n\r\n")
                for _ in range(12):
                    if stop.wait(0.15):
                        return
                    conn.sendall(b"x")
        except OSError:
            return

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    try:
        yield listener.getsockname()[1]
    finally:
        stop.set()
        listener.close()
        thread.join(timeout=5)


def test_expression_value_is_rendered(sandbox: ScriptSandbox) -> None:
    outcome = sandbox.run("1 + 2")

    assert outcome.status == "ok"
    assert outcome.result == "3"
    assert outcome.console == ()
    assert outcome.truncated is False


def test_statements_then_final_expression(sandbox: ScriptSandbox) -> None:
    outcome = sandbox.run("total = sum(range(10))\nprint(total)\ntotal * 2")

    assert outcome.status == "ok"
    assert outcome.result == "90"
    assert outcome.console == ("log: 45",)


def test_console_lines_keep_call_order(sandbox: ScriptSandbox) -> None:
    code = "\n".join(
        [
            "print(1, 'a', [1, 2])",
            "console.warn('careful')",
            "console.error('broken', {'k': 1})",
            "console.log()",
        ]
    )

    outcome = sandbox.run(code)

    assert outcome.status == "ok"
    assert outcome.console == (
        "log: 1 a [1, 2]",
        "warn: careful",
        'error: broken {"k": 1}',
        "log",
    )


def test_runaway_loop_times_out(sandbox: ScriptSandbox) -> None:
    started = time.monotonic()

    outcome = sandbox.run("while True:\n    pass", timeout=0.05)

    assert outcome.status == "timeout"
    assert outcome.result == "Script exceeded its time budget of 0.05s."
    assert time.monotonic() - started < 5


def test_console_output_survives_timeout(sandbox: ScriptSandbox) -> None:
    outcome = sandbox.run("print('before')\nwhile True:\n    pass", timeout=0.05)

    assert outcome.status == "timeout"
    assert outcome.console == ("log: before",)


def test_raised_error_reports_message(sandbox: ScriptSandbox) -> None:
    outcome = sandbox.run("raise ValueError('bad input')")

    assert outcome.status == "error"
    assert "bad input" in outcome.result


def test_unknown_name_is_an_error(sandbox: ScriptSandbox) -> None:
    outcome = sandbox.run("undefined_name + 1")

    assert outcome.status == "error"
    assert "undefined_name" in outcome.result


def test_imports_are_blocked(sandbox: ScriptSandbox) -> None:
    for code in ("import os", "from os import path"):
        outcome = sandbox.run(code)

        assert outcome.status == "error"


def test_host_builtins_are_not_reachable(sandbox: ScriptSandbox) -> None:
    for name in ("open", "eval", "exec", "__import__", "fetch"):
        outcome = sandbox.run(f"{name}")

        assert outcome.status == "error", name


def test_deferred_jobs_run_after_the_body(sandbox: ScriptSandbox) -> None:
    code = "\n".join(
        [
            "def later(value):",
            "    console.log('later', value)",
            "defer(later, 5)",
            "console.log('body')",
            "'done'",
        ]
    )

    outcome = sandbox.run(code)

    assert outcome.status == "ok"
    assert outcome.result == "done"
    assert outcome.console == ("log: body", "log: later 5")


def test_deferred_jobs_may_schedule_more_jobs(sandbox: ScriptSandbox) -> None:
    code = "\n".join(
        [
            "def second():",
            "    console.log('second')",
            "def first():",
            "    console.log('first')",
            "    defer(second)",
            "defer(first)",
        ]
    )

    outcome = sandbox.run(code)

    assert outcome.status == "ok"
    assert outcome.console == ("log: first", "log: second")


def test_failing_deferred_job_is_an_error(sandbox: ScriptSandbox) -> None:
    code = "\n".join(
        [
            "def boom():",
            "    raise ValueError('bad')",
            "defer(boom)",
            "'unreached'",
        ]
    )

    outcome = sandbox.run(code)

    assert outcome.status == "error"
    assert "bad" in outcome.result


def test_range_is_bounded(sandbox: ScriptSandbox) -> None:
    outcome = sandbox.run("len(range(10 ** 9))")

    assert outcome.status == "error"
    assert "range()" in outcome.result


def test_range_cap_keeps_callbacks_near_the_budget(sandbox: ScriptSandbox) -> None:
    over = sandbox.run(f"range({MAX_RANGE_LENGTH + 1})")

    started = time.monotonic()
    outcome = sandbox.run(
        f"sorted(range({MAX_RANGE_LENGTH}), key=lambda x: -x)", timeout=0.05
    )
    elapsed = time.monotonic() - started

    assert over.status == "error"
    assert outcome.status == "timeout"
    assert elapsed < 1.0


def test_statistics_functions_are_attributes(sandbox: ScriptSandbox) -> None:
    outcome = sandbox.run(
        "xs = [3, 1, 2]\n[statistics.mean(xs), statistics.median(xs)]"
    )

    assert outcome.status == "ok"
    assert outcome.result == "[2, 2]"


def test_runs_share_no_state(sandbox: ScriptSandbox) -> None:
    first = sandbox.run("leaked = 5\nleaked")
    second = sandbox.run("leaked")

    assert first.result == "5"
    assert second.status == "error"


def test_sandbox_root_is_exposed(sandbox: ScriptSandbox) -> None:
    assert sandbox.run("SANDBOX_ROOT").result == "/sandbox"
    assert sandbox.run("SANDBOX_ROOT", sandbox_dir="/tmp/job").result == "/tmp/job"


def test_fetch_requires_network_opt_in(config: AgentboxConfig) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=f"payload from {request.url.path}")

    sandbox = ScriptSandbox(config, transport=httpx.MockTransport(handler))

    denied = sandbox.run("fetch('https://example.test/data')")
    allowed = sandbox.run("fetch('https://example.test/data')", allow_network=True)

    assert denied.status == "error"
    assert allowed.status == "ok"
    assert allowed.result == "payload from /data"


def test_fetch_transport_failure_surfaces_in_script(config: AgentboxConfig) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    sandbox = ScriptSandbox(config, transport=httpx.MockTransport(handler))

    outcome = sandbox.run("fetch('https://example.test/')", allow_network=True)

    assert outcome.status == "error"
    assert "refused" in outcome.result


def test_trickling_fetch_is_stopped_by_the_budget(
    config: AgentboxConfig, trickle_port: int
) -> None:
    sandbox = ScriptSandbox(config)

    started = time.monotonic()
    outcome = sandbox.run(
        f"fetch('http://127.0.0.1:{trickle_port}/')", timeout=0.5, allow_network=True
    )
    elapsed = time.monotonic() - started

    assert outcome.status == "timeout"
    assert elapsed < 1.2


@pytest.mark.parametrize(
    ("code", "kwargs"),
    [
        ("", {}),
        ("   \n", {}),
        ("x" * 20_001, {}),
        ("1", {"timeout": 0}),
        ("1", {"timeout": -1.5}),
        ("1", {"timeout": True}),
        ("1", {"max_output_bytes": 0}),
    ],
)
def test_invalid_arguments_raise(
    sandbox: ScriptSandbox, code: str, kwargs: dict[str, object]
) -> None:
    with pytest.raises(ToolValidationError):
        _ = sandbox.run(code, **kwargs)  # type: ignore[arg-type]


def test_render_lists_status_result_and_console() -> None:
    outcome = ScriptOutcome(status="ok", result="3", console=("log: hi",))

    assert outcome.render() == "status: ok\nresult: 3\nconsole:\nlog: hi"


def test_render_caps_output(sandbox: ScriptSandbox) -> None:
    outcome = sandbox.run("for i in range(200):\n    print('line', i)", max_output_bytes=64)

    rendered = outcome.render()
    assert outcome.truncated is True
    assert rendered.endswith("\n[truncated]")
    assert len(rendered.encode()) <= 64 + len("\n[truncated]")
    assert len(outcome.console) == 200


def test_format_value_renders_script_values() -> None:
    assert format_value("text") == "text"
    assert format_value(None) == "None"
    assert format_value(True) == "True"
    assert format_value(1.5) == "1.5"
    assert format_value({"a": [1, 2]}) == '{"a": [1, 2]}'
    assert format_value({1, 2}).startswith("{")
