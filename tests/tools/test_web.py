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

"""Tests for the web_fetch tool."""

from __future__ import annotations

import httpx
import pytest

from agentbox.config import AgentboxConfig
from agentbox.errors import ToolValidationError
from agentbox.filesystem import Workspace
from agentbox.tools import ToolRegistry, infer_content_type, strip_html


def test_fetch_http_reports_content_type(registry: ToolRegistry) -> None:
    result = registry.invoke("web_fetch", {"url": "https://example.test/page"})

    assert result.id == "web"
    assert result.error is False
    first, body = result.output.split("\n", 1)
    assert first == "content-type: text/html; charset=utf-8"
    assert body.startswith("<html>")


def test_fetch_text_only_strips_markup(registry: ToolRegistry) -> None:
    result = registry.invoke("web_fetch", {"url": "https://example.test/", "textOnly": True})

    assert result.output == "content-type: text/html; charset=utf-8\nHello from example.test"


def test_fetch_truncates_body(registry: ToolRegistry) -> None:
    result = registry.invoke("web_fetch", {"url": "https://example.test/", "maxBytes": 6})

    assert result.output.split("\n", 1)[1] == "<html>"


def test_fetch_transport_error_is_error_result(
    workspace: Workspace, exec_config: AgentboxConfig
) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    registry = ToolRegistry.default(
        workspace=workspace, config=exec_config, transport=httpx.MockTransport(refuse)
    )

    result = registry.invoke("web_fetch", {"url": "http://example.test/"})

    assert result.error is True
    assert result.output.startswith("error: fetch failed:")


def test_fetch_data_urls(registry: ToolRegistry) -> None:
    plain = registry.invoke("web_fetch", {"url": "data:text/plain,hello%20world"})
    encoded = registry.invoke("web_fetch", {"url": "data:text/html;base64,PGI+aGk8L2I+"})
    stripped = registry.invoke(
        "web_fetch", {"url": "data:text/html;base64,PGI+aGk8L2I+", "textOnly": True}
    )

    assert plain.output == "content-type: text/plain\nhello world"
    assert encoded.output == "content-type: text/html\n<b>hi</b>"
    assert stripped.output == "content-type: text/html\nhi"


@pytest.mark.parametrize("url", ["ftp://example.test/file", "file:///etc/passwd", "data:no-comma"])
def test_fetch_rejects_unsupported_urls(registry: ToolRegistry, url: str) -> None:
    with pytest.raises(ToolValidationError):
        _ = registry.invoke("web_fetch", {"url": url})


def test_strip_html_collapses_whitespace() -> None:
    assert strip_html("<p>one</p>\n\n<p>two   three</p>") == "one two three"


def test_infer_content_type_only_for_data_urls() -> None:
    assert infer_content_type("data:application/json;base64,e30=") == "application/json"
    assert infer_content_type("https://example.test/a.json") is None
