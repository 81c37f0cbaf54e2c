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

"""Fixtures shared by the tool tests."""

from __future__ import annotations

import httpx
import pytest

from agentbox.config import AgentboxConfig
from agentbox.filesystem import Workspace
from agentbox.tools import ToolRegistry


def _offline(request: httpx.Request) -> httpx.Response:
    return httpx.Response(
        200,
        headers={"content-type": "text/html; charset=utf-8"},
        text=f"<html><body><p>Hello from</p> <b>{request.url.host}</b></body></html>",
    )


@pytest.fixture
def transport() -> httpx.MockTransport:
    return httpx.MockTransport(_offline)


@pytest.fixture
def registry(
    workspace: Workspace, exec_config: AgentboxConfig, transport: httpx.MockTransport
) -> ToolRegistry:
    """Registry with execution enabled and every HTTP call served locally."""

    return ToolRegistry.default(workspace=workspace, config=exec_config, transport=transport)
