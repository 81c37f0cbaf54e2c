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

from __future__ import annotations

from pathlib import Path

import pytest

from agentbox.config import AgentboxConfig
from agentbox.filesystem import Workspace


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    """Return a workspace rooted at a fresh directory inside ``tmp_path``."""

    root = tmp_path / "workspace"
    root.mkdir()
    return Workspace(root)


@pytest.fixture
def config() -> AgentboxConfig:
    return AgentboxConfig()


@pytest.fixture
def exec_config() -> AgentboxConfig:
    """Configuration with process execution enabled and short timeouts."""

    return AgentboxConfig(execute_enabled=True, exec_timeout=10.0)
