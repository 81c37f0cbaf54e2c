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

"""Agent-facing tools over the workspace components."""

from __future__ import annotations

from ._registry import DEFAULT_TOOLS, ToolRegistry
from ._types import Tool, ToolArgs, ToolContext, ToolHandler, ToolResult, ToolSpec
from ._web import infer_content_type, strip_html

__all__ = [
    "DEFAULT_TOOLS",
    "Tool",
    "ToolArgs",
    "ToolContext",
    "ToolHandler",
    "ToolRegistry",
    "ToolResult",
    "ToolSpec",
    "infer_content_type",
    "strip_html",
]
