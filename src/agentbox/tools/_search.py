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

"""The ``grep_search`` tool."""

from __future__ import annotations

from typing import Any, Final

from ..search import SearchOptions
from ._args import optional_bool, optional_int, optional_str, require_str
from ._types import Tool, ToolArgs, ToolContext, ToolResult, ToolSpec

__all__ = ["SEARCH_TOOLS"]

_BOOLEAN_FLAGS: Final[dict[str, str]] = {
    "regex": "regex",
    "caseSensitive": "case_sensitive",
    "smartCase": "smart_case",
    "fixedString": "fixed_string",
    "wordMatch": "word_match",
    "includeHidden": "include_hidden",
    "includeBinary": "include_binary",
    "withContextLabels": "with_context_labels",
    "withContextSeparators": "with_context_separators",
    "withHeadings": "with_headings",
    "withCounts": "with_counts",
}

_STRING_FILTERS: Final[dict[str, str]] = {
    "includeGlob": "include_glob",
    "excludeGlob": "exclude_glob",
    "includePath": "include_path",
    "excludePath": "exclude_path",
}


def grep_search(context: ToolContext, args: ToolArgs) -> ToolResult:
    pattern = require_str(args, "pattern")
    root = optional_str(args, "path", ".") or "."
    context_lines = optional_int(args, "contextLines", minimum=0) or 0
    before = optional_int(args, "beforeContext", minimum=0)
    after = optional_int(args, "afterContext", minimum=0)

    settings: dict[str, Any] = {
        option: optional_bool(args, name) for name, option in _BOOLEAN_FLAGS.items()
    }
    for name, option in _STRING_FILTERS.items():
        settings[option] = optional_str(args, name)
    separator = optional_str(args, "separator")
    if separator is not None:
        settings["separator"] = separator

    options = SearchOptions(
        max_results=optional_int(args, "maxResults", minimum=1),
        max_file_bytes=optional_int(args, "maxFileBytes", minimum=1),
        before_context=before if before is not None else context_lines,
        after_context=after if after is not None else context_lines,
        **settings,
    )
    report = context.search.search(pattern, root, options)
    return ToolResult(id="search", output=report.render())


_PARAMETERS: Final[dict[str, Any]] = {
    "type": "object",
    "properties": {
        "pattern": {"type": "string"},
        "path": {"type": "string"},
        "maxResults": {"type": "number"},
        "maxFileBytes": {"type": "number"},
        "contextLines": {"type": "number"},
        "beforeContext": {"type": "number"},
        "afterContext": {"type": "number"},
        "separator": {"type": "string"},
        **{name: {"type": "string"} for name in _STRING_FILTERS},
        **{name: {"type": "boolean"} for name in _BOOLEAN_FLAGS},
    },
    "required": ["pattern"],
}

SEARCH_TOOLS: Final[tuple[Tool, ...]] = (
    Tool(
        spec=ToolSpec(
            name="grep_search",
            description="Search for a pattern in workspace files",
            parameters=_PARAMETERS,
        ),
        handler=grep_search,
        tag="search",
    ),
)
