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

"""Line matcher construction."""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Final

from ..errors import ToolValidationError

__all__ = ["LineMatcher", "build_matcher", "compile_path_filter"]

LineMatcher = Callable[[str], bool]

_UPPERCASE: Final[re.Pattern[str]] = re.compile(r"[A-Z]")


def build_matcher(
    pattern: str,
    *,
    regex: bool = False,
    case_sensitive: bool = False,
    smart_case: bool = False,
    fixed_string: bool = False,
    word_match: bool = False,
) -> LineMatcher:
    """Build a single-line matcher.

    Smart case switches to a case-sensitive search only when ``pattern``
    contains an uppercase letter and ``case_sensitive`` was not requested.
    Fixed-string and word modes escape the pattern; word mode then wraps it
    in ``\\b`` anchors. Regex mode, like the default mode, compiles the
    pattern verbatim.

    Raises:
        ToolValidationError: If the resulting expression does not compile.
    """

    if not isinstance(pattern, str) or pattern == "":
        raise ToolValidationError("pattern must be a non-empty string.")
    if not case_sensitive and smart_case and _UPPERCASE.search(pattern):
        case_sensitive = True
    flags = 0 if case_sensitive else re.IGNORECASE

    if regex:
        source = pattern
    else:
        source = re.escape(pattern) if fixed_string or word_match else pattern
        if word_match:
            source = rf"\b{source}\b"
    try:
        compiled = re.compile(source, flags)
    except re.error as error:
        raise ToolValidationError(f"Invalid search pattern {pattern!r}: {error}") from error

    def matches(line: str) -> bool:
        return compiled.search(line) is not None

    return matches


def compile_path_filter(expression: str | None, name: str) -> re.Pattern[str] | None:
    """Compile a case-insensitive path filter, or return ``None``."""

    if expression is None:
        return None
    try:
        return re.compile(expression, re.IGNORECASE)
    except re.error as error:
        raise ToolValidationError(f"Invalid {name} expression: {error}") from error
