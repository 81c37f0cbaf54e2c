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

"""Shared helpers for workspace-relative path strings.

Functions:
    escapes_root: True when a relative path steps outside its base
    is_hidden: True when any segment of a relative path is dot-prefixed
    glob_match: ``fnmatch`` on a relative path
    to_posix: render a relative path with forward slashes
"""

from __future__ import annotations

import fnmatch
import os
from typing import Final

IGNORED_DIRECTORIES: Final[frozenset[str]] = frozenset(
    {
        ".git",
        "node_modules",
        "__pycache__",
        ".venv",
        ".mypy_cache",
        ".pytest_cache",
    }
)


def escapes_root(relative: str) -> bool:
    """Return ``True`` when ``relative`` begins with a parent-directory step.

    Examples:
        >>> escapes_root("../etc/passwd")
        True
        >>> escapes_root("..cache/file")
        False
    """
    return relative == os.pardir or relative.startswith(os.pardir + os.sep)


def to_posix(relative: str) -> str:
    return relative.replace(os.sep, "/")


def is_hidden(relative: str) -> bool:
    """Return ``True`` when any segment of ``relative`` starts with a dot."""
    return any(
        part.startswith(".") and part not in {".", ".."}
        for part in to_posix(relative).split("/")
    )


def glob_match(relative: str, pattern: str) -> bool:
    """Match ``relative`` against ``pattern`` using ``fnmatch`` semantics.

    Patterns without a slash also match the basename, so ``*.py`` selects
    ``src/main.py``.

    Example::

        glob_match("src/main.py", "*.py")  # True
        glob_match("src/main.py", "src/*")  # True
        glob_match("lib/util.py", "src/*")  # False
    """
    posix = to_posix(relative)
    if fnmatch.fnmatch(posix, pattern):
        return True
    if "/" not in pattern:
        return fnmatch.fnmatch(posix.rsplit("/", 1)[-1], pattern)
    return False


__all__ = [
    "IGNORED_DIRECTORIES",
    "escapes_root",
    "glob_match",
    "is_hidden",
    "to_posix",
]
