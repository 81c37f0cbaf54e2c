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

"""Tests for relative path helpers."""

from __future__ import annotations

import pytest

from agentbox.filesystem import escapes_root, glob_match, is_hidden


@pytest.mark.parametrize(
    ("relative", "expected"),
    [("..", True), ("../x", True), ("..cache/x", False), ("a/../b", False), (".", False)],
)
def test_escapes_root(relative: str, expected: bool) -> None:
    assert escapes_root(relative) is expected


@pytest.mark.parametrize(
    ("relative", "expected"),
    [(".env", True), ("src/.cache/x", True), ("src/main.py", False), ("./a", False)],
)
def test_is_hidden(relative: str, expected: bool) -> None:
    assert is_hidden(relative) is expected


def test_glob_without_slash_matches_basename() -> None:
    assert glob_match("src/main.py", "*.py")
    assert glob_match("src/main.py", "src/*")
    assert not glob_match("lib/util.py", "src/*")
    assert glob_match("keep/deep/hit.txt", "keep/**")
