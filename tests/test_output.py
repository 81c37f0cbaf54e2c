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

"""Tests for UTF-8 safe output capping."""

from __future__ import annotations

import pytest

from agentbox.errors import ToolValidationError
from agentbox.output import TRUNCATION_MARKER, cap_output


def test_text_within_budget_is_unchanged() -> None:
    capped = cap_output("hello", 5)

    assert capped.text == "hello"
    assert capped.truncated is False


def test_text_over_budget_is_cut_and_marked() -> None:
    capped = cap_output("hello world", 5)

    assert capped.text == "hello\n[truncated]"
    assert capped.truncated is True


def test_multibyte_characters_are_never_split() -> None:
    text = "é" * 10  # two bytes each

    capped = cap_output(text, 5)

    head = capped.text.removesuffix(f"\n{TRUNCATION_MARKER}")
    assert head == "éé"
    assert len(head.encode("utf-8")) <= 5


@pytest.mark.parametrize("budget", [0, 1, 3, 7, 16])
def test_capped_length_never_exceeds_budget_plus_marker(budget: int) -> None:
    text = "a€b😀c" * 4

    capped = cap_output(text, budget)

    limit = budget + len(f"\n{TRUNCATION_MARKER}".encode())
    assert len(capped.text.encode("utf-8")) <= limit


def test_capping_is_idempotent_for_text_that_fits() -> None:
    once = cap_output("short text", 100)
    twice = cap_output(once.text, 100)

    assert once == twice


def test_negative_budget_is_rejected() -> None:
    with pytest.raises(ToolValidationError):
        _ = cap_output("text", -1)
