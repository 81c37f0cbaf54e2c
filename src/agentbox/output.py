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

"""UTF-8 safe output capping shared by every tool."""

from __future__ import annotations

from typing import Final

from .dataclasses import FrozenDataclass
from .errors import ToolValidationError

__all__ = ["TRUNCATION_MARKER", "CappedText", "cap_output"]

TRUNCATION_MARKER: Final[str] = "[truncated]"
_ENCODING: Final[str] = "utf-8"


@FrozenDataclass()
class CappedText:
    """Text bounded to a byte budget."""

    text: str
    truncated: bool


def cap_output(text: str, max_bytes: int) -> CappedText:
    """Cap ``text`` at ``max_bytes`` of UTF-8.

    Bytes beyond the budget are dropped together with any partial multi-byte
    sequence left at the cut, then ``"\\n[truncated]"`` is appended. Text that
    already fits is returned unchanged.

    Raises:
        ToolValidationError: If ``max_bytes`` is negative.
    """

    if max_bytes < 0:
        raise ToolValidationError("max_bytes must be non-negative.")
    encoded = text.encode(_ENCODING)
    if len(encoded) <= max_bytes:
        return CappedText(text=text, truncated=False)
    head = encoded[:max_bytes].decode(_ENCODING, errors="ignore")
    return CappedText(text=f"{head}\n{TRUNCATION_MARKER}", truncated=True)
