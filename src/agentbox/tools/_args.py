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

"""Argument coercion for flat tool argument objects.

Every helper raises :class:`ToolValidationError` naming the argument when a
value has the wrong type, so handlers reject bad input before any I/O.
"""

from __future__ import annotations

import math
from collections.abc import Mapping

from ..errors import ToolValidationError
from ._types import ToolArgs

__all__ = [
    "optional_bool",
    "optional_int",
    "optional_number",
    "optional_str",
    "optional_str_list",
    "optional_str_map",
    "require_str",
]


def require_str(args: ToolArgs, name: str) -> str:
    value = args.get(name)
    if not isinstance(value, str) or not value:
        raise ToolValidationError(f"'{name}' must be a non-empty string.")
    return value


def optional_str(args: ToolArgs, name: str, default: str | None = None) -> str | None:
    value = args.get(name)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ToolValidationError(f"'{name}' must be a string.")
    return value


def optional_bool(args: ToolArgs, name: str, default: bool = False) -> bool:
    value = args.get(name)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ToolValidationError(f"'{name}' must be a boolean.")
    return value


def optional_number(
    args: ToolArgs, name: str, *, minimum: float | None = None
) -> float | None:
    value = args.get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ToolValidationError(f"'{name}' must be a number.")
    if not math.isfinite(value):
        raise ToolValidationError(f"'{name}' must be finite.")
    if minimum is not None and value < minimum:
        raise ToolValidationError(f"'{name}' must be at least {minimum:g}.")
    return float(value)


def optional_int(
    args: ToolArgs, name: str, *, minimum: int | None = None
) -> int | None:
    """Return an integer argument; integral floats such as ``3.0`` are accepted."""
    value = args.get(name)
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ToolValidationError(f"'{name}' must be an integer.")
    if minimum is not None and value < minimum:
        raise ToolValidationError(f"'{name}' must be at least {minimum}.")
    return value


def optional_str_list(args: ToolArgs, name: str) -> tuple[str, ...]:
    value = args.get(name)
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)) or not all(
        isinstance(item, str) for item in value
    ):
        raise ToolValidationError(f"'{name}' must be a list of strings.")
    return tuple(value)


def optional_str_map(args: ToolArgs, name: str) -> dict[str, str]:
    value = args.get(name)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ToolValidationError(f"'{name}' must be an object of strings.")
    result: dict[str, str] = {}
    for key, item in value.items():
        if not isinstance(key, str) or not isinstance(item, str):
            raise ToolValidationError(f"'{name}' must map strings to strings.")
        result[key] = item
    return result
