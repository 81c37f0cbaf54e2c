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

"""Interpreter construction for the script sandbox.

The interpreter starts from an explicit allow-list of globals rather than
from the host builtins. Every AST node handler is wrapped with a deadline
checkpoint so CPU-bound loops stop at the next node once the budget is spent.
"""

from __future__ import annotations

import io
import json
import math
import statistics
import time
from collections.abc import Callable, Mapping, MutableMapping
from types import MappingProxyType, SimpleNamespace
from typing import Final, Protocol, cast

from asteval import Interpreter

__all__ = [
    "MAX_RANGE_LENGTH",
    "Deadline",
    "InterpreterProtocol",
    "ScriptInterrupted",
    "create_interpreter",
    "format_value",
    "release_interpreter",
]

MAX_RANGE_LENGTH: Final[int] = 1_000_000
_BLOCKED_NODES: Final[tuple[str, ...]] = ("import", "importfrom")


class ScriptInterrupted(Exception):  # noqa: N818
    """Raised at a node checkpoint once the script deadline has passed."""


class InterpreterProtocol(Protocol):
    symtable: MutableMapping[str, object]
    node_handlers: MutableMapping[str, Callable[..., object]]
    error: list[object]
    error_msg: str | None

    def eval(
        self,
        expr: str,
        lineno: int = 0,
        show_errors: bool = True,
        raise_errors: bool = False,
    ) -> object: ...


class Deadline:
    """Wall-clock budget polled by every node checkpoint."""

    def __init__(self, seconds: float) -> None:
        super().__init__()
        self.seconds = seconds
        self.expires_at = time.monotonic() + seconds
        self.expired = False

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    def check(self) -> None:
        if self.expired or time.monotonic() >= self.expires_at:
            self.expired = True
            raise ScriptInterrupted(
                f"Script exceeded its time budget of {self.seconds:g}s."
            )


def _bounded_range(*args: int) -> range:
    values = range(*args)
    if len(values) > MAX_RANGE_LENGTH:
        raise ValueError(
            f"range() is limited to {MAX_RANGE_LENGTH:,} elements in the sandbox."
        )
    return values


def _dumps(value: object, indent: int | None = None) -> str:
    return json.dumps(value, indent=indent, sort_keys=indent is not None)


def _loads(text: str) -> object:
    return json.loads(text)


_SAFE_GLOBALS: Final[Mapping[str, object]] = MappingProxyType(
    {
        "abs": abs,
        "all": all,
        "any": any,
        "bool": bool,
        "chr": chr,
        "dict": dict,
        "divmod": divmod,
        "enumerate": enumerate,
        "filter": filter,
        "float": float,
        "hex": hex,
        "int": int,
        "isinstance": isinstance,
        "len": len,
        "list": list,
        "map": map,
        "max": max,
        "min": min,
        "ord": ord,
        "range": _bounded_range,
        "repr": repr,
        "reversed": reversed,
        "round": round,
        "set": set,
        "sorted": sorted,
        "str": str,
        "sum": sum,
        "tuple": tuple,
        "zip": zip,
        "dumps": _dumps,
        "loads": _loads,
        "math": math,
        "statistics": SimpleNamespace(
            mean=statistics.mean,
            median=statistics.median,
            pstdev=statistics.pstdev,
            stdev=statistics.stdev,
            variance=statistics.variance,
        ),
        "PI": math.pi,
        "TAU": math.tau,
        "E": math.e,
        "Exception": Exception,
        "KeyError": KeyError,
        "IndexError": IndexError,
        "RuntimeError": RuntimeError,
        "TypeError": TypeError,
        "ValueError": ValueError,
        "ZeroDivisionError": ZeroDivisionError,
    }
)


def create_interpreter(
    capabilities: Mapping[str, object], deadline: Deadline
) -> InterpreterProtocol:
    """Build a fresh interpreter holding only allow-listed globals.

    ``capabilities`` are merged over the safe globals; they are the only host
    objects a script can reach.
    """

    symtable: dict[str, object] = {**_SAFE_GLOBALS, **capabilities}
    interpreter = cast(
        InterpreterProtocol,
        Interpreter(
            symtable=symtable,
            use_numpy=False,
            minimal=False,
            writer=io.StringIO(),
            err_writer=io.StringIO(),
        ),
    )
    # The constructor installs its own printer; the granted one wins.
    interpreter.symtable.update(capabilities)
    if "print" not in capabilities:
        _ = interpreter.symtable.pop("print", None)

    handlers = interpreter.node_handlers
    for name in _BLOCKED_NODES:
        _ = handlers.pop(name, None)
    for name, handler in list(handlers.items()):
        handlers[name] = _checkpointed(handler, deadline)
    return interpreter


def release_interpreter(interpreter: InterpreterProtocol) -> None:
    interpreter.symtable.clear()
    interpreter.node_handlers.clear()
    interpreter.error = []
    interpreter.error_msg = None


def _checkpointed(
    handler: Callable[..., object], deadline: Deadline
) -> Callable[..., object]:
    def checkpoint(node: object, *args: object, **kwargs: object) -> object:
        deadline.check()
        return handler(node, *args, **kwargs)

    return checkpoint


def format_value(value: object) -> str:
    """Render a script value for results and console lines."""

    if isinstance(value, str):
        return value
    if value is None or isinstance(value, (bool, int, float)):
        return repr(value)
    if isinstance(value, (list, tuple, dict)):
        try:
            return json.dumps(value)
        except (TypeError, ValueError):
            return repr(value)
    return repr(value)
