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

"""Workspace boundary guard.

Every read, write, stat or process working directory that comes from a caller
passes through :meth:`Workspace.confine`. Paths are resolved to their real,
symlink-free location before being compared with the real workspace root, so
a link that sits inside the workspace but points outside of it is rejected.

Example usage::

    from agentbox.filesystem import Workspace

    workspace = Workspace("/path/to/project")
    target = workspace.confine("src/new_module.py", must_exist=False)
    target.path.write_text("...")
"""

from __future__ import annotations

import errno
import os
from dataclasses import field
from pathlib import Path

from ..dataclasses import FrozenDataclass
from ..errors import OutsideWorkspaceError, PathNotFoundError, ToolValidationError
from ..runtime.logging import StructuredLogger, get_logger
from ._path import escapes_root, to_posix

__all__ = ["ResolvedPath", "Workspace"]

_LOGGER: StructuredLogger = get_logger(__name__, context={"component": "workspace"})


@FrozenDataclass()
class ResolvedPath:
    """Absolute, symlink-resolved path computed for a single call."""

    path: Path = field(metadata={"description": "Real path of the target."})
    relative: str = field(
        metadata={"description": "Path relative to the real workspace root."}
    )
    inside_workspace: bool = field(
        metadata={"description": "Whether the real path lies under the root."}
    )
    exists: bool = field(metadata={"description": "Whether the target exists."})


@FrozenDataclass()
class Workspace:
    """Directory tree to which every tool operation is confined.

    ``root`` defaults to the process working directory at construction time.
    Its real path is recomputed on each call because the tree may change
    between calls.
    """

    root: Path = field(default_factory=Path.cwd)

    @classmethod
    def __pre_init__(cls, *, root: str | os.PathLike[str] | None) -> dict[str, object]:
        resolved = Path.cwd() if root is None else Path(root)
        return {"root": resolved.absolute()}

    def real_root(self) -> Path:
        """Return the symlink-free workspace root."""
        return Path(os.path.realpath(self.root))

    def confine(
        self, path: str | os.PathLike[str], *, must_exist: bool = True
    ) -> ResolvedPath:
        """Resolve ``path`` and ensure it stays inside the workspace.

        Relative paths are joined to the root; absolute paths are accepted only
        when they resolve inside it. Paths that do not exist yet are resolved
        through their nearest existing ancestor so new files and directories
        can be created below a safe parent.

        Raises:
            ToolValidationError: If ``path`` is empty or hits a symlink loop.
            OutsideWorkspaceError: If the real path lies outside the root.
            PathNotFoundError: If ``must_exist`` and the path is missing.
        """
        raw = os.fspath(path)
        if not raw.strip():
            raise ToolValidationError("path must be a non-empty string.")
        if "\x00" in raw:
            raise ToolValidationError("path must not contain NUL characters.")

        root_real = self.real_root()
        candidate = Path(raw)
        if not candidate.is_absolute():
            candidate = self.root / candidate

        real, exists = _resolve(candidate, raw)
        relative = os.path.relpath(real, root_real)
        if escapes_root(relative):
            _LOGGER.warning(
                "Rejected path outside the workspace.",
                event="workspace.confine.rejected",
                context={"path": raw, "resolved": str(real)},
            )
            raise OutsideWorkspaceError(f"Path outside workspace: {raw}")
        if must_exist and not exists:
            raise PathNotFoundError(f"Path does not exist: {raw}")
        return ResolvedPath(
            path=real,
            relative=to_posix(relative),
            inside_workspace=True,
            exists=exists,
        )

    def is_inside(self, path: str | os.PathLike[str]) -> bool:
        """Return whether ``path`` would be accepted by :meth:`confine`."""
        try:
            _ = self.confine(path, must_exist=False)
        except (OutsideWorkspaceError, ToolValidationError):
            return False
        return True

    def relative(self, path: str | os.PathLike[str]) -> str:
        """Render ``path`` relative to the workspace root (``"."`` for the root)."""
        target = Path(path)
        if not target.is_absolute():
            target = self.root / target
        for base in (self.real_root(), self.root):
            relative = os.path.relpath(target, base)
            if not escapes_root(relative):
                return to_posix(relative)
        return target.name or str(target)


def _realpath_strict(path: Path, raw: str) -> Path:
    try:
        return Path(os.path.realpath(path, strict=True))
    except (FileNotFoundError, NotADirectoryError):
        raise
    except OSError as error:
        if error.errno == errno.ELOOP:
            raise ToolValidationError(f"Symlink loop while resolving {raw}") from None
        raise


def _resolve(candidate: Path, raw: str) -> tuple[Path, bool]:
    try:
        return _realpath_strict(candidate, raw), True
    except (FileNotFoundError, NotADirectoryError):
        pass

    # A dangling link is judged by where it points, not where it sits.
    if candidate.is_symlink():
        return Path(os.path.realpath(candidate)), False

    suffix: list[str] = []
    current = candidate
    while current.parent != current:
        suffix.insert(0, current.name)
        try:
            anchor = _realpath_strict(current.parent, raw)
        except (FileNotFoundError, NotADirectoryError):
            current = current.parent
            continue
        return Path(os.path.normpath(os.path.join(anchor, *suffix))), False
    raise OutsideWorkspaceError(f"Path outside workspace: {raw}")
