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

"""Unified diff application confined to the workspace.

Diff parsing and hunk application are delegated to ``whatthepatch``. This
module only reads current text through the workspace guard, hands it over,
and writes the result back unless a dry run was requested. Batches are
all-or-nothing: every entry is applied in memory before any file is written.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import field
from pathlib import Path
from typing import Final

import whatthepatch
from whatthepatch.exceptions import WhatThePatchException

from .dataclasses import FrozenDataclass
from .errors import PatchConflictError, PathNotFoundError, ToolValidationError
from .filesystem import ResolvedPath, Workspace
from .runtime.logging import StructuredLogger, get_logger

__all__ = ["PatchApplier", "PatchEntry", "PatchResult", "apply_unified_diff"]

_DEV_NULL: Final[str] = "/dev/null"
_FILE_HEADER: Final[re.Pattern[str]] = re.compile(r"^--- [^\n]*\n\+\+\+ ", re.MULTILINE)

_LOGGER: StructuredLogger = get_logger(__name__, context={"component": "patch"})


@FrozenDataclass()
class PatchEntry:
    path: str
    diff: str


@FrozenDataclass()
class PatchResult:
    """Outcome for a single file."""

    path: str = field(metadata={"description": "Workspace-relative path."})
    dry_run: bool = field(metadata={"description": "Whether the write was skipped."})
    changed: bool = field(
        metadata={"description": "Whether the new text differs from the old."}
    )

    def render(self) -> str:
        if self.dry_run:
            return f"Dry-run OK for {self.path}"
        return f"Patched {self.path}"


def apply_unified_diff(text: str, diff: str, *, path_label: str = "file") -> str:
    """Apply a single-file unified ``diff`` to ``text``.

    The trailing newline of ``text`` is preserved.

    Raises:
        ToolValidationError: If ``diff`` holds no file section or several.
        PatchConflictError: If a hunk does not match ``text``.
    """
    sections = _parse(diff, path_label)
    # whatthepatch folds consecutive plain headers into one section.
    found = max(len(sections), len(_FILE_HEADER.findall(diff)))
    if found != 1:
        raise ToolValidationError(
            f"Diff for {path_label} must describe exactly one file; found {found}."
        )
    section = sections[0]
    try:
        lines = whatthepatch.apply_diff(section, text)
    except (WhatThePatchException, ValueError, IndexError) as error:
        raise PatchConflictError(
            f"Patch could not be applied to {path_label}: {error}"
        ) from error
    if not lines:
        return ""
    result = "\n".join(lines)
    if text.endswith("\n") or not text:
        result += "\n"
    return result


class PatchApplier:
    """Apply unified diffs to files inside a workspace."""

    def __init__(self, workspace: Workspace) -> None:
        super().__init__()
        self._workspace = workspace

    def apply(self, path: str, diff: str, *, dry_run: bool = False) -> PatchResult:
        """Patch one file.

        Raises:
            OutsideWorkspaceError: If ``path`` escapes the workspace.
            PathNotFoundError: If the file is missing and the diff does not
                create it.
            PatchConflictError: If the diff does not apply.
        """
        return self.apply_batch([PatchEntry(path=path, diff=diff)], dry_run=dry_run)[0]

    def apply_batch(
        self, entries: Sequence[PatchEntry], *, dry_run: bool = False
    ) -> tuple[PatchResult, ...]:
        """Patch several files; nothing is written unless every entry applies."""
        if not entries:
            raise ToolValidationError("At least one patch is required.")

        pending: dict[Path, tuple[ResolvedPath, str, str]] = {}
        order: list[Path] = []
        for entry in entries:
            if not isinstance(entry.path, str) or not isinstance(entry.diff, str):
                raise ToolValidationError("Each patch needs string path and diff values.")
            resolved = self._workspace.confine(entry.path, must_exist=False)
            if resolved.path in pending:
                _, original, current = pending[resolved.path]
            else:
                original = current = self._read_current(resolved, entry)
                order.append(resolved.path)
            updated = apply_unified_diff(current, entry.diff, path_label=resolved.relative)
            pending[resolved.path] = (resolved, original, updated)

        results: list[PatchResult] = []
        for key in order:
            resolved, original, updated = pending[key]
            if not dry_run:
                resolved.path.parent.mkdir(parents=True, exist_ok=True)
                _ = resolved.path.write_text(updated, encoding="utf-8")
            results.append(
                PatchResult(
                    path=resolved.relative,
                    dry_run=dry_run,
                    changed=updated != original,
                )
            )

        _LOGGER.info(
            "Patches applied." if not dry_run else "Patches checked.",
            event="patch.applied",
            context={
                "files": [result.path for result in results],
                "dry_run": dry_run,
            },
        )
        return tuple(results)

    def _read_current(self, resolved: ResolvedPath, entry: PatchEntry) -> str:
        if resolved.exists:
            if not resolved.path.is_file():
                raise ToolValidationError(f"Not a file: {entry.path}")
            return resolved.path.read_text(encoding="utf-8")
        if _creates_file(entry.diff):
            return ""
        raise PathNotFoundError(f"Path does not exist: {entry.path}")


def _parse(diff: str, path_label: str) -> list[object]:
    if not isinstance(diff, str) or not diff.strip():
        raise ToolValidationError("diff must be a non-empty string.")
    try:
        sections = [
            section
            for section in whatthepatch.parse_patch(diff)
            if section.changes is not None
        ]
    except WhatThePatchException as error:
        raise PatchConflictError(
            f"Patch could not be applied to {path_label}: {error}"
        ) from error
    return sections


def _creates_file(diff: str) -> bool:
    try:
        sections = list(whatthepatch.parse_patch(diff))
    except WhatThePatchException:
        return False
    return any(
        section.header is not None and section.header.old_path == _DEV_NULL
        for section in sections
    )
