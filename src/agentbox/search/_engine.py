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

"""Recursive line search over the workspace.

The engine walks the tree below a confined root in name order, filters each
file, and collects matching lines with optional surrounding context. A
single global cap bounds the number of emitted lines, separators included.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final, Literal

from ..config import AgentboxConfig
from ..dataclasses import FrozenDataclass
from ..errors import ToolValidationError
from ..filesystem import IGNORED_DIRECTORIES, Workspace, glob_match, is_hidden
from ..runtime.logging import StructuredLogger, get_logger
from ._matcher import LineMatcher, build_matcher, compile_path_filter

__all__ = [
    "FileMatchGroup",
    "MatchRecord",
    "MatchTag",
    "SearchEngine",
    "SearchOptions",
    "SearchReport",
]

MatchTag = Literal["M", "C"]

NO_MATCHES: Final[str] = "No matches"

_LINE_SPLIT: Final[re.Pattern[str]] = re.compile(r"\r?\n")

_LOGGER: StructuredLogger = get_logger(__name__, context={"component": "search"})


@FrozenDataclass()
class SearchOptions:
    """Knobs accepted by :meth:`SearchEngine.search`.

    ``max_results`` and ``max_file_bytes`` default to the engine's
    configuration when left as ``None``.
    """

    regex: bool = False
    case_sensitive: bool = False
    smart_case: bool = False
    fixed_string: bool = False
    word_match: bool = False
    include_glob: str | None = None
    exclude_glob: str | None = None
    include_path: str | None = None
    exclude_path: str | None = None
    include_hidden: bool = False
    include_binary: bool = False
    max_results: int | None = None
    max_file_bytes: int | None = None
    before_context: int = 0
    after_context: int = 0
    with_context_labels: bool = False
    with_context_separators: bool = False
    with_headings: bool = False
    with_counts: bool = False
    separator: str = "--"

    def __post_init__(self) -> None:
        for name in ("before_context", "after_context"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ToolValidationError(f"{name} must be a non-negative integer.")
        for name in ("max_results", "max_file_bytes"):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ToolValidationError(f"{name} must be a positive integer.")


@FrozenDataclass()
class MatchRecord:
    """One emitted line of a search result."""

    file: str = field(metadata={"description": "Workspace-relative path."})
    line_number: int = field(metadata={"description": "1-based line number."})
    text: str = field(metadata={"description": "Line text, stripped."})
    tag: MatchTag | None = field(
        default=None,
        metadata={"description": "M for a matching line, C for context."},
    )

    def render(self) -> str:
        label = f"{self.tag}: " if self.tag is not None else ""
        return f"{self.file}:{self.line_number}: {label}{self.text}"


@dataclass(slots=True)
class FileMatchGroup:
    """Per-file accumulator built during a single search."""

    file: str
    match_count: int = 0
    records: list[MatchRecord] = field(default_factory=list)
    lines: list[str] = field(default_factory=list)
    last_emitted_line: int | None = None

    def heading(self, *, with_counts: bool) -> str:
        if not with_counts:
            return self.file
        noun = "match" if self.match_count == 1 else "matches"
        return f"{self.file} ({self.match_count} {noun})"


@FrozenDataclass()
class SearchReport:
    """Outcome of a search call."""

    lines: tuple[str, ...]
    matches: int
    files: int
    groups: tuple[FileMatchGroup, ...] = ()
    with_headings: bool = False
    with_counts: bool = False

    def render(self) -> str:
        if not self.lines:
            return NO_MATCHES
        if not (self.with_headings or self.with_counts):
            return "\n".join(self.lines)
        blocks: list[str] = []
        for group in self.groups:
            if not group.lines:
                continue
            blocks.append(group.heading(with_counts=self.with_counts))
            blocks.extend(group.lines)
        return "\n".join(blocks)


class SearchEngine:
    """Grep-like search confined to a workspace."""

    def __init__(self, workspace: Workspace, config: AgentboxConfig) -> None:
        super().__init__()
        self._workspace = workspace
        self._config = config

    def search(
        self,
        pattern: str,
        root: str = ".",
        options: SearchOptions | None = None,
    ) -> SearchReport:
        """Search files below ``root`` for lines matching ``pattern``.

        Raises:
            ToolValidationError: If the pattern or a path filter is invalid.
            OutsideWorkspaceError: If ``root`` escapes the workspace.
            PathNotFoundError: If ``root`` does not exist.
        """
        opts = options or SearchOptions()
        matcher = build_matcher(
            pattern,
            regex=opts.regex,
            case_sensitive=opts.case_sensitive,
            smart_case=opts.smart_case,
            fixed_string=opts.fixed_string,
            word_match=opts.word_match,
        )
        include_path = compile_path_filter(opts.include_path, "include_path")
        exclude_path = compile_path_filter(opts.exclude_path, "exclude_path")
        max_results = opts.max_results or self._config.search_max_results
        max_file_bytes = opts.max_file_bytes or self._config.search_max_file_bytes

        base = self._workspace.confine(root)
        lines: list[str] = []
        groups: list[FileMatchGroup] = []
        matches = 0
        scanned = 0

        for path, search_relative in self._walk(base.path):
            if len(lines) >= max_results:
                break
            relative = self._workspace.relative(path)
            if opts.include_glob and not glob_match(relative, opts.include_glob):
                continue
            if opts.exclude_glob and glob_match(relative, opts.exclude_glob):
                continue
            if include_path is not None and not include_path.search(relative):
                continue
            if exclude_path is not None and exclude_path.search(relative):
                continue
            if not opts.include_hidden and is_hidden(search_relative):
                continue
            content = _read_candidate(path, max_file_bytes, opts.include_binary)
            if content is None:
                continue

            scanned += 1
            group = FileMatchGroup(file=relative)
            groups.append(group)
            matches += _collect(
                group,
                _LINE_SPLIT.split(content),
                matcher,
                opts,
                lines,
                max_results,
            )

        report = SearchReport(
            lines=tuple(lines),
            matches=matches,
            files=sum(1 for group in groups if group.match_count),
            groups=tuple(group for group in groups if group.lines),
            with_headings=opts.with_headings,
            with_counts=opts.with_counts,
        )
        _LOGGER.info(
            "Search finished.",
            event="search.completed",
            context={
                "root": base.relative,
                "files_scanned": scanned,
                "matches": matches,
                "lines": len(lines),
                "capped": len(lines) >= max_results,
            },
        )
        return report

    def _walk(self, base: Path) -> Iterator[tuple[Path, str]]:
        """Yield ``(path, relative_to_base)`` for every regular file below ``base``."""
        if base.is_file():
            yield base, base.name
            return
        for current, dirnames, filenames in os.walk(base):
            dirnames[:] = sorted(
                name
                for name in dirnames
                if name not in IGNORED_DIRECTORIES
                and not os.path.islink(os.path.join(current, name))
            )
            for name in sorted(filenames):
                candidate = Path(current) / name
                if candidate.is_symlink() and not self._workspace.is_inside(candidate):
                    continue
                if not candidate.is_file():
                    continue
                yield candidate, os.path.relpath(candidate, base)


def _read_candidate(path: Path, max_file_bytes: int, include_binary: bool) -> str | None:
    try:
        if path.stat().st_size > max_file_bytes:
            return None
        data = path.read_bytes()
    except OSError:
        return None
    if not include_binary and b"\x00" in data:
        return None
    return data.decode("utf-8", errors="replace")


def _collect(
    group: FileMatchGroup,
    file_lines: list[str],
    matcher: LineMatcher,
    opts: SearchOptions,
    output: list[str],
    max_results: int,
) -> int:
    """Append matches and context for one file; return the match count."""
    for index, text in enumerate(file_lines):
        if len(output) >= max_results:
            break
        if not matcher(text):
            continue
        group.match_count += 1
        start = max(0, index - opts.before_context)
        end = min(len(file_lines), index + opts.after_context + 1)
        last = group.last_emitted_line
        if opts.with_context_separators and last is not None and start > last:
            output.append(opts.separator)
            group.lines.append(opts.separator)
        for position in range(start, end):
            if last is not None and position <= last:
                continue
            if len(output) >= max_results:
                break
            tag: MatchTag | None = None
            if opts.with_context_labels:
                tag = "M" if position == index else "C"
            record = MatchRecord(
                file=group.file,
                line_number=position + 1,
                text=file_lines[position].strip(),
                tag=tag,
            )
            rendered = record.render()
            group.records.append(record)
            group.lines.append(rendered)
            output.append(rendered)
            group.last_emitted_line = position
    return group.match_count
