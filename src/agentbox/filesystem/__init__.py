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

"""Workspace confinement for every path supplied by a caller.

Example usage::

    from agentbox.filesystem import Workspace

    workspace = Workspace()
    resolved = workspace.confine("README.md")
    print(resolved.relative)
"""

from __future__ import annotations

from ._guard import ResolvedPath, Workspace
from ._path import IGNORED_DIRECTORIES, escapes_root, glob_match, is_hidden, to_posix

__all__ = [
    "IGNORED_DIRECTORIES",
    "ResolvedPath",
    "Workspace",
    "escapes_root",
    "glob_match",
    "is_hidden",
    "to_posix",
]
