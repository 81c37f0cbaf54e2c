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

"""Allow and deny lists consulted before any process is spawned."""

from __future__ import annotations

import os

from ..config import AgentboxConfig
from ..dataclasses import FrozenDataclass
from ..errors import PolicyDeniedError

__all__ = ["CommandPolicy"]


@FrozenDataclass()
class CommandPolicy:
    """Literal command-name policy.

    A non-empty ``allow`` list is exclusive: only the listed names run, and
    they must be spelled exactly as listed. ``deny`` blocks a name regardless
    of ``allow`` and also matches on the basename, so ``/bin/rm`` is blocked by
    a ``rm`` entry.
    """

    allow: tuple[str, ...] = ()
    deny: tuple[str, ...] = ()

    @classmethod
    def from_config(cls, config: AgentboxConfig) -> CommandPolicy:
        return cls(allow=config.exec_allow, deny=config.exec_deny)

    def check(self, command: str) -> None:
        """Raise :class:`PolicyDeniedError` when ``command`` may not run."""

        if self.allow and command not in self.allow:
            raise PolicyDeniedError(
                f"Command {command!r} is not in the allow list (AGENTBOX_EXEC_ALLOW)."
            )
        if command in self.deny or os.path.basename(command) in self.deny:
            raise PolicyDeniedError(
                f"Command {command!r} is blocked by the deny list (AGENTBOX_EXEC_DENY)."
            )
