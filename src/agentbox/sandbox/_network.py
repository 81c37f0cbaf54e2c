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

"""Opt-in network bridge exposed to scripts as ``fetch``."""

from __future__ import annotations

from collections.abc import Callable, Mapping

import httpx

from .._version import USER_AGENT
from ._interpreter import Deadline, ScriptInterrupted

__all__ = ["build_fetch"]


def build_fetch(
    deadline: Deadline, *, transport: httpx.BaseTransport | None = None
) -> Callable[..., str]:
    """Return a ``fetch`` callable bounded by the script's remaining budget.

    The body is read in chunks and the budget is checked between them, so a
    server that trickles bytes cannot keep a script alive past its deadline.

    Responses are returned as text whatever their status code. Transport
    failures surface inside the script as ``ConnectionError``.
    """

    def fetch(
        url: str,
        method: str = "GET",
        headers: Mapping[str, str] | None = None,
        body: str | None = None,
    ) -> str:
        if not isinstance(url, str) or not url:
            raise TypeError("fetch() requires a URL string.")
        deadline.check()
        request_headers = {"User-Agent": USER_AGENT, **dict(headers or {})}
        try:
            with httpx.Client(
                transport=transport,
                timeout=deadline.remaining(),
                follow_redirects=True,
            ) as client:
                with client.stream(
                    method.upper(),
                    url,
                    headers=request_headers,
                    content=body,
                ) as response:
                    payload = bytearray()
                    for chunk in response.iter_bytes():
                        deadline.check()
                        payload.extend(chunk)
                    deadline.check()
                    return payload.decode(response.encoding or "utf-8", errors="replace")
        except httpx.TimeoutException as error:
            deadline.expired = True
            raise ScriptInterrupted(f"fetch({url!r}) exceeded the script budget.") from error
        except httpx.HTTPError as error:
            raise ConnectionError(f"fetch({url!r}) failed: {error}") from error

    return fetch
