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

"""The ``web_fetch`` tool.

HTTP(S) URLs are fetched with ``httpx`` and read only up to the byte budget.
``data:`` URLs are decoded locally; their media type is taken from the URL.
"""

from __future__ import annotations

import base64
import binascii
import re
from typing import Final
from urllib.parse import unquote_to_bytes

import httpx

from .._version import USER_AGENT
from ..errors import ToolValidationError
from ._args import optional_bool, optional_int, require_str
from ._types import Tool, ToolArgs, ToolContext, ToolResult, ToolSpec

__all__ = ["WEB_TOOLS", "infer_content_type", "strip_html"]

FETCH_TIMEOUT_SECONDS: Final[float] = 30.0

_DATA_URL_TYPE: Final[re.Pattern[str]] = re.compile(r"^data:([^;,]+)[;,]", re.IGNORECASE)
_HTML_TAG: Final[re.Pattern[str]] = re.compile(r"<[^>]+>")
_WHITESPACE: Final[re.Pattern[str]] = re.compile(r"\s+")


def strip_html(text: str) -> str:
    """Replace tags with spaces and collapse whitespace."""
    return _WHITESPACE.sub(" ", _HTML_TAG.sub(" ", text)).strip()


def infer_content_type(url: str) -> str | None:
    match = _DATA_URL_TYPE.match(url)
    return match.group(1) if match else None


def web_fetch(context: ToolContext, args: ToolArgs) -> ToolResult:
    url = require_str(args, "url")
    max_bytes = optional_int(args, "maxBytes", minimum=1) or context.config.web_max_bytes
    text_only = optional_bool(args, "textOnly")

    if url[:5].lower() == "data:":
        body = _decode_data_url(url)[:max_bytes]
        header_type = ""
    elif url.lower().startswith(("http://", "https://")):
        try:
            body, header_type = _download(url, max_bytes, context.transport)
        except httpx.HTTPError as error:
            return ToolResult(id="web", output=f"error: fetch failed: {error}", error=True)
    else:
        raise ToolValidationError("'url' must use http, https or data scheme.")

    text = body.decode("utf-8", errors="ignore")
    output = strip_html(text) if text_only else text
    content_type = infer_content_type(url) or header_type
    return ToolResult(id="web", output=f"content-type: {content_type}\n{output}")


def _download(
    url: str, max_bytes: int, transport: httpx.BaseTransport | None
) -> tuple[bytes, str]:
    buffer = bytearray()
    with httpx.Client(
        transport=transport,
        timeout=FETCH_TIMEOUT_SECONDS,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    ) as client:
        with client.stream("GET", url) as response:
            content_type = response.headers.get("content-type", "")
            for chunk in response.iter_bytes():
                buffer.extend(chunk)
                if len(buffer) >= max_bytes:
                    break
    return bytes(buffer[:max_bytes]), content_type


def _decode_data_url(url: str) -> bytes:
    header, separator, payload = url[5:].partition(",")
    if not separator:
        raise ToolValidationError("Malformed data URL: missing ','.")
    if header.lower().endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as error:
            raise ToolValidationError(f"Malformed base64 data URL: {error}") from error
    return unquote_to_bytes(payload)


WEB_TOOLS: Final[tuple[Tool, ...]] = (
    Tool(
        spec=ToolSpec(
            name="web_fetch",
            description="Fetch content from a URL (truncated, optional text-only)",
            parameters={
                "type": "object",
                "properties": {
                    "url": {"type": "string"},
                    "maxBytes": {"type": "number"},
                    "textOnly": {"type": "boolean"},
                },
                "required": ["url"],
            },
        ),
        handler=web_fetch,
        tag="web",
    ),
)
