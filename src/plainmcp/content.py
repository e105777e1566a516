# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Constructors for content blocks returned by tools and prompts.

Each helper builds one case of the MCP ``ContentBlock`` union, carrying only
the fields that case defines.
"""

from __future__ import annotations

import base64
from typing import Any

from . import types


def _b64(data: bytes | bytearray | str) -> str:
    if isinstance(data, str):
        return data
    return base64.b64encode(bytes(data)).decode("ascii")


def text(value: str, *, meta: dict[str, Any] | None = None) -> types.TextContent:
    return types.TextContent(type="text", text=value, _meta=meta)


def image(data: bytes | bytearray | str, mime_type: str) -> types.ImageContent:
    """Binary image content.  ``str`` data is assumed to be base64 already."""
    return types.ImageContent(type="image", data=_b64(data), mimeType=mime_type)


def embedded_resource(
    uri: str,
    *,
    text: str | None = None,
    blob: bytes | bytearray | str | None = None,
    mime_type: str | None = None,
) -> types.EmbeddedResource:
    """Embed a resource's contents inline; exactly one of *text* or *blob* is required."""
    if (text is None) == (blob is None):
        raise ValueError("embedded_resource() requires exactly one of 'text' or 'blob'")
    contents: types.TextResourceContents | types.BlobResourceContents
    if text is not None:
        contents = types.TextResourceContents(uri=uri, mimeType=mime_type or "text/plain", text=text)
    else:
        contents = types.BlobResourceContents(
            uri=uri, mimeType=mime_type or "application/octet-stream", blob=_b64(blob)  # type: ignore[arg-type]
        )
    return types.EmbeddedResource(type="resource", resource=contents)


__all__ = ["embedded_resource", "image", "text"]
