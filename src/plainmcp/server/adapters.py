# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Normalization helpers for handler results.

The adapters keep the capability services thin while ensuring all outbound
results are valid MCP models regardless of what shape a handler returned.
"""

from __future__ import annotations

import base64
from collections.abc import Iterable, Mapping
import json
from typing import Any

from pydantic import TypeAdapter, ValidationError

from .. import types


__all__ = ["normalize_prompt_result", "normalize_resource_payload", "normalize_tool_result"]

_CONTENT_BLOCK: TypeAdapter[Any] = TypeAdapter(types.ContentBlock)
_CONTENT_TYPES = (
    types.TextContent,
    types.ImageContent,
    types.AudioContent,
    types.ResourceLink,
    types.EmbeddedResource,
)


def normalize_tool_result(value: Any) -> types.CallToolResult:
    """Coerce arbitrary tool handler output into ``CallToolResult``.

    Accepted shapes: a ``CallToolResult``; a mapping with result keys; a
    ``(content, structured)`` tuple; a plain mapping (used as structured
    content and rendered as JSON text); content blocks, strings, bytes, or an
    iterable of those.
    """
    if isinstance(value, types.CallToolResult):
        return value

    if isinstance(value, Mapping) and any(key in value for key in ("content", "structuredContent", "isError")):
        try:
            return types.CallToolResult.model_validate(dict(value))
        except ValidationError:
            pass

    structured: Any | None = None
    payload = value

    if isinstance(value, tuple) and len(value) == 2:
        payload, structured = value
    elif isinstance(value, Mapping):
        structured = dict(value)

    result_payload: dict[str, Any] = {"content": _coerce_content_blocks(payload)}
    if structured is not None:
        result_payload["structuredContent"] = structured
    return types.CallToolResult(**result_payload)


def _coerce_content_blocks(source: Any) -> list[Any]:
    if source is None:
        return []

    if isinstance(source, _CONTENT_TYPES):
        return [source]

    if isinstance(source, Mapping):
        block = _content_from_mapping(source)
        return [block] if block is not None else [_as_text_content(source)]

    if isinstance(source, (bytes, bytearray)):
        encoded = base64.b64encode(bytes(source)).decode("ascii")
        return [types.TextContent(type="text", text=encoded)]

    if isinstance(source, str):
        return [types.TextContent(type="text", text=source)]

    if isinstance(source, Iterable):
        blocks: list[Any] = []
        for item in source:
            blocks.extend(_coerce_content_blocks(item))
        return blocks

    return [_as_text_content(source)]


def _content_from_mapping(data: Mapping[str, Any]) -> Any | None:
    if data.get("type") is None:
        return None
    try:
        return _CONTENT_BLOCK.validate_python(dict(data))
    except ValidationError:
        return None


def _as_text_content(value: Any) -> types.TextContent:
    if isinstance(value, str):
        return types.TextContent(type="text", text=value)
    try:
        text = json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError):
        text = str(value)
    return types.TextContent(type="text", text=text)


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------


def normalize_prompt_result(value: Any, *, description: str | None = None) -> types.GetPromptResult:
    """Coerce prompt handler output into ``GetPromptResult``.

    Accepted shapes: a ``GetPromptResult``; a mapping with ``messages``; a
    string (one user message); or an iterable of ``PromptMessage`` models,
    ``{"role", "content"}`` mappings, ``(role, content)`` tuples, or strings.
    """
    if isinstance(value, types.GetPromptResult):
        return value

    if isinstance(value, Mapping) and "messages" in value:
        payload = dict(value)
        payload.setdefault("description", description)
        payload["messages"] = [_coerce_message(item) for item in payload["messages"]]
        return types.GetPromptResult.model_validate(payload)

    if isinstance(value, (str, types.PromptMessage, Mapping)) or value is None:
        items: Iterable[Any] = [] if value is None else [value]
    elif isinstance(value, Iterable):
        items = value
    else:
        items = [str(value)]

    return types.GetPromptResult(description=description, messages=[_coerce_message(item) for item in items])


def _coerce_message(item: Any) -> types.PromptMessage:
    if isinstance(item, types.PromptMessage):
        return item
    if isinstance(item, str):
        return types.PromptMessage(role="user", content=types.TextContent(type="text", text=item))
    if isinstance(item, tuple) and len(item) == 2:
        role, content = item
        return types.PromptMessage(role=role, content=_single_block(content))
    if isinstance(item, Mapping):
        role = item.get("role", "user")
        return types.PromptMessage(role=role, content=_single_block(item.get("content", "")))
    return types.PromptMessage(role="user", content=_as_text_content(item))


def _single_block(content: Any) -> Any:
    blocks = _coerce_content_blocks(content)
    if len(blocks) != 1:
        return types.TextContent(type="text", text="".join(getattr(block, "text", "") for block in blocks))
    return blocks[0]


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


def normalize_resource_payload(uri: str, declared_mime: str | None, payload: Any) -> types.ReadResourceResult:
    """Coerce resource handler output into ``ReadResourceResult``."""
    if isinstance(payload, types.ReadResourceResult):
        return payload

    if isinstance(payload, (types.TextResourceContents, types.BlobResourceContents)):
        return types.ReadResourceResult(contents=[payload])

    if isinstance(payload, list) and all(
        isinstance(item, (types.TextResourceContents, types.BlobResourceContents)) for item in payload
    ):
        return types.ReadResourceResult(contents=payload)

    if isinstance(payload, Mapping):
        if "contents" in payload:
            return types.ReadResourceResult.model_validate(dict(payload))
        merged = {"uri": uri, "mimeType": declared_mime, **payload}
        model = types.BlobResourceContents if "blob" in merged else types.TextResourceContents
        return types.ReadResourceResult(contents=[model.model_validate(merged)])

    if isinstance(payload, (bytes, bytearray)):
        mime = declared_mime or "application/octet-stream"
        encoded = base64.b64encode(bytes(payload)).decode("ascii")
        return types.ReadResourceResult(contents=[types.BlobResourceContents(uri=uri, mimeType=mime, blob=encoded)])

    mime = declared_mime or "text/plain"
    text = payload if isinstance(payload, str) else str(payload)
    return types.ReadResourceResult(contents=[types.TextResourceContents(uri=uri, mimeType=mime, text=text)])
