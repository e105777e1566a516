# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""JSON-RPC 2.0 envelope codec.

Envelopes are plain dictionaries.  Encoding keeps insertion order and uses
compact separators, so two encodings of equal payloads are byte-identical.

See: https://www.jsonrpc.org/specification
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import json
from typing import Any

from .. import types
from ..exceptions import InvalidParamsError, InvalidRequestError, ParseError


JSONRPC_VERSION = "2.0"

_MISSING: Any = object()


@dataclass(frozen=True, slots=True)
class Request:
    """A validated inbound request or notification."""

    method: str
    params: dict[str, Any]
    id: Any = None

    @property
    def is_notification(self) -> bool:
        return self.id is None


def response(id: Any, result: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": id, "result": result}


def error_response(id: Any, error: types.ErrorData | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(error, types.ErrorData):
        payload = error.model_dump(mode="json", exclude_none=True)
    else:
        payload = {key: value for key, value in error.items() if value is not None}
    return {"jsonrpc": JSONRPC_VERSION, "id": id, "error": payload}


def notification(method: str, params: Mapping[str, Any] | None = None) -> dict[str, Any]:
    message: dict[str, Any] = {"jsonrpc": JSONRPC_VERSION, "method": method}
    if params is not None:
        message["params"] = dict(params)
    return message


def encode(message: Any) -> str:
    return json.dumps(message, ensure_ascii=False, separators=(",", ":"), allow_nan=False)


def decode(raw: str | bytes | bytearray) -> Any:
    """Parse one frame.

    Raises:
        ParseError: If *raw* is not valid UTF-8 JSON.
    """
    try:
        if isinstance(raw, (bytes, bytearray)):
            raw = bytes(raw).decode("utf-8")
        return json.loads(raw)
    except (UnicodeDecodeError, ValueError) as exc:
        raise ParseError(f"Parse error: {exc}") from exc


def is_response(message: Any) -> bool:
    """Return ``True`` for a client reply (``result``/``error`` without ``method``)."""
    return isinstance(message, Mapping) and "method" not in message and ("result" in message or "error" in message)


def valid_id(value: Any) -> bool:
    return isinstance(value, (str, int)) and not isinstance(value, bool)


def request_id_of(message: Any) -> Any:
    """Best-effort id extraction used when the message itself is malformed."""
    if isinstance(message, Mapping):
        candidate = message.get("id")
        if valid_id(candidate):
            return candidate
    return None


def parse_request(message: Any) -> Request:
    """Validate the envelope shape of *message*.

    Raises:
        InvalidRequestError: For anything that is not a well-formed request.
        InvalidParamsError: When ``params`` is present but not an object.
    """
    if not isinstance(message, Mapping):
        raise InvalidRequestError("Invalid request: expected a JSON object")
    if message.get("jsonrpc") != JSONRPC_VERSION:
        raise InvalidRequestError("Invalid request: 'jsonrpc' must be \"2.0\"")

    method = message.get("method")
    if not isinstance(method, str) or not method:
        raise InvalidRequestError("Invalid request: 'method' must be a non-empty string")

    request_id = message.get("id", _MISSING)
    if request_id is _MISSING:
        request_id = None
    elif not valid_id(request_id):
        raise InvalidRequestError("Invalid request: 'id' must be a string or integer")

    params = message.get("params")
    if params is None:
        params = {}
    elif not isinstance(params, Mapping):
        raise InvalidParamsError("Invalid params: 'params' must be an object")

    return Request(method=method, params=dict(params), id=request_id)


__all__ = [
    "JSONRPC_VERSION",
    "Request",
    "decode",
    "encode",
    "error_response",
    "is_response",
    "notification",
    "parse_request",
    "request_id_of",
    "response",
    "valid_id",
]
