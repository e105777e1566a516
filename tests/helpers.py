# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Shared test helpers for plainmcp server tests."""

from __future__ import annotations

from itertools import count
from typing import Any

from plainmcp.server.transports.base import BaseTransport


_REQUEST_COUNTER = count(1)


def request(method: str, params: dict[str, Any] | None = None, *, id: Any = ...) -> dict[str, Any]:
    """Build a request envelope; ``id=None`` builds a notification."""
    message: dict[str, Any] = {"jsonrpc": "2.0", "method": method}
    if params is not None:
        message["params"] = params
    if id is ...:
        id = next(_REQUEST_COUNTER)
    if id is not None:
        message["id"] = id
    return message


def notification(method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
    return request(method, params, id=None)


class RecordingTransport(BaseTransport):
    """In-memory transport used to capture server notifications."""

    TRANSPORT = ("recording", "Recording")

    def __init__(self, server, **options: Any) -> None:
        super().__init__(server)
        self.options = options
        self.sent: list[tuple[dict[str, Any], str | None]] = []
        self.opened = False

    @property
    def methods(self) -> list[str]:
        return [message["method"] for message, _ in self.sent]

    def open(self) -> None:
        self.opened = True

    def close(self) -> None:
        self.opened = False

    def send_notification(self, message: dict[str, Any], *, session_id: str | None = None) -> None:
        self.sent.append((message, session_id))


class FailingTransport(RecordingTransport):
    """Transport whose delivery always raises."""

    def send_notification(self, message: dict[str, Any], *, session_id: str | None = None) -> None:
        raise RuntimeError("transport failure")


def result_of(reply: dict[str, Any] | None) -> dict[str, Any]:
    assert reply is not None, "expected a response envelope"
    assert "error" not in reply, reply
    return reply["result"]


def error_of(reply: dict[str, Any] | None) -> dict[str, Any]:
    assert reply is not None, "expected a response envelope"
    assert "error" in reply, reply
    return reply["error"]
