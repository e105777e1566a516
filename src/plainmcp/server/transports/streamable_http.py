# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Streamable HTTP transport.

One endpoint, three verbs:

``POST``
    Carries one JSON-RPC message or batch.  In session mode an ``initialize``
    request creates a session whose id is returned in ``Mcp-Session-Id``; every
    later request must echo it (missing: 400, unknown or expired: 404).
    Messages that produce no reply get ``202 Accepted``.
``GET``
    Opens the session's ``text/event-stream``.  Queued notifications for the
    session are flushed in FIFO order; a second concurrent stream gets 409.
``DELETE``
    Ends the session.

In stateless mode no sessions exist, each POST is dispatched with a fresh
peer, ``GET``/``DELETE`` answer 405, and notifications have nowhere to go.

Dispatch runs in a worker thread per request, so a slow handler only holds up
its own connection.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable
import functools
from typing import TYPE_CHECKING, Any

import anyio
import anyio.to_thread
from starlette.requests import Request
from starlette.responses import Response, StreamingResponse
from starlette.routing import Route

from ._asgi import ASGITransportBase
from .. import jsonrpc
from ..sessions import Session, SessionTable
from ... import types
from ...context import PeerState
from ...exceptions import ParseError
from ...utils import get_logger
from ...versioning import SUPPORTED_PROTOCOL_VERSIONS, is_supported


if TYPE_CHECKING:
    from ..core import MCPServer


SESSION_HEADER = "Mcp-Session-Id"
PROTOCOL_HEADER = "MCP-Protocol-Version"


class StreamableHTTPTransport(ASGITransportBase):
    """Serve an :class:`~plainmcp.server.MCPServer` over Streamable HTTP."""

    TRANSPORT = ("streamable-http", "Streamable HTTP", "shttp", "sHTTP")

    def __init__(
        self,
        server: MCPServer,
        *,
        stateless: bool = False,
        session_timeout: float = 1800.0,
        max_queued_notifications: int = 1000,
        keepalive_interval: float = 15.0,
        max_streams: int = 100,
        **asgi_options: Any,
    ) -> None:
        super().__init__(server, **asgi_options)
        self._stateless = stateless
        self.keepalive_interval = keepalive_interval
        self.max_streams = max_streams
        self._stream_limiter: anyio.CapacityLimiter | None = None
        self.sessions = SessionTable(timeout=session_timeout, max_queued=max_queued_notifications)
        self._logger = get_logger("plainmcp.transport.http")

    @property
    def stateless(self) -> bool:
        return self._stateless

    def _build_routes(self, *, path: str) -> Iterable[Route]:
        return [Route(path, self.handle, methods=["GET", "POST", "DELETE"])]

    async def handle(self, request: Request) -> Response:
        if not self._stateless:
            self.sessions.expire_idle()
        if request.method == "POST":
            return await self._handle_post(request)
        if request.method == "GET":
            return await self._handle_get(request)
        return await self._handle_delete(request)

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    async def _handle_post(self, request: Request) -> Response:
        version_header = request.headers.get(PROTOCOL_HEADER)
        if version_header is not None and not is_supported(version_header):
            supported = ", ".join(SUPPORTED_PROTOCOL_VERSIONS)
            return _error_response(
                400, types.INVALID_REQUEST, f"Unsupported protocol version {version_header!r} (supported: {supported})"
            )

        body = await request.body()
        try:
            message = jsonrpc.decode(body)
        except ParseError as exc:
            reply = self.server.dispatcher.parse_error(exc, PeerState())
            return _json_response(reply, status=400)

        headers: dict[str, str] = {}
        created: Session | None = None
        if self._stateless:
            peer = PeerState(protocol_version=version_header)
        elif _is_initialize(message):
            created = self.sessions.create()
            peer = created.peer
        else:
            session, failure = self._require_session(request)
            if failure is not None:
                return failure
            assert session is not None
            session.touch()
            peer = session.peer

        reply = await anyio.to_thread.run_sync(functools.partial(self.server.handle, message, peer=peer))

        if created is not None:
            if isinstance(reply, dict) and "error" in reply:
                self.sessions.remove(created.id)
            else:
                headers[SESSION_HEADER] = created.id
                self._logger.info("Session %s initialized", created.id)

        if reply is None:
            return Response(status_code=202, headers=headers)
        return _json_response(reply, headers=headers)

    async def _handle_get(self, request: Request) -> Response:
        if self._stateless:
            return _method_not_allowed("POST")
        session, failure = self._require_session(request)
        if failure is not None:
            return failure
        assert session is not None
        if not session.attach_stream():
            return _error_response(409, types.INVALID_REQUEST, "An event stream is already open for this session")
        return StreamingResponse(
            self._event_stream(session),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", SESSION_HEADER: session.id},
        )

    async def _handle_delete(self, request: Request) -> Response:
        if self._stateless:
            return _method_not_allowed("POST")
        session, failure = self._require_session(request)
        if failure is not None:
            return failure
        assert session is not None
        self.sessions.remove(session.id)
        self._logger.info("Session %s terminated by client", session.id)
        return Response(status_code=204)

    def _require_session(self, request: Request) -> tuple[Session | None, Response | None]:
        session_id = request.headers.get(SESSION_HEADER)
        if not session_id:
            return None, _error_response(400, types.INVALID_REQUEST, f"Missing {SESSION_HEADER} header")
        session = self.sessions.get(session_id)
        if session is None:
            return None, _error_response(404, types.INVALID_REQUEST, "Unknown or expired session")
        return session, None

    # ------------------------------------------------------------------
    # Event stream
    # ------------------------------------------------------------------

    async def _event_stream(self, session: Session) -> AsyncIterator[str]:
        # Waiting happens on a worker thread so enqueues from any thread wake the stream at once.
        if self._stream_limiter is None:
            self._stream_limiter = anyio.CapacityLimiter(self.max_streams)
        wait = functools.partial(session.wait_for_message, self.keepalive_interval)
        try:
            yield ": stream opened\n\n"
            while not session.closed and not self._closing:
                message = session.next_message()
                if message is not None:
                    yield f"event: message\ndata: {jsonrpc.encode(message)}\n\n"
                    continue
                ready = await anyio.to_thread.run_sync(wait, abandon_on_cancel=True, limiter=self._stream_limiter)
                if not ready:
                    yield ": keepalive\n\n"
        finally:
            session.detach_stream()
            self._logger.debug("Event stream for session %s closed", session.id)

    def close(self) -> None:
        super().close()
        for session in self.sessions.open_streams():
            session.wake()

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def send_notification(self, message: dict[str, Any], *, session_id: str | None = None) -> None:
        """Queue *message* for one session, or for every session with an open stream."""
        if self._stateless:
            self._logger.debug("Stateless transport has no streams; dropping %s", message.get("method"))
            return
        if session_id is not None:
            session = self.sessions.get(session_id)
            if session is None:
                self._logger.warning("Dropping %s for unknown session %s", message.get("method"), session_id)
                return
            session.enqueue(message)
            return
        for session in self.sessions.open_streams():
            session.enqueue(message)


def _is_initialize(message: Any) -> bool:
    return isinstance(message, dict) and message.get("method") == "initialize"


def _json_response(payload: Any, *, status: int = 200, headers: dict[str, str] | None = None) -> Response:
    return Response(
        content=jsonrpc.encode(payload), status_code=status, headers=headers, media_type="application/json"
    )


def _error_response(status: int, code: int, message: str) -> Response:
    return _json_response(jsonrpc.error_response(None, {"code": code, "message": message}), status=status)


def _method_not_allowed(allow: str) -> Response:
    return Response(status_code=405, headers={"Allow": allow})


__all__ = ["PROTOCOL_HEADER", "SESSION_HEADER", "StreamableHTTPTransport"]
