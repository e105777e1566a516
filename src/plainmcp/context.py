# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Per-peer state and the ambient per-request context.

:class:`PeerState` holds what one connected client negotiated during
``initialize``.  The stdio transport owns a single instance, the HTTP
transport keeps one per session, and direct callers of
:meth:`MCPServer.handle <plainmcp.server.MCPServer.handle>` may pass their own.

:class:`Context` is activated around every handler invocation so application
code can reach request metadata without threading it through signatures::

    from plainmcp import get_context, tool

    @tool(description="Reports its own request id")
    def whoami() -> str:
        return str(get_context().request_id)
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
import threading
from typing import TYPE_CHECKING, Any

from .versioning import VersionFeatures, features_for


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .server.notifications import NotificationEmitter


_CURRENT_CONTEXT: ContextVar[Context | None] = ContextVar("plainmcp_current_context", default=None)


@dataclass
class PeerState:
    """Negotiated state for one client connection."""

    session_id: str | None = None
    protocol_version: str | None = None
    initialized: bool = False
    client_info: dict[str, Any] | None = None
    client_capabilities: dict[str, Any] | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_initialize(
        self, protocol_version: str, client_info: Mapping[str, Any] | None, capabilities: Mapping[str, Any] | None
    ) -> None:
        with self._lock:
            self.protocol_version = protocol_version
            self.client_info = dict(client_info) if client_info is not None else None
            self.client_capabilities = dict(capabilities) if capabilities is not None else None

    def mark_initialized(self) -> None:
        with self._lock:
            self.initialized = True

    def features(self, default_version: str) -> VersionFeatures:
        return features_for(self.protocol_version or default_version)


def get_context() -> Context:
    """Return the active :class:`Context`.

    Raises:
        LookupError: If called outside of a request handler.
    """
    ctx = _CURRENT_CONTEXT.get()
    if ctx is None:
        raise LookupError("No active context; use get_context() from within a request handler")
    return ctx


@dataclass(slots=True)
class Context:
    """Metadata for the request currently being handled."""

    method: str
    request_id: Any
    params: Mapping[str, Any]
    peer: PeerState
    server_context: Any = None
    capability: str | None = None
    capability_kind: str | None = None
    emitter: NotificationEmitter | None = field(default=None, repr=False)

    @property
    def session_id(self) -> str | None:
        return self.peer.session_id

    @property
    def protocol_version(self) -> str | None:
        return self.peer.protocol_version

    @property
    def is_notification(self) -> bool:
        return self.request_id is None

    def notify(self, method: str, params: Mapping[str, Any] | None = None) -> bool:
        """Send a notification to the peer that issued this request.

        Returns ``False`` when no transport is attached.
        """
        if self.emitter is None:
            return False
        return self.emitter.send(method, params, session_id=self.peer.session_id)


@contextmanager
def context_scope(context: Context) -> Iterator[Context]:
    """Activate *context* for the duration of the block."""
    token = _CURRENT_CONTEXT.set(context)
    try:
        yield context
    finally:
        _CURRENT_CONTEXT.reset(token)


__all__ = ["Context", "PeerState", "context_scope", "get_context"]
