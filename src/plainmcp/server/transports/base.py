# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Shared transport primitives for :mod:`plainmcp.server`.

Provides the base class every transport subclasses and the factory signature
that :class:`~plainmcp.server.MCPServer` uses to instantiate transports lazily.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, Protocol, runtime_checkable


if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from ..core import MCPServer


class BaseTransport(ABC):
    """Common base for server transports.

    ``open()`` blocks the calling thread until the transport stops, ``close()``
    stops it from any thread, and ``send_notification()`` pushes an
    unsolicited message to the peer (or, for multi-peer transports, to the
    session named by ``session_id``).
    """

    TRANSPORT: ClassVar[tuple[str, ...]] = ()

    def __init__(self, server: MCPServer) -> None:
        self._server = server

    @property
    def server(self) -> MCPServer:
        """Return the owning :class:`MCPServer`."""
        return self._server

    @property
    def transport_name(self) -> str:
        return self.TRANSPORT[0] if self.TRANSPORT else type(self).__name__

    @property
    def transport_display_name(self) -> str:
        return self.TRANSPORT[1] if len(self.TRANSPORT) > 1 else self.transport_name

    @abstractmethod
    def open(self) -> None:
        """Serve until :meth:`close` is called or the peer goes away."""

    @abstractmethod
    def close(self) -> None:
        """Stop serving.  Safe to call from another thread."""

    @abstractmethod
    def send_notification(self, message: dict[str, Any], *, session_id: str | None = None) -> None:
        """Deliver a notification envelope."""


@runtime_checkable
class TransportFactory(Protocol):
    """Callable that produces a configured transport for an ``MCPServer``."""

    def __call__(self, server: MCPServer, **options: Any) -> BaseTransport:  # pragma: no cover - protocol
        ...


__all__ = ["BaseTransport", "TransportFactory"]
