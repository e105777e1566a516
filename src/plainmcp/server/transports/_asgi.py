# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Shared ASGI transport primitives.

This base class builds a Starlette application from the routes a subclass
supplies and serves it with uvicorn.  :meth:`ASGITransportBase.open` blocks
the calling thread; :meth:`ASGITransportBase.run` is the awaitable variant for
callers that already own an event loop.  The app itself is available through
:meth:`ASGITransportBase.build_app` for mounting in another ASGI server;
building it attaches the transport to its server so notifications are
delivered through the mounted app.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

import anyio
from starlette.applications import Starlette
from uvicorn import Config, Server

from .base import BaseTransport


if TYPE_CHECKING:
    from starlette.routing import BaseRoute

    from ..core import MCPServer


class ASGITransportBase(BaseTransport, ABC):
    """Template for transports that present an :class:`MCPServer` via ASGI."""

    DEFAULT_HOST: str = "127.0.0.1"
    DEFAULT_PORT: int = 8000
    DEFAULT_PATH: str = "/mcp"
    DEFAULT_LOG_LEVEL: str = "info"

    def __init__(
        self,
        server: MCPServer,
        *,
        host: str | None = None,
        port: int | None = None,
        path: str | None = None,
        log_level: str | None = None,
        uvicorn_options: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(server)
        self.host = host or self.DEFAULT_HOST
        self.port = port or self.DEFAULT_PORT
        self.path = path or self.DEFAULT_PATH
        self.log_level = log_level or self.DEFAULT_LOG_LEVEL
        self.uvicorn_options = dict(uvicorn_options or {})
        self._uvicorn: Server | None = None
        self._closing = False

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}{self.path}"

    def build_app(self, path: str | None = None) -> Starlette:
        """Return the ASGI app and attach this transport to its server."""
        routes = list(self._build_routes(path=path or self.path))
        app = self._to_asgi(Starlette(routes=routes))
        self.server.attach_transport(self)
        return app

    def open(self) -> None:
        anyio.run(self.run)

    async def run(self) -> None:
        config = Config(
            app=self.build_app(),
            host=self.host,
            port=self.port,
            log_level=self.log_level,
            **self.uvicorn_options,
        )
        self._closing = False
        self._uvicorn = Server(config)
        try:
            await self._uvicorn.serve()
        finally:
            self.server.detach_transport(self)
            self._uvicorn = None

    def close(self) -> None:
        self._closing = True
        if self._uvicorn is not None:
            self._uvicorn.should_exit = True

    def _to_asgi(self, app: Starlette) -> Starlette:
        """Allow subclasses to wrap the ASGI app before serving.

        For example, a transport could override this method to inject
        instrumentation middleware before handing control to uvicorn.
        """
        return app

    @abstractmethod
    def _build_routes(self, *, path: str) -> Iterable[BaseRoute]: ...


__all__ = ["ASGITransportBase"]
