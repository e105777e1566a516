# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Transport adapters for plainmcp servers.

Transports own the wire and the concurrency model; the dispatcher they feed is
the same for all of them.
"""

from __future__ import annotations

from ._asgi import ASGITransportBase
from .base import BaseTransport, TransportFactory
from .stdio import StdioTransport
from .streamable_http import StreamableHTTPTransport


__all__ = [
    "ASGITransportBase",
    "BaseTransport",
    "StdioTransport",
    "StreamableHTTPTransport",
    "TransportFactory",
]
