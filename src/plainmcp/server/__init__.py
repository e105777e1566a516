# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Server-side entry points."""

from __future__ import annotations

from .core import MCPServer
from .notifications import NotificationFlags
from .registry import CapabilityKind


__all__ = ["CapabilityKind", "MCPServer", "NotificationFlags"]
