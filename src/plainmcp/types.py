# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Re-export of the MCP schema bindings.

The reference SDK ships generated Pydantic models under ``mcp.types`` for every
structure exchanged between clients and servers.  plainmcp builds its wire
payloads from those models and re-exports them here so applications have a
single import site.
"""

from __future__ import annotations

from mcp import types as _types


__all__ = tuple(name for name in dir(_types) if not name.startswith("_"))

globals().update({name: getattr(_types, name) for name in __all__})
