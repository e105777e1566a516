# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Built-in method handlers grouped by capability."""

from __future__ import annotations

from .lifecycle import LifecycleService, ServerInfo
from .prompts import PromptsService
from .resources import ResourcesService
from .tools import OutputSchemaError, ToolsService


__all__ = [
    "LifecycleService",
    "OutputSchemaError",
    "PromptsService",
    "ResourcesService",
    "ServerInfo",
    "ToolsService",
]
