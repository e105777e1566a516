# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""plainmcp framework primitives."""

from __future__ import annotations

from . import content, types
from .configuration import Configuration, InstrumentationEvent
from .context import Context, PeerState, get_context
from .exceptions import (
    CapabilityNotFoundError,
    DuplicateNameError,
    InvalidArgumentsError,
    MethodAlreadyDefinedError,
    NotFoundError,
    ProtocolError,
    RegistrationError,
)
from .prompt import PromptArgument, prompt
from .resource import resource
from .resource_template import resource_template
from .server import MCPServer, NotificationFlags
from .tool import ToolAnnotations, tool


__all__ = [
    "MCPServer",
    "NotificationFlags",
    "Configuration",
    "InstrumentationEvent",
    "tool",
    "ToolAnnotations",
    "prompt",
    "PromptArgument",
    "resource",
    "resource_template",
    "content",
    "types",
    "Context",
    "PeerState",
    "get_context",
    "ProtocolError",
    "CapabilityNotFoundError",
    "InvalidArgumentsError",
    "RegistrationError",
    "DuplicateNameError",
    "MethodAlreadyDefinedError",
    "NotFoundError",
]
