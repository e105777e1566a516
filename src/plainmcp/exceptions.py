# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Error taxonomy for plainmcp.

Two families live here.  :class:`ProtocolError` subclasses are raised inside the
dispatch path and are converted into JSON-RPC error responses; they never reach
the exception reporter because they describe a caller mistake rather than a
server fault.  :class:`RegistrationError` subclasses are raised while a server
is being assembled so misconfiguration fails before any request is accepted.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from . import types


class ErrorKind(str, Enum):
    """Symbolic error class attached to responses and instrumentation events."""

    PARSE_ERROR = "parse_error"
    INVALID_REQUEST = "invalid_request"
    METHOD_NOT_FOUND = "method_not_found"
    INVALID_PARAMS = "invalid_params"
    CAPABILITY_NOT_FOUND = "capability_not_found"
    INVALID_ARGUMENTS = "invalid_arguments"
    INTERNAL_ERROR = "internal_error"


RESOURCE_NOT_FOUND = -32002
"""Error code used by MCP for unknown resource URIs."""


# ---------------------------------------------------------------------------
# Dispatch-time errors
# ---------------------------------------------------------------------------


class ProtocolError(Exception):
    """Base class for errors that map directly onto a JSON-RPC error object."""

    code: int = types.INTERNAL_ERROR
    kind: ErrorKind = ErrorKind.INTERNAL_ERROR

    def __init__(self, message: str, *, data: dict[str, Any] | None = None, code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.data: dict[str, Any] = {"kind": self.kind.value, **(data or {})}

    def to_error_data(self) -> types.ErrorData:
        return types.ErrorData(code=self.code, message=self.message, data=self.data)


class ParseError(ProtocolError):
    code = types.PARSE_ERROR
    kind = ErrorKind.PARSE_ERROR


class InvalidRequestError(ProtocolError):
    code = types.INVALID_REQUEST
    kind = ErrorKind.INVALID_REQUEST


class MethodNotFoundError(ProtocolError):
    code = types.METHOD_NOT_FOUND
    kind = ErrorKind.METHOD_NOT_FOUND

    def __init__(self, method: str) -> None:
        super().__init__(f"Method not found: {method}", data={"method": method})


class InvalidParamsError(ProtocolError):
    code = types.INVALID_PARAMS
    kind = ErrorKind.INVALID_PARAMS


class CapabilityNotFoundError(ProtocolError):
    """Raised when a tool, prompt, or resource name is not registered."""

    code = types.INVALID_PARAMS
    kind = ErrorKind.CAPABILITY_NOT_FOUND

    def __init__(self, capability_kind: str, name: str, *, code: int | None = None) -> None:
        label = capability_kind.replace("_", " ")
        field = "uri" if capability_kind in {"resource", "resource_template"} else "name"
        super().__init__(f"Unknown {label}: {name}", data={"capability": capability_kind, field: name}, code=code)
        self.capability_kind = capability_kind
        self.name = name


class InvalidArgumentsError(ProtocolError):
    """Raised when call arguments fail schema validation or cannot bind to a handler."""

    code = types.INVALID_PARAMS
    kind = ErrorKind.INVALID_ARGUMENTS

    def __init__(
        self,
        message: str,
        *,
        missing: list[str] | None = None,
        mismatched: list[dict[str, Any]] | None = None,
        errors: list[str] | None = None,
    ) -> None:
        data: dict[str, Any] = {"missing": list(missing or []), "mismatched": list(mismatched or [])}
        if errors:
            data["errors"] = list(errors)
        super().__init__(message, data=data)
        self.missing = data["missing"]
        self.mismatched = data["mismatched"]


# ---------------------------------------------------------------------------
# Registration-time errors
# ---------------------------------------------------------------------------


class RegistrationError(ValueError):
    """Raised when a capability or method cannot be registered."""


class DuplicateNameError(RegistrationError):
    """Raised when a capability name is already registered for its kind."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"{kind.replace('_', ' ').capitalize()} '{name}' is already registered")
        self.kind = kind
        self.name = name


class MethodAlreadyDefinedError(RegistrationError):
    """Raised when a custom method name collides with an existing method."""

    def __init__(self, method: str) -> None:
        super().__init__(f"Method '{method}' is already defined")
        self.method = method


class SchemaError(RegistrationError):
    """Raised when an input or output schema is malformed or not self-contained."""


class NotFoundError(LookupError):
    """Raised by registry lookups for names that are not registered."""

    def __init__(self, kind: str, name: str) -> None:
        super().__init__(f"{kind.replace('_', ' ').capitalize()} '{name}' is not registered")
        self.kind = kind
        self.name = name


__all__ = [
    "ErrorKind",
    "RESOURCE_NOT_FOUND",
    "ProtocolError",
    "ParseError",
    "InvalidRequestError",
    "MethodNotFoundError",
    "InvalidParamsError",
    "CapabilityNotFoundError",
    "InvalidArgumentsError",
    "RegistrationError",
    "DuplicateNameError",
    "MethodAlreadyDefinedError",
    "SchemaError",
    "NotFoundError",
]
