# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Method routing and the catch-report-convert boundary.

The dispatcher owns a two-tier method table.  Built-in protocol methods are
installed by :class:`~plainmcp.server.MCPServer` and may be overridden (the
override replaces the built-in outright).  Custom methods are registered by
name at runtime and declare up front whether they answer requests or consume
notifications.

Every handler call is turned into an explicit :class:`Success` or
:class:`Failure` before an envelope is built:

* :class:`~plainmcp.exceptions.ProtocolError` describes a caller mistake and
  maps directly to its JSON-RPC error.  It is not reported.
* ``McpError`` lets a handler choose the error code.  It is reported.
* Any other ``Exception`` is reported and becomes a generic internal error, so
  the peer never sees a traceback.

Requests without an ``id`` never produce a response.  Exactly one
instrumentation event is emitted per message, success or not.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
import inspect
import threading
import time
from typing import TYPE_CHECKING, Any

from mcp.shared.exceptions import McpError
from pydantic import BaseModel

from . import jsonrpc
from .. import types
from ..configuration import Configuration, InstrumentationEvent
from ..context import Context, PeerState, context_scope
from ..exceptions import (
    ErrorKind,
    InvalidRequestError,
    MethodAlreadyDefinedError,
    MethodNotFoundError,
    ParseError,
    ProtocolError,
    RegistrationError,
)
from ..utils import get_logger
from ..utils.callables import accepts_parameter, run_awaitable
from ..utils.schema import CONTEXT_PARAMETER


if TYPE_CHECKING:  # pragma: no cover
    from .notifications import NotificationEmitter


MethodHandler = Callable[[dict[str, Any], Context], Any]
"""Internal handler signature: ``(params, context) -> result``."""

NOTIFICATION_PREFIX = "notifications/"

_CAPABILITY_METHODS: dict[str, tuple[str, str]] = {
    "tools/call": ("tool", "name"),
    "prompts/get": ("prompt", "name"),
    "resources/read": ("resource", "uri"),
}

_KIND_BY_CODE: dict[int, ErrorKind] = {
    types.PARSE_ERROR: ErrorKind.PARSE_ERROR,
    types.INVALID_REQUEST: ErrorKind.INVALID_REQUEST,
    types.METHOD_NOT_FOUND: ErrorKind.METHOD_NOT_FOUND,
    types.INVALID_PARAMS: ErrorKind.INVALID_PARAMS,
}


@dataclass(frozen=True, slots=True)
class MethodEntry:
    name: str
    handler: MethodHandler
    notification: bool = False
    builtin: bool = False


@dataclass(frozen=True, slots=True)
class Success:
    value: Any


@dataclass(frozen=True, slots=True)
class Failure:
    error: types.ErrorData
    kind: ErrorKind
    exception: BaseException | None = field(default=None, compare=False)


Outcome = Success | Failure


def wrap_user_handler(fn: Callable[..., Any]) -> MethodHandler:
    """Adapt an application callable ``fn(params[, server_context=...])``."""
    wants_context = accepts_parameter(fn, CONTEXT_PARAMETER)

    def handler(params: dict[str, Any], context: Context) -> Any:
        if wants_context:
            result = fn(params, server_context=context.server_context)
        else:
            result = fn(params)
        if inspect.isawaitable(result):
            return run_awaitable(result)
        return result

    handler.__wrapped__ = fn  # type: ignore[attr-defined]
    return handler


def to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json", exclude_none=True)
    return value


class MethodDispatcher:
    """Route decoded JSON-RPC messages to method handlers."""

    def __init__(
        self,
        *,
        configuration: Configuration,
        server_context: Any = None,
        emitter: NotificationEmitter | None = None,
    ) -> None:
        self._configuration = configuration
        self._server_context = server_context
        self._emitter = emitter
        self._lock = threading.RLock()
        self._methods: dict[str, MethodEntry] = {}
        self._logger = get_logger("plainmcp.dispatcher")

    @property
    def configuration(self) -> Configuration:
        return self._configuration

    @property
    def server_context(self) -> Any:
        return self._server_context

    # ------------------------------------------------------------------
    # Method table
    # ------------------------------------------------------------------

    def install_builtin(self, name: str, handler: MethodHandler, *, notification: bool = False) -> None:
        with self._lock:
            self._methods[name] = MethodEntry(name=name, handler=handler, notification=notification, builtin=True)

    def define_method(self, name: str, handler: Callable[..., Any], *, notification: bool = False) -> None:
        """Register a custom method.

        Raises:
            MethodAlreadyDefinedError: If *name* is already routed.
            RegistrationError: If the notification flag contradicts the name.
        """
        if not name:
            raise RegistrationError("Method name must be a non-empty string")
        _check_method_kind(name, notification)
        entry = MethodEntry(name=name, handler=wrap_user_handler(handler), notification=notification)
        with self._lock:
            if name in self._methods:
                raise MethodAlreadyDefinedError(name)
            self._methods[name] = entry

    def remove_method(self, name: str) -> None:
        with self._lock:
            entry = self._methods.get(name)
            if entry is None:
                raise KeyError(name)
            if entry.builtin:
                raise RegistrationError(f"Built-in method '{name}' cannot be removed; override it instead")
            del self._methods[name]

    def override(self, name: str, handler: Callable[..., Any], *, wrap: bool = True) -> None:
        """Replace the built-in *name* entirely."""
        with self._lock:
            entry = self._methods.get(name)
            if entry is None or not entry.builtin:
                raise RegistrationError(f"'{name}' is not a built-in method")
            replacement = wrap_user_handler(handler) if wrap else handler
            self._methods[name] = MethodEntry(
                name=name, handler=replacement, notification=entry.notification, builtin=True
            )

    def lookup(self, name: str) -> MethodEntry | None:
        with self._lock:
            return self._methods.get(name)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch_raw(self, raw: str | bytes, peer: PeerState) -> str | None:
        """Decode, dispatch, and encode one frame."""
        try:
            message = jsonrpc.decode(raw)
        except ParseError as exc:
            return jsonrpc.encode(self.parse_error(exc, peer))
        reply = self.dispatch(message, peer)
        return None if reply is None else jsonrpc.encode(reply)

    def parse_error(self, exc: ParseError, peer: PeerState) -> dict[str, Any]:
        self._emit_event(method=None, started=time.perf_counter(), request_id=None, error=exc.kind, peer=peer)
        return jsonrpc.error_response(None, exc.to_error_data())

    def dispatch(self, message: Any, peer: PeerState) -> dict[str, Any] | list[dict[str, Any]] | None:
        """Handle one decoded message or batch and return the reply, if any."""
        if isinstance(message, list):
            if not message:
                started = time.perf_counter()
                failure = InvalidRequestError("Invalid request: empty batch")
                self._emit_event(method=None, started=started, request_id=None, error=failure.kind, peer=peer)
                return jsonrpc.error_response(None, failure.to_error_data())
            replies = [reply for item in message if (reply := self._dispatch_one(item, peer)) is not None]
            return replies or None
        return self._dispatch_one(message, peer)

    def _dispatch_one(self, message: Any, peer: PeerState) -> dict[str, Any] | None:
        started = time.perf_counter()

        if jsonrpc.is_response(message):
            self._logger.debug("Ignoring client response for id=%r", message.get("id"))
            return None

        try:
            request = jsonrpc.parse_request(message)
        except ProtocolError as exc:
            method = message.get("method") if isinstance(message, Mapping) else None
            self._emit_event(
                method=method if isinstance(method, str) else None,
                started=started,
                request_id=jsonrpc.request_id_of(message),
                error=exc.kind,
                peer=peer,
            )
            if isinstance(message, Mapping) and "id" not in message:
                return None
            return jsonrpc.error_response(jsonrpc.request_id_of(message), exc.to_error_data())

        capability_kind, capability = _capability_of(request)
        context = Context(
            method=request.method,
            request_id=request.id,
            params=request.params,
            peer=peer,
            server_context=self._server_context,
            capability=capability,
            capability_kind=capability_kind,
            emitter=self._emitter,
        )

        outcome = self._execute(request, context)

        self._emit_event(
            method=request.method,
            started=started,
            request_id=request.id,
            error=outcome.kind if isinstance(outcome, Failure) else None,
            peer=peer,
            capability=capability,
            capability_kind=capability_kind,
        )

        if request.is_notification:
            if isinstance(outcome, Failure):
                self._logger.debug("Notification %s failed: %s", request.method, outcome.error.message)
            return None
        if isinstance(outcome, Failure):
            return jsonrpc.error_response(request.id, outcome.error)
        return jsonrpc.response(request.id, outcome.value)

    def _execute(self, request: jsonrpc.Request, context: Context) -> Outcome:
        entry = self.lookup(request.method)
        if entry is None:
            error = MethodNotFoundError(request.method)
            return Failure(error.to_error_data(), error.kind, error)
        if entry.notification and not request.is_notification:
            error = InvalidRequestError(
                f"Invalid request: '{request.method}' is a notification and must not carry an id",
                data={"method": request.method},
            )
            return Failure(error.to_error_data(), error.kind, error)

        self._logger.debug("dispatch %s id=%r", request.method, request.id)
        try:
            with context_scope(context):
                value = entry.handler(request.params, context)
            if value is None:
                value = {}
            return Success(to_jsonable(value))
        except ProtocolError as exc:
            return Failure(exc.to_error_data(), exc.kind, exc)
        except McpError as exc:
            self._configuration.report_exception(exc, self._server_context)
            kind = _KIND_BY_CODE.get(exc.error.code, ErrorKind.INTERNAL_ERROR)
            return Failure(exc.error, kind, exc)
        except Exception as exc:
            self._configuration.report_exception(exc, self._server_context)
            error = types.ErrorData(
                code=types.INTERNAL_ERROR, message="Internal error", data={"kind": ErrorKind.INTERNAL_ERROR.value}
            )
            return Failure(error, ErrorKind.INTERNAL_ERROR, exc)

    def _emit_event(
        self,
        *,
        method: str | None,
        started: float,
        request_id: Any,
        error: ErrorKind | None,
        peer: PeerState,
        capability: str | None = None,
        capability_kind: str | None = None,
    ) -> None:
        event = InstrumentationEvent(
            method=method,
            duration=time.perf_counter() - started,
            request_id=request_id,
            capability=capability,
            capability_kind=capability_kind,
            error=error.value if error is not None else None,
            session_id=peer.session_id,
        )
        self._configuration.instrument(event)


def _check_method_kind(name: str, notification: bool) -> None:
    namespaced = name.startswith(NOTIFICATION_PREFIX)
    if namespaced and not notification:
        raise RegistrationError(f"'{name}' is in the notifications namespace; register it with notification=True")
    if notification and not namespaced:
        raise RegistrationError(f"Notification methods must be named '{NOTIFICATION_PREFIX}...' (got '{name}')")


def _capability_of(request: jsonrpc.Request) -> tuple[str | None, str | None]:
    spec = _CAPABILITY_METHODS.get(request.method)
    if spec is None:
        return None, None
    kind, key = spec
    value = request.params.get(key)
    return kind, value if isinstance(value, str) else None


__all__ = [
    "Failure",
    "MethodDispatcher",
    "MethodEntry",
    "MethodHandler",
    "Outcome",
    "Success",
    "to_jsonable",
    "wrap_user_handler",
]
