# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Server configuration and observability hooks.

A :class:`Configuration` is built once and handed to :class:`~plainmcp.server.MCPServer`
at construction.  It is frozen, so the dispatcher and transports can read it
from any thread without coordination, and separate servers (or separate tests)
can run with independent settings.

Example::

    def report(exc: BaseException, server_context: object) -> None:
        sentry_sdk.capture_exception(exc)

    config = Configuration(exception_reporter=report, page_size=50)
    server = MCPServer("demo", configuration=config)
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import asdict, dataclass, field, replace
import os
from typing import Any, Final

from .utils.logger import get_logger
from .versioning import DEFAULT_PROTOCOL_VERSION, SUPPORTED_PROTOCOL_VERSIONS, is_supported


ENV_PROTOCOL_VERSION: Final[str] = "PLAINMCP_PROTOCOL_VERSION"
ENV_VALIDATE_ARGUMENTS: Final[str] = "PLAINMCP_VALIDATE_ARGUMENTS"
ENV_PAGE_SIZE: Final[str] = "PLAINMCP_PAGE_SIZE"

_logger = get_logger("plainmcp.configuration")


@dataclass(frozen=True, slots=True)
class InstrumentationEvent:
    """Structured record emitted once per dispatched message.

    ``duration`` is measured in seconds.  ``error`` carries the
    :class:`~plainmcp.exceptions.ErrorKind` value of a failed dispatch and is
    ``None`` on success.
    """

    method: str | None
    duration: float
    request_id: Any = None
    capability: str | None = None
    capability_kind: str | None = None
    error: str | None = None
    session_id: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["extra"] = dict(self.extra)
        return payload


ExceptionReporter = Callable[[BaseException, Any], None]
InstrumentationCallback = Callable[[InstrumentationEvent], None]


def default_exception_reporter(exc: BaseException, server_context: Any) -> None:
    """Log *exc* with its traceback."""
    _logger.error("Unhandled exception in handler: %s", exc, exc_info=(type(exc), exc, exc.__traceback__))


@dataclass(frozen=True)
class Configuration:
    """Immutable settings read by the dispatcher and transports.

    Attributes:
        protocol_version: Newest protocol revision the server will negotiate.
        exception_reporter: Observer called with ``(exception, server_context)``
            for every handler failure.  Failures raised by the reporter itself
            are logged and suppressed.
        instrumentation_callback: Observer called with one
            :class:`InstrumentationEvent` per dispatched message.
        validate_tool_call_arguments: Validate ``tools/call`` arguments against
            the tool's input schema before invoking it.
        page_size: Maximum entries per ``*/list`` page.  ``None`` disables
            pagination and returns every entry in one response.
    """

    protocol_version: str = DEFAULT_PROTOCOL_VERSION
    exception_reporter: ExceptionReporter | None = None
    instrumentation_callback: InstrumentationCallback | None = None
    validate_tool_call_arguments: bool = True
    page_size: int | None = None

    def __post_init__(self) -> None:
        if not is_supported(self.protocol_version):
            supported = ", ".join(SUPPORTED_PROTOCOL_VERSIONS)
            raise ValueError(f"Unsupported protocol version {self.protocol_version!r} (supported: {supported})")
        if self.page_size is not None and self.page_size < 1:
            raise ValueError("page_size must be a positive integer or None")

    # ------------------------------------------------------------------
    # Hook wrappers
    # ------------------------------------------------------------------

    def report_exception(self, exc: BaseException, server_context: Any) -> None:
        reporter = self.exception_reporter or default_exception_reporter
        try:
            reporter(exc, server_context)
        except Exception:
            _logger.exception("Exception reporter raised while reporting %r", exc)

    def instrument(self, event: InstrumentationEvent) -> None:
        callback = self.instrumentation_callback
        if callback is None:
            return
        try:
            callback(event)
        except Exception:
            _logger.exception("Instrumentation callback raised for method %r", event.method)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    def evolve(self, **changes: Any) -> Configuration:
        """Return a copy with *changes* applied."""
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> Configuration:
        """Build a configuration from ``PLAINMCP_*`` environment variables.

        Keyword *overrides* win over the environment.  Hooks cannot be expressed
        as environment variables and must be passed as overrides.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        version = env.get(ENV_PROTOCOL_VERSION)
        if version:
            values["protocol_version"] = version.strip()

        validate = env.get(ENV_VALIDATE_ARGUMENTS)
        if validate is not None and validate.strip():
            values["validate_tool_call_arguments"] = validate.strip().lower() in {"1", "true", "yes", "on"}

        page_size = env.get(ENV_PAGE_SIZE)
        if page_size is not None and page_size.strip():
            try:
                values["page_size"] = int(page_size)
            except ValueError as exc:
                raise ValueError(f"{ENV_PAGE_SIZE} must be an integer (got {page_size!r})") from exc

        values.update(overrides)
        return cls(**values)


__all__ = [
    "Configuration",
    "ExceptionReporter",
    "InstrumentationCallback",
    "InstrumentationEvent",
    "default_exception_reporter",
]
