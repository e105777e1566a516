# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Tool definitions and the ``@tool`` decorator.

Decorated functions carry a :class:`ToolSpec`.  When an
:class:`~plainmcp.server.MCPServer` is inside its
:meth:`binding <plainmcp.server.MCPServer.binding>` context the decorator also
registers the tool on that server immediately::

    server = MCPServer("demo")

    with server.binding():

        @tool(description="Echo a message", annotations={"read_only": True})
        def echo(msg: str) -> str:
            return msg
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from . import types


if TYPE_CHECKING:  # pragma: no cover - type-checking helpers only
    from .server import MCPServer

ToolFn = Callable[..., Any]

_HINT_FIELDS = {
    "read_only": "readOnlyHint",
    "destructive": "destructiveHint",
    "idempotent": "idempotentHint",
    "open_world": "openWorldHint",
}


@dataclass(frozen=True, slots=True)
class ToolAnnotations:
    """Behavioral hints for a tool.

    Defaults are the conservative reading: a tool may write, may destroy data,
    is not safe to repeat, and may reach outside the server.
    """

    read_only: bool = False
    destructive: bool = True
    idempotent: bool = False
    open_world: bool = True
    title: str | None = None

    @classmethod
    def coerce(cls, value: ToolAnnotations | types.ToolAnnotations | Mapping[str, Any] | None) -> ToolAnnotations:
        """Accept snake_case mappings, MCP ``*Hint`` mappings, or models."""
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        if isinstance(value, types.ToolAnnotations):
            value = value.model_dump(exclude_none=True)
        if not isinstance(value, Mapping):
            raise TypeError(f"Tool annotations must be a mapping, got {type(value).__name__}")

        kwargs: dict[str, Any] = {}
        for attr, hint in _HINT_FIELDS.items():
            for key in (attr, hint, f"{attr}_hint"):
                if key in value and value[key] is not None:
                    kwargs[attr] = bool(value[key])
                    break
        if value.get("title") is not None:
            kwargs["title"] = str(value["title"])
        return cls(**kwargs)

    def to_model(self) -> types.ToolAnnotations:
        return types.ToolAnnotations(
            title=self.title,
            readOnlyHint=self.read_only,
            destructiveHint=self.destructive,
            idempotentHint=self.idempotent,
            openWorldHint=self.open_world,
        )


@dataclass(slots=True)
class ToolSpec:
    """In-memory representation of a tool definition."""

    name: str
    fn: ToolFn
    description: str = ""
    title: str | None = None
    input_schema: dict[str, Any] | None = None
    output_schema: dict[str, Any] | None = None
    annotations: ToolAnnotations = field(default_factory=ToolAnnotations)
    icons: list[Any] | None = None
    meta: dict[str, Any] | None = None


_TOOL_ATTR = "__plainmcp_tool__"
_ACTIVE_SERVER: ContextVar[MCPServer | None] = ContextVar("_plainmcp_active_server", default=None)


def get_active_server() -> MCPServer | None:
    """Return the server currently binding tool definitions, if any."""
    return _ACTIVE_SERVER.get()


def set_active_server(server: MCPServer) -> Token[MCPServer | None]:
    return _ACTIVE_SERVER.set(server)


def reset_active_server(token: Token[MCPServer | None]) -> None:
    _ACTIVE_SERVER.reset(token)


def build_tool_spec(
    fn: ToolFn,
    *,
    name: str | None = None,
    description: str | None = None,
    title: str | None = None,
    input_schema: Mapping[str, Any] | None = None,
    output_schema: Mapping[str, Any] | None = None,
    annotations: ToolAnnotations | Mapping[str, Any] | None = None,
    icons: Iterable[Any] | None = None,
    meta: Mapping[str, Any] | None = None,
) -> ToolSpec:
    desc = description if description is not None else (fn.__doc__ or "")
    return ToolSpec(
        name=name or getattr(fn, "__name__", None) or "anonymous",
        fn=fn,
        description=desc.strip(),
        title=title,
        input_schema=dict(input_schema) if input_schema is not None else None,
        output_schema=dict(output_schema) if output_schema is not None else None,
        annotations=ToolAnnotations.coerce(annotations),
        icons=list(icons) if icons is not None else None,
        meta=dict(meta) if meta is not None else None,
    )


def tool(
    name: str | None = None,
    *,
    description: str | None = None,
    title: str | None = None,
    input_schema: Mapping[str, Any] | None = None,
    output_schema: Mapping[str, Any] | None = None,
    annotations: ToolAnnotations | Mapping[str, Any] | None = None,
    icons: Iterable[Any] | None = None,
    meta: Mapping[str, Any] | None = None,
) -> Callable[[ToolFn], ToolFn]:
    """Decorator that marks a callable as an MCP tool.

    The input schema is inferred from the signature when omitted.  If a server
    is actively binding, the tool is registered on it immediately.
    """

    def decorator(fn: ToolFn) -> ToolFn:
        spec = build_tool_spec(
            fn,
            name=name,
            description=description,
            title=title,
            input_schema=input_schema,
            output_schema=output_schema,
            annotations=annotations,
            icons=icons,
            meta=meta,
        )
        setattr(fn, _TOOL_ATTR, spec)

        server = get_active_server()
        if server is not None:
            server.register_tool(spec)
        return fn

    return decorator


def extract_tool_spec(fn: ToolFn) -> ToolSpec | None:
    """Return the attached :class:`ToolSpec` for *fn*, if present."""
    spec = getattr(fn, _TOOL_ATTR, None)
    return spec if isinstance(spec, ToolSpec) else None


__all__ = [
    "ToolAnnotations",
    "ToolSpec",
    "ToolFn",
    "build_tool_spec",
    "tool",
    "extract_tool_spec",
    "get_active_server",
    "set_active_server",
    "reset_active_server",
]
