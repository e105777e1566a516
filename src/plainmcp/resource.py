# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Static resource definitions and the ``@resource`` decorator.

Usage mirrors the :mod:`plainmcp.tool` ambient registration pattern.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from contextvars import ContextVar, Token
from dataclasses import dataclass
import inspect
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:  # pragma: no cover
    from .server import MCPServer

ResourceFn = Callable[..., Any]


@dataclass(slots=True)
class ResourceSpec:
    uri: str
    fn: ResourceFn | None = None
    name: str | None = None
    title: str | None = None
    description: str | None = None
    mime_type: str | None = None
    size: int | None = None
    icons: list[Any] | None = None
    meta: dict[str, Any] | None = None


_RESOURCE_ATTR = "__plainmcp_resource__"
_ACTIVE_SERVER: ContextVar[MCPServer | None] = ContextVar("_plainmcp_resource_server", default=None)


def get_active_server() -> MCPServer | None:
    return _ACTIVE_SERVER.get()


def set_active_server(server: MCPServer) -> Token[MCPServer | None]:
    return _ACTIVE_SERVER.set(server)


def reset_active_server(token: Token[MCPServer | None]) -> None:
    _ACTIVE_SERVER.reset(token)


def resource(
    uri: str,
    *,
    name: str | None = None,
    title: str | None = None,
    description: str | None = None,
    mime_type: str | None = None,
    size: int | None = None,
    icons: Iterable[Any] | None = None,
    meta: Mapping[str, Any] | None = None,
) -> Callable[[ResourceFn], ResourceFn]:
    """Register a resource-producing callable.

    The decorated function returns ``str`` (text), ``bytes`` (binary), or
    resource content models.  Registration happens immediately if inside
    :meth:`plainmcp.server.MCPServer.binding`.
    """

    def decorator(fn: ResourceFn) -> ResourceFn:
        desc = description if description is not None else inspect.getdoc(fn)
        spec = ResourceSpec(
            uri=uri,
            fn=fn,
            name=name or getattr(fn, "__name__", None),
            title=title,
            description=desc,
            mime_type=mime_type,
            size=size,
            icons=list(icons) if icons is not None else None,
            meta=dict(meta) if meta is not None else None,
        )
        setattr(fn, _RESOURCE_ATTR, spec)

        server = get_active_server()
        if server is not None:
            server.register_resource(spec)
        return fn

    return decorator


def extract_resource_spec(fn: ResourceFn) -> ResourceSpec | None:
    spec = getattr(fn, _RESOURCE_ATTR, None)
    return spec if isinstance(spec, ResourceSpec) else None


__all__ = ["resource", "ResourceSpec", "extract_resource_spec", "set_active_server", "reset_active_server"]
