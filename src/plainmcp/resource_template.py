# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Parameterised resource templates and the ``@resource_template`` decorator.

Templates use RFC 6570 level-1 placeholders.  ``{name}`` matches a single path
segment; ``{+name}`` (reserved expansion) may span ``/``::

    @resource_template("file:///logs/{day}/{+path}", mime_type="text/plain")
    def read_log(day: str, path: str) -> str:
        ...
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from contextvars import ContextVar, Token
from dataclasses import dataclass
from functools import lru_cache
import inspect
import re
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:  # pragma: no cover
    from .server import MCPServer

ResourceTemplateFn = Callable[..., Any]

_PLACEHOLDER = re.compile(r"\{(\+?)([A-Za-z_][A-Za-z0-9_]*)\}")


@lru_cache(maxsize=256)
def compile_template(uri_template: str) -> re.Pattern[str]:
    """Translate *uri_template* into an anchored regular expression."""
    pattern: list[str] = []
    position = 0
    for match in _PLACEHOLDER.finditer(uri_template):
        pattern.append(re.escape(uri_template[position : match.start()]))
        reserved, name = match.groups()
        pattern.append(f"(?P<{name}>.+)" if reserved else f"(?P<{name}>[^/]+)")
        position = match.end()
    pattern.append(re.escape(uri_template[position:]))
    return re.compile("^" + "".join(pattern) + "$")


def template_variables(uri_template: str) -> list[str]:
    return [name for _, name in _PLACEHOLDER.findall(uri_template)]


@dataclass(slots=True)
class ResourceTemplateSpec:
    uri_template: str
    fn: ResourceTemplateFn | None = None
    name: str | None = None
    title: str | None = None
    description: str | None = None
    mime_type: str | None = None
    icons: list[Any] | None = None
    meta: dict[str, Any] | None = None

    def match(self, uri: str) -> dict[str, str] | None:
        """Return the extracted variables when *uri* fits this template."""
        found = compile_template(self.uri_template).match(uri)
        return found.groupdict() if found else None


_TEMPLATE_ATTR = "__plainmcp_resource_template__"
_ACTIVE_SERVER: ContextVar[MCPServer | None] = ContextVar("_plainmcp_resource_template_server", default=None)


def get_active_server() -> MCPServer | None:
    return _ACTIVE_SERVER.get()


def set_active_server(server: MCPServer) -> Token[MCPServer | None]:
    return _ACTIVE_SERVER.set(server)


def reset_active_server(token: Token[MCPServer | None]) -> None:
    _ACTIVE_SERVER.reset(token)


def resource_template(
    uri_template: str,
    *,
    name: str | None = None,
    title: str | None = None,
    description: str | None = None,
    mime_type: str | None = None,
    icons: Iterable[Any] | None = None,
    meta: Mapping[str, Any] | None = None,
) -> Callable[[ResourceTemplateFn], ResourceTemplateFn]:
    """Register a template whose handler receives the placeholder values as keywords."""

    def decorator(fn: ResourceTemplateFn) -> ResourceTemplateFn:
        desc = description if description is not None else inspect.getdoc(fn)
        spec = ResourceTemplateSpec(
            uri_template=uri_template,
            fn=fn,
            name=name or getattr(fn, "__name__", None),
            title=title,
            description=desc,
            mime_type=mime_type,
            icons=list(icons) if icons is not None else None,
            meta=dict(meta) if meta is not None else None,
        )
        setattr(fn, _TEMPLATE_ATTR, spec)

        server = get_active_server()
        if server is not None:
            server.register_resource_template(spec)
        return fn

    return decorator


def extract_resource_template_spec(fn: ResourceTemplateFn) -> ResourceTemplateSpec | None:
    spec = getattr(fn, _TEMPLATE_ATTR, None)
    return spec if isinstance(spec, ResourceTemplateSpec) else None


__all__ = [
    "ResourceTemplateSpec",
    "compile_template",
    "extract_resource_template_spec",
    "resource_template",
    "template_variables",
    "set_active_server",
    "reset_active_server",
]
