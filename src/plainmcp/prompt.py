# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Prompt definitions and the ``@prompt`` decorator.

Usage mirrors :mod:`plainmcp.tool`.  A prompt callable receives its arguments
as keyword strings and returns messages; see
:func:`plainmcp.server.adapters.normalize_prompt_result` for accepted shapes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from contextvars import ContextVar, Token
from dataclasses import dataclass
import inspect
from typing import TYPE_CHECKING, Any

from .utils.schema import CONTEXT_PARAMETER


if TYPE_CHECKING:  # pragma: no cover
    from .server import MCPServer

PromptFn = Callable[..., Any]


@dataclass(frozen=True, slots=True)
class PromptArgument:
    name: str
    description: str | None = None
    required: bool = False


@dataclass(slots=True)
class PromptSpec:
    name: str
    fn: PromptFn
    description: str | None = None
    title: str | None = None
    arguments: list[PromptArgument] | None = None
    icons: list[Any] | None = None
    meta: dict[str, Any] | None = None


_PROMPT_ATTR = "__plainmcp_prompt__"
_ACTIVE_SERVER: ContextVar[MCPServer | None] = ContextVar("_plainmcp_prompt_server", default=None)


def get_active_server() -> MCPServer | None:
    return _ACTIVE_SERVER.get()


def set_active_server(server: MCPServer) -> Token[MCPServer | None]:
    return _ACTIVE_SERVER.set(server)


def reset_active_server(token: Token[MCPServer | None]) -> None:
    _ACTIVE_SERVER.reset(token)


def coerce_arguments(arguments: Iterable[PromptArgument | Mapping[str, Any] | str]) -> list[PromptArgument]:
    coerced: list[PromptArgument] = []
    for item in arguments:
        if isinstance(item, PromptArgument):
            coerced.append(item)
        elif isinstance(item, str):
            coerced.append(PromptArgument(name=item))
        elif isinstance(item, Mapping):
            coerced.append(
                PromptArgument(
                    name=str(item["name"]),
                    description=item.get("description"),
                    required=bool(item.get("required", False)),
                )
            )
        else:
            raise TypeError(f"Unsupported prompt argument declaration: {item!r}")
    return coerced


def infer_arguments(fn: PromptFn) -> list[PromptArgument]:
    """Derive prompt arguments from *fn*'s keyword-capable parameters."""
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return []
    inferred: list[PromptArgument] = []
    for name, param in signature.parameters.items():
        if name == CONTEXT_PARAMETER:
            continue
        if param.kind not in (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY):
            continue
        inferred.append(PromptArgument(name=name, required=param.default is inspect.Parameter.empty))
    return inferred


def build_prompt_spec(
    fn: PromptFn,
    *,
    name: str | None = None,
    description: str | None = None,
    title: str | None = None,
    arguments: Iterable[PromptArgument | Mapping[str, Any] | str] | None = None,
    icons: Iterable[Any] | None = None,
    meta: Mapping[str, Any] | None = None,
) -> PromptSpec:
    desc = description if description is not None else inspect.getdoc(fn)
    return PromptSpec(
        name=name or getattr(fn, "__name__", None) or "prompt",
        fn=fn,
        description=desc.strip() if desc else None,
        title=title,
        arguments=coerce_arguments(arguments) if arguments is not None else None,
        icons=list(icons) if icons is not None else None,
        meta=dict(meta) if meta is not None else None,
    )


def prompt(
    name: str | None = None,
    *,
    description: str | None = None,
    title: str | None = None,
    arguments: Iterable[PromptArgument | Mapping[str, Any] | str] | None = None,
    icons: Iterable[Any] | None = None,
    meta: Mapping[str, Any] | None = None,
) -> Callable[[PromptFn], PromptFn]:
    """Register a prompt renderer.

    Arguments are inferred from the signature when not declared; parameters
    without defaults become required.
    """

    def decorator(fn: PromptFn) -> PromptFn:
        spec = build_prompt_spec(
            fn, name=name, description=description, title=title, arguments=arguments, icons=icons, meta=meta
        )
        setattr(fn, _PROMPT_ATTR, spec)

        server = get_active_server()
        if server is not None:
            server.register_prompt(spec)
        return fn

    return decorator


def extract_prompt_spec(fn: PromptFn) -> PromptSpec | None:
    spec = getattr(fn, _PROMPT_ATTR, None)
    return spec if isinstance(spec, PromptSpec) else None


__all__ = [
    "PromptArgument",
    "PromptSpec",
    "build_prompt_spec",
    "extract_prompt_spec",
    "infer_arguments",
    "prompt",
    "set_active_server",
    "reset_active_server",
]
