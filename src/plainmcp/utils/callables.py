# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Invoke user handlers from the synchronous dispatch path.

Handlers are plain callables.  The dispatcher hands over validated keyword
arguments; ``server_context`` is added only when the handler declares a
parameter with that name.  Coroutine functions are supported: inside an AnyIO
worker thread (the HTTP transport) the coroutine runs on the owning event
loop, elsewhere (the stdio loop, direct ``handle`` calls) it gets a private
event loop for the duration of the call.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
import inspect
from typing import Any, TypeVar

import anyio
import anyio.from_thread

from .schema import CONTEXT_PARAMETER
from ..exceptions import InvalidArgumentsError


T = TypeVar("T")


def _signature(fn: Callable[..., Any]) -> inspect.Signature | None:
    try:
        return inspect.signature(fn)
    except (TypeError, ValueError):
        return None


def accepts_parameter(fn: Callable[..., Any], name: str) -> bool:
    signature = _signature(fn)
    return signature is not None and name in signature.parameters


def call_handler(fn: Callable[..., Any], arguments: Mapping[str, Any], *, server_context: Any = None) -> Any:
    """Call *fn* with *arguments*, threading *server_context* when requested.

    Raises:
        InvalidArgumentsError: If the arguments cannot bind to the signature.
            The handler is not invoked in that case.
    """
    kwargs = dict(arguments)
    signature = _signature(fn)
    if signature is not None:
        if CONTEXT_PARAMETER in signature.parameters:
            kwargs[CONTEXT_PARAMETER] = server_context
        try:
            signature.bind(**kwargs)
        except TypeError as exc:
            raise InvalidArgumentsError(f"Invalid arguments: {exc}") from exc

    result = fn(**kwargs)
    if inspect.isawaitable(result):
        return run_awaitable(result)
    return result


def run_awaitable(awaitable: Awaitable[T]) -> T:
    """Drive *awaitable* to completion from synchronous code."""
    started = False

    async def _runner() -> T:
        nonlocal started
        started = True
        return await awaitable

    try:
        return anyio.from_thread.run(_runner)
    except RuntimeError:
        if started:
            raise

    try:
        return anyio.run(_runner)
    finally:
        if not started and inspect.iscoroutine(awaitable):
            awaitable.close()


__all__ = ["accepts_parameter", "call_handler", "run_awaitable"]
