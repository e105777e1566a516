# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Cursor pagination for ``*/list`` methods.

Cursors are opaque to clients but are decimal offsets into the registration
order here.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, TypeVar

from ..exceptions import InvalidParamsError


T = TypeVar("T")


def cursor_from(params: dict[str, Any]) -> str | None:
    cursor = params.get("cursor")
    if cursor is not None and not isinstance(cursor, str):
        raise InvalidParamsError("Invalid params: 'cursor' must be a string")
    return cursor


def paginate_sequence(items: Sequence[T], cursor: str | None, *, limit: int | None) -> tuple[list[T], str | None]:
    """Return the page starting at *cursor* and the cursor of the next page."""
    start = 0
    if cursor is not None:
        if not (cursor.isascii() and cursor.isdigit()):
            raise InvalidParamsError(f"Invalid params: malformed cursor {cursor!r}", data={"cursor": cursor})
        start = int(cursor)

    if limit is None:
        return list(items[start:]), None

    end = start + limit
    next_cursor = str(end) if end < len(items) else None
    return list(items[start:end]), next_cursor


__all__ = ["cursor_from", "paginate_sequence"]
