# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

from __future__ import annotations

import pytest

from plainmcp import Configuration, MCPServer, types
from plainmcp.exceptions import InvalidParamsError
from plainmcp.server.pagination import paginate_sequence
from plainmcp.tool import build_tool_spec
from tests.helpers import error_of, request, result_of


def _noop() -> str:
    return "ok"


def test_unpaginated_by_default() -> None:
    page, cursor = paginate_sequence(list(range(5)), None, limit=None)
    assert page == [0, 1, 2, 3, 4]
    assert cursor is None


def test_pages_follow_cursors() -> None:
    items = list(range(5))
    first, cursor = paginate_sequence(items, None, limit=2)
    second, cursor2 = paginate_sequence(items, cursor, limit=2)
    third, cursor3 = paginate_sequence(items, cursor2, limit=2)

    assert (first, second, third) == ([0, 1], [2, 3], [4])
    assert cursor3 is None


@pytest.mark.parametrize("cursor", ["abc", "-1", "1.5", "", "²", "٣"])
def test_malformed_cursor(cursor: str) -> None:
    with pytest.raises(InvalidParamsError):
        paginate_sequence([1, 2, 3], cursor, limit=2)


def test_tools_list_pagination_end_to_end() -> None:
    server = MCPServer(
        "demo",
        configuration=Configuration(page_size=2),
        tools=[build_tool_spec(_noop, name=name) for name in ("a", "b", "c")],
    )

    first = result_of(server.handle(request("tools/list")))
    second = result_of(server.handle(request("tools/list", {"cursor": first["nextCursor"]})))

    assert [tool["name"] for tool in first["tools"]] == ["a", "b"]
    assert [tool["name"] for tool in second["tools"]] == ["c"]
    assert "nextCursor" not in second


def test_non_string_cursor_is_invalid_params() -> None:
    server = MCPServer("demo")
    assert error_of(server.handle(request("prompts/list", {"cursor": 5})))["code"] == types.INVALID_PARAMS


def test_non_ascii_digit_cursor_is_invalid_params_and_not_reported() -> None:
    reported: list[BaseException] = []
    server = MCPServer(
        "demo",
        configuration=Configuration(exception_reporter=lambda exc, ctx: reported.append(exc)),
        tools=[build_tool_spec(_noop, name="a")],
    )

    error = error_of(server.handle(request("tools/list", {"cursor": "²"})))

    assert error["code"] == types.INVALID_PARAMS
    assert error["data"]["kind"] == "invalid_params"
    assert reported == []
