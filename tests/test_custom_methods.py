# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

from __future__ import annotations

import anyio
import pytest

from plainmcp import MCPServer, types
from plainmcp.exceptions import MethodAlreadyDefinedError, RegistrationError
from plainmcp.resource import ResourceSpec
from tests.helpers import error_of, notification, request, result_of


def test_custom_request_method() -> None:
    server = MCPServer("demo")
    server.define_custom_method("add", lambda params: {"sum": params["a"] + params["b"]})

    assert result_of(server.handle(request("add", {"a": 2, "b": 3}))) == {"sum": 5}


def test_custom_method_as_decorator_with_server_context() -> None:
    server = MCPServer("demo", server_context={"greeting": "hello"})

    @server.define_custom_method("greet")
    def greet(params, server_context):
        return {"text": f"{server_context['greeting']} {params['name']}"}

    assert result_of(server.handle(request("greet", {"name": "ada"}))) == {"text": "hello ada"}


def test_async_custom_method() -> None:
    server = MCPServer("demo")

    @server.define_custom_method("later")
    async def later(params):
        await anyio.sleep(0)
        return {"done": True}

    assert result_of(server.handle(request("later"))) == {"done": True}


def test_custom_notification_runs_without_reply() -> None:
    server = MCPServer("demo")
    seen: list[dict] = []
    server.define_custom_method("notifications/progress", seen.append, notification=True)

    assert server.handle(notification("notifications/progress", {"step": 1})) is None
    assert seen == [{"step": 1}]


def test_collision_with_builtin_is_rejected() -> None:
    server = MCPServer("demo")
    with pytest.raises(MethodAlreadyDefinedError):
        server.define_custom_method("tools/list", lambda params: {})


def test_collision_with_custom_is_rejected() -> None:
    server = MCPServer("demo")
    server.define_custom_method("mine", lambda params: {})
    with pytest.raises(MethodAlreadyDefinedError):
        server.define_custom_method("mine", lambda params: {})


@pytest.mark.parametrize(
    ("name", "is_notification"),
    [("notifications/thing", False), ("thing", True)],
)
def test_notification_flag_must_match_namespace(name: str, is_notification: bool) -> None:
    server = MCPServer("demo")
    with pytest.raises(RegistrationError):
        server.define_custom_method(name, lambda params: None, notification=is_notification)


def test_remove_custom_method() -> None:
    server = MCPServer("demo")
    server.define_custom_method("temp", lambda params: {})
    server.remove_custom_method("temp")

    assert error_of(server.handle(request("temp")))["code"] == types.METHOD_NOT_FOUND
    with pytest.raises(RegistrationError):
        server.remove_custom_method("ping")


def test_override_builtin_replaces_it() -> None:
    server = MCPServer("demo")
    server.override_handler("tools/list", lambda params: {"tools": [], "overridden": True})

    assert result_of(server.handle(request("tools/list"))) == {"tools": [], "overridden": True}


def test_override_requires_a_builtin_name() -> None:
    server = MCPServer("demo")
    with pytest.raises(RegistrationError):
        server.override_handler("custom/thing", lambda params: {})


def test_resources_read_handler_normalises_payload() -> None:
    server = MCPServer(
        "demo", resources=[ResourceSpec(uri="file:///notes.md", name="notes", mime_type="text/markdown")]
    )

    @server.resources_read_handler
    def read(params, server_context):
        return f"# contents of {params['uri']}"

    result = result_of(server.handle(request("resources/read", {"uri": "file:///notes.md"})))
    assert result == {
        "contents": [{"uri": "file:///notes.md", "mimeType": "text/markdown", "text": "# contents of file:///notes.md"}]
    }


def test_resources_read_handler_requires_uri() -> None:
    server = MCPServer("demo")
    server.resources_read_handler(lambda params: "unused")

    error = error_of(server.handle(request("resources/read", {})))
    assert error["code"] == types.INVALID_PARAMS
