# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

from __future__ import annotations

import base64

import pytest

from plainmcp import MCPServer, resource, resource_template, types
from plainmcp.exceptions import RESOURCE_NOT_FOUND
from plainmcp.resource_template import ResourceTemplateSpec, compile_template, template_variables
from tests.helpers import error_of, request, result_of


def test_static_resource_text() -> None:
    server = MCPServer("demo")

    with server.binding():

        @resource("file:///docs/readme.md", mime_type="text/markdown", description="Project readme")
        def readme() -> str:
            return "# Readme"

    listed = result_of(server.handle(request("resources/list")))["resources"]
    assert listed == [
        {
            "uri": "file:///docs/readme.md",
            "name": "readme",
            "description": "Project readme",
            "mimeType": "text/markdown",
        }
    ]

    result = result_of(server.handle(request("resources/read", {"uri": "file:///docs/readme.md"})))
    assert result == {"contents": [{"uri": "file:///docs/readme.md", "mimeType": "text/markdown", "text": "# Readme"}]}


def test_binary_resource_is_base64() -> None:
    server = MCPServer("demo")
    payload = bytes(range(8))

    @resource("file:///blob.bin")
    def blob() -> bytes:
        return payload

    server.register_resource(blob)
    [item] = result_of(server.handle(request("resources/read", {"uri": "file:///blob.bin"})))["contents"]
    assert item["mimeType"] == "application/octet-stream"
    assert base64.b64decode(item["blob"]) == payload


def test_text_resource_defaults_to_plain_text() -> None:
    server = MCPServer("demo")

    @resource("file:///hello.txt")
    def hello():
        return "hello"

    server.register_resource(hello)
    [item] = result_of(server.handle(request("resources/read", {"uri": "file:///hello.txt"})))["contents"]
    assert item["mimeType"] == "text/plain"


def test_unknown_resource_uses_resource_not_found_code() -> None:
    server = MCPServer("demo")
    error = error_of(server.handle(request("resources/read", {"uri": "file:///missing"})))
    assert error["code"] == RESOURCE_NOT_FOUND
    assert error["data"] == {"kind": "capability_not_found", "capability": "resource", "uri": "file:///missing"}


def test_register_resource_rejects_plain_functions() -> None:
    server = MCPServer("demo")
    with pytest.raises(TypeError):
        server.register_resource(lambda: "x")


def test_template_matches_after_static_resources() -> None:
    server = MCPServer("demo")
    seen: list[dict] = []

    with server.binding():

        @resource("file:///logs/latest.txt")
        def latest() -> str:
            return "static"

        @resource_template("file:///logs/{day}.txt", mime_type="text/plain", description="Daily log")
        def daily(day: str) -> str:
            seen.append({"day": day})
            return f"log for {day}"

    static = result_of(server.handle(request("resources/read", {"uri": "file:///logs/latest.txt"})))
    dynamic = result_of(server.handle(request("resources/read", {"uri": "file:///logs/2025-01-01.txt"})))

    assert static["contents"][0]["text"] == "static"
    assert dynamic["contents"][0]["text"] == "log for 2025-01-01"
    assert seen == [{"day": "2025-01-01"}]

    templates = result_of(server.handle(request("resources/templates/list")))["resourceTemplates"]
    assert templates == [
        {
            "uriTemplate": "file:///logs/{day}.txt",
            "name": "daily",
            "description": "Daily log",
            "mimeType": "text/plain",
        }
    ]


def test_reserved_expansion_spans_segments() -> None:
    def read_file(path: str, server_context) -> str:
        return f"{server_context['root']}/{path}"

    server = MCPServer(
        "demo",
        server_context={"root": "/srv"},
        resource_templates=[ResourceTemplateSpec(uri_template="file:///repo/{+path}", fn=read_file, name="repo")],
    )

    result = result_of(server.handle(request("resources/read", {"uri": "file:///repo/src/app/main.py"})))
    assert result["contents"][0]["text"] == "/srv/src/app/main.py"


def test_simple_placeholder_does_not_cross_slashes() -> None:
    pattern = compile_template("file:///logs/{day}.txt")
    assert pattern.match("file:///logs/a.txt")
    assert not pattern.match("file:///logs/a/b.txt")
    assert template_variables("users://{org}/{+rest}") == ["org", "rest"]


def test_resource_contents_models_pass_through() -> None:
    server = MCPServer("demo")

    @resource("file:///multi")
    def multi():
        return [
            types.TextResourceContents(uri="file:///multi", mimeType="text/plain", text="a"),
            types.TextResourceContents(uri="file:///multi", mimeType="text/plain", text="b"),
        ]

    server.register_resource(multi)
    contents = result_of(server.handle(request("resources/read", {"uri": "file:///multi"})))["contents"]
    assert [item["text"] for item in contents] == ["a", "b"]


def test_resource_uri_is_required() -> None:
    server = MCPServer("demo")
    error = error_of(server.handle(request("resources/read", {})))
    assert error["code"] == types.INVALID_PARAMS


def test_unregister_resource_and_template() -> None:
    server = MCPServer("demo")

    @resource("file:///a")
    def a():
        return "a"

    @resource_template("file:///t/{x}")
    def t(x):
        return x

    server.register_resource(a)
    server.register_resource_template(t)
    assert server.resource_uris == ["file:///a"]
    assert server.resource_template_uris == ["file:///t/{x}"]

    server.unregister_resource("file:///a")
    server.unregister_resource_template("file:///t/{x}")
    assert server.resource_uris == []
    assert server.resource_template_uris == []
