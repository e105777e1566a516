# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

from __future__ import annotations

import pytest

from plainmcp import Configuration, MCPServer
from plainmcp.context import PeerState
from plainmcp.versioning import (
    DEFAULT_PROTOCOL_VERSION,
    SUPPORTED_PROTOCOL_VERSIONS,
    features_for,
    negotiate_version,
    prune_call_result,
    prune_definition,
)
from tests.helpers import notification, request, result_of


LATEST = "2025-11-25"


def _initialize(server: MCPServer, version, peer: PeerState | None = None) -> dict:
    params = {"protocolVersion": version, "capabilities": {}, "clientInfo": {"name": "client", "version": "1.0"}}
    return result_of(server.handle(request("initialize", params), peer=peer))


def _rich_server() -> MCPServer:
    server = MCPServer(
        "demo",
        version="2.0.0",
        title="Demo Server",
        description="Serves demos",
        website_url="https://example.com",
        instructions="Call echo first.",
        configuration=Configuration(protocol_version=LATEST),
    )

    @server.define_tool(title="Echo", output_schema={"properties": {"msg": {"type": "string"}}}, meta={"x": 1})
    def echo(msg: str) -> dict:
        return {"msg": msg}

    return server


@pytest.mark.parametrize("version", SUPPORTED_PROTOCOL_VERSIONS)
def test_supported_versions_are_echoed(version: str) -> None:
    assert negotiate_version(version, LATEST) == version


@pytest.mark.parametrize("requested", ["1999-01-01", "2099-01-01", None, 20250618])
def test_unsupported_versions_fall_back_to_maximum(requested) -> None:
    assert negotiate_version(requested, LATEST) == LATEST


def test_versions_newer_than_the_configured_maximum_are_downgraded() -> None:
    assert negotiate_version(LATEST, "2025-03-26") == "2025-03-26"


def test_default_version_is_supported() -> None:
    assert DEFAULT_PROTOCOL_VERSION in SUPPORTED_PROTOCOL_VERSIONS
    assert Configuration().protocol_version == DEFAULT_PROTOCOL_VERSION


def test_unknown_version_has_no_features() -> None:
    with pytest.raises(ValueError):
        features_for("1999-01-01")


def test_initialize_on_latest_keeps_everything() -> None:
    server = _rich_server()
    result = _initialize(server, LATEST)

    assert result["protocolVersion"] == LATEST
    assert result["instructions"] == "Call echo first."
    assert result["serverInfo"] == {
        "name": "demo",
        "version": "2.0.0",
        "title": "Demo Server",
        "description": "Serves demos",
        "websiteUrl": "https://example.com",
    }
    assert result["capabilities"] == {
        "tools": {"listChanged": True},
        "prompts": {"listChanged": True},
        "resources": {"listChanged": True},
    }


def test_initialize_on_oldest_prunes_newer_fields() -> None:
    server = _rich_server()
    peer = PeerState()
    result = _initialize(server, "2024-11-05", peer)

    assert result["protocolVersion"] == "2024-11-05"
    assert "instructions" not in result
    assert result["serverInfo"] == {"name": "demo", "version": "2.0.0"}
    assert peer.protocol_version == "2024-11-05"
    assert peer.client_info == {"name": "client", "version": "1.0"}

    [tool] = result_of(server.handle(request("tools/list"), peer=peer))["tools"]
    assert set(tool) == {"name", "inputSchema"}

    call = result_of(server.handle(request("tools/call", {"name": "echo", "arguments": {"msg": "x"}}), peer=peer))
    assert "structuredContent" not in call


def test_peers_negotiate_independently() -> None:
    server = _rich_server()
    old, new = PeerState(), PeerState()
    _initialize(server, "2025-03-26", old)
    _initialize(server, LATEST, new)

    [old_tool] = result_of(server.handle(request("tools/list"), peer=old))["tools"]
    [new_tool] = result_of(server.handle(request("tools/list"), peer=new))["tools"]

    assert "annotations" in old_tool and "title" not in old_tool["annotations"]
    assert "title" not in old_tool and "outputSchema" not in old_tool
    assert new_tool["title"] == "Echo"
    assert new_tool["_meta"] == {"x": 1}
    assert "outputSchema" in new_tool


def test_initialized_notification_marks_peer() -> None:
    server = MCPServer("demo")
    peer = PeerState()
    _initialize(server, DEFAULT_PROTOCOL_VERSION, peer)
    assert not peer.initialized

    assert server.handle(notification("notifications/initialized"), peer=peer) is None
    assert peer.initialized


def test_pruning_helpers_are_pure() -> None:
    definition = {"name": "t", "title": "T", "annotations": {"title": "T", "readOnlyHint": True}, "_meta": {}}
    features = features_for("2025-03-26")

    pruned = prune_definition(definition, features)

    assert pruned == {"name": "t", "annotations": {"readOnlyHint": True}}
    assert definition["title"] == "T"
    assert prune_call_result({"content": [], "structuredContent": {}}, features) == {"content": []}
