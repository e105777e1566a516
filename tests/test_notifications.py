# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

from __future__ import annotations

from plainmcp import MCPServer, NotificationFlags, get_context
from plainmcp.context import PeerState
from plainmcp.resource import ResourceSpec
from plainmcp.server.notifications import PROMPTS_LIST_CHANGED, RESOURCES_LIST_CHANGED, TOOLS_LIST_CHANGED
from plainmcp.tool import build_tool_spec
from tests.helpers import FailingTransport, RecordingTransport, request, result_of


def _noop() -> str:
    return "ok"


def test_notify_without_transport_is_a_noop() -> None:
    server = MCPServer("demo")

    assert server.transport is None
    assert server.notify_tools_list_changed() is False
    assert server.notify("notifications/message", {"level": "info"}) is False


def test_notify_after_attach_delivers_envelopes() -> None:
    server = MCPServer("demo")
    transport = RecordingTransport(server)
    server.attach_transport(transport)

    assert server.notify_tools_list_changed() is True
    assert server.notify_prompts_list_changed() is True
    assert server.notify_resources_list_changed() is True
    assert server.notify("notifications/message", {"level": "info", "data": "hi"}, session_id="s1") is True

    assert transport.sent == [
        ({"jsonrpc": "2.0", "method": TOOLS_LIST_CHANGED}, None),
        ({"jsonrpc": "2.0", "method": PROMPTS_LIST_CHANGED}, None),
        ({"jsonrpc": "2.0", "method": RESOURCES_LIST_CHANGED}, None),
        ({"jsonrpc": "2.0", "method": "notifications/message", "params": {"level": "info", "data": "hi"}}, "s1"),
    ]


def test_detach_stops_delivery() -> None:
    server = MCPServer("demo")
    transport = RecordingTransport(server)
    server.attach_transport(transport)
    server.detach_transport(transport)

    assert server.notify_tools_list_changed() is False
    assert transport.sent == []


def test_detaching_a_stale_transport_keeps_the_current_one() -> None:
    server = MCPServer("demo")
    old, new = RecordingTransport(server), RecordingTransport(server)
    server.attach_transport(old)
    server.attach_transport(new)
    server.detach_transport(old)

    assert server.transport is new


def test_registry_mutations_emit_list_changed() -> None:
    server = MCPServer("demo", tools=[build_tool_spec(_noop, name="initial")])
    transport = RecordingTransport(server)
    server.attach_transport(transport)

    server.register_tool(build_tool_spec(_noop, name="added"))
    server.unregister_tool("initial")

    @server.define_prompt()
    def greet():
        return "hi"

    server.register_resource(ResourceSpec(uri="file:///a", name="a"))

    assert transport.methods == [TOOLS_LIST_CHANGED, TOOLS_LIST_CHANGED, PROMPTS_LIST_CHANGED, RESOURCES_LIST_CHANGED]


def test_construction_is_silent() -> None:
    server = MCPServer("demo", tools=[build_tool_spec(_noop, name="a"), build_tool_spec(_noop, name="b")])
    transport = RecordingTransport(server)
    server.attach_transport(transport)

    assert transport.sent == []


def test_disabled_flags_suppress_notifications() -> None:
    server = MCPServer("demo", notification_flags=NotificationFlags(tools_changed=False))
    transport = RecordingTransport(server)
    server.attach_transport(transport)

    server.register_tool(build_tool_spec(_noop, name="quiet"))
    assert server.notify_tools_list_changed() is False
    assert transport.sent == []

    capabilities = result_of(server.handle(request("initialize", {"protocolVersion": "2025-06-18"})))["capabilities"]
    assert capabilities["tools"] == {"listChanged": False}


def test_transport_failures_are_contained() -> None:
    server = MCPServer("demo")
    server.attach_transport(FailingTransport(server))

    assert server.notify_tools_list_changed() is False
    server.register_tool(build_tool_spec(_noop, name="still-registered"))
    assert server.tool_names == ["still-registered"]


def test_handlers_can_notify_their_own_peer() -> None:
    server = MCPServer("demo")
    transport = RecordingTransport(server)
    server.attach_transport(transport)

    @server.define_custom_method("work")
    def work(params):
        get_context().notify("notifications/progress", {"progress": 1})
        return {"done": True}

    server.handle(request("work"), peer=PeerState(session_id="session-a"))

    assert transport.sent == [
        ({"jsonrpc": "2.0", "method": "notifications/progress", "params": {"progress": 1}}, "session-a")
    ]
