# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

from __future__ import annotations

import pytest

from plainmcp import MCPServer, PeerState, get_context, tool
from plainmcp.context import Context, context_scope
from plainmcp.versioning import DEFAULT_PROTOCOL_VERSION

from tests.helpers import request, result_of


def _context(**overrides) -> Context:
    values = {"method": "tools/call", "request_id": 1, "params": {}, "peer": PeerState(session_id="abc")}
    values.update(overrides)
    return Context(**values)


def test_get_context_outside_handler() -> None:
    with pytest.raises(LookupError):
        get_context()


def test_context_scope_activates_and_restores() -> None:
    outer, inner = _context(request_id=1), _context(request_id=2)
    with context_scope(outer):
        assert get_context() is outer
        with context_scope(inner):
            assert get_context() is inner
        assert get_context() is outer
    with pytest.raises(LookupError):
        get_context()


def test_scope_is_reset_when_the_block_raises() -> None:
    with pytest.raises(RuntimeError):
        with context_scope(_context()):
            raise RuntimeError("boom")
    with pytest.raises(LookupError):
        get_context()


def test_context_properties() -> None:
    ctx = _context(peer=PeerState(session_id="abc", protocol_version="2025-03-26"))
    assert ctx.session_id == "abc"
    assert ctx.protocol_version == "2025-03-26"
    assert not ctx.is_notification
    assert _context(request_id=None).is_notification


def test_notify_without_emitter() -> None:
    assert _context().notify("notifications/message") is False


def test_peer_features_fall_back_to_default() -> None:
    peer = PeerState()
    assert peer.features(DEFAULT_PROTOCOL_VERSION).version == DEFAULT_PROTOCOL_VERSION
    peer.record_initialize("2024-11-05", {"name": "client"}, {})
    assert peer.features(DEFAULT_PROTOCOL_VERSION).version == "2024-11-05"
    assert not peer.features(DEFAULT_PROTOCOL_VERSION).instructions


def test_record_initialize_copies_inputs() -> None:
    info = {"name": "client", "version": "1"}
    peer = PeerState()
    peer.record_initialize("2025-06-18", info, None)
    info["name"] = "mutated"

    assert peer.client_info == {"name": "client", "version": "1"}
    assert peer.client_capabilities is None
    assert not peer.initialized
    peer.mark_initialized()
    assert peer.initialized


def test_handler_sees_request_metadata() -> None:
    seen: list[tuple] = []

    @tool(description="Records its context")
    def probe() -> str:
        ctx = get_context()
        seen.append((ctx.method, ctx.request_id, ctx.capability, ctx.capability_kind, ctx.server_context))
        return "ok"

    server = MCPServer("ctx", tools=[probe], server_context={"db": "handle"})
    result_of(server.handle(request("tools/call", {"name": "probe", "arguments": {}}, id=41)))

    assert seen == [("tools/call", 41, "probe", "tool", {"db": "handle"})]
    with pytest.raises(LookupError):
        get_context()
