# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

from __future__ import annotations

import threading

import pytest

from plainmcp import MCPServer
from plainmcp.exceptions import DuplicateNameError, NotFoundError
from plainmcp.server import CapabilityKind
from plainmcp.server.registry import CapabilityRegistry
from plainmcp.tool import build_tool_spec
from tests.helpers import request, result_of


def _noop() -> str:
    return "ok"


def _spec(name: str):
    return build_tool_spec(_noop, name=name)


def test_listing_follows_registration_order() -> None:
    registry = CapabilityRegistry()
    for name in ("charlie", "alpha", "bravo"):
        registry.register(CapabilityKind.TOOL, _spec(name))

    assert registry.keys(CapabilityKind.TOOL) == ["charlie", "alpha", "bravo"]
    assert [spec.name for spec in registry.list(CapabilityKind.TOOL)] == ["charlie", "alpha", "bravo"]


def test_duplicate_registration_leaves_registry_untouched() -> None:
    registry = CapabilityRegistry()
    original = _spec("dup")
    registry.register(CapabilityKind.TOOL, original)

    with pytest.raises(DuplicateNameError) as excinfo:
        registry.register(CapabilityKind.TOOL, _spec("dup"))

    assert excinfo.value.name == "dup"
    assert registry.get(CapabilityKind.TOOL, "dup") is original
    assert registry.keys(CapabilityKind.TOOL) == ["dup"]


def test_replacement_keeps_position() -> None:
    registry = CapabilityRegistry()
    for name in ("a", "b", "c"):
        registry.register(CapabilityKind.TOOL, _spec(name))

    replacement = _spec("a")
    registry.register(CapabilityKind.TOOL, replacement, replace=True)

    assert registry.keys(CapabilityKind.TOOL) == ["a", "b", "c"]
    assert registry.get(CapabilityKind.TOOL, "a") is replacement


def test_unregister_unknown_raises_not_found() -> None:
    registry = CapabilityRegistry()
    with pytest.raises(NotFoundError):
        registry.unregister(CapabilityKind.PROMPT, "missing")
    assert registry.find(CapabilityKind.PROMPT, "missing") is None
    assert not registry.contains(CapabilityKind.PROMPT, "missing")


def test_kinds_are_independent_namespaces() -> None:
    registry = CapabilityRegistry()
    registry.register(CapabilityKind.TOOL, _spec("shared"))
    registry.register(CapabilityKind.PROMPT, _spec("shared"))

    assert registry.keys(CapabilityKind.TOOL) == ["shared"]
    assert registry.keys(CapabilityKind.PROMPT) == ["shared"]


def test_listeners_run_outside_the_lock() -> None:
    registry = CapabilityRegistry()
    seen: list[tuple[CapabilityKind, str, str]] = []

    def listener(kind: CapabilityKind, key: str, operation: str) -> None:
        # Reading from another thread would deadlock if the lock were still held.
        worker = threading.Thread(target=lambda: registry.keys(kind))
        worker.start()
        worker.join(timeout=1)
        assert not worker.is_alive()
        seen.append((kind, key, operation))

    registry.add_listener(listener)
    registry.register(CapabilityKind.TOOL, _spec("x"))
    registry.register(CapabilityKind.TOOL, _spec("x"), replace=True)
    registry.unregister(CapabilityKind.TOOL, "x")

    assert seen == [
        (CapabilityKind.TOOL, "x", "register"),
        (CapabilityKind.TOOL, "x", "replace"),
        (CapabilityKind.TOOL, "x", "unregister"),
    ]


def test_failing_listener_does_not_block_registration() -> None:
    registry = CapabilityRegistry()

    def listener(kind, key, operation):
        raise RuntimeError("listener failure")

    registry.add_listener(listener)
    registry.register(CapabilityKind.TOOL, _spec("x"))
    assert registry.contains(CapabilityKind.TOOL, "x")


def test_snapshot_is_not_affected_by_later_mutation() -> None:
    registry = CapabilityRegistry()
    registry.register(CapabilityKind.TOOL, _spec("a"))
    snapshot = registry.list(CapabilityKind.TOOL)
    registry.register(CapabilityKind.TOOL, _spec("b"))

    assert [spec.name for spec in snapshot] == ["a"]


def test_duplicate_tool_in_constructor_fails_before_serving() -> None:
    with pytest.raises(DuplicateNameError):
        MCPServer("demo", tools=[build_tool_spec(_noop, name="dup"), build_tool_spec(_noop, name="dup")])


def test_tools_list_reflects_registration_order() -> None:
    server = MCPServer("demo")
    for name in ("zeta", "alpha", "mid"):
        server.register_tool(build_tool_spec(_noop, name=name))

    result = result_of(server.handle(request("tools/list")))
    assert [tool["name"] for tool in result["tools"]] == ["zeta", "alpha", "mid"]

    with pytest.raises(DuplicateNameError):
        server.register_tool(build_tool_spec(_noop, name="alpha"))
    assert server.tool_names == ["zeta", "alpha", "mid"]


def test_concurrent_mutation_never_exposes_a_partial_listing() -> None:
    base = [f"base-{n}" for n in range(5)]
    server = MCPServer("demo", tools=[_spec(name) for name in [*base, "shared"]])
    writers, rounds = 4, 150
    stop = threading.Event()
    failures: list[Exception] = []
    listings: list[list[str]] = []

    def write(index: int) -> None:
        try:
            for n in range(rounds):
                name = f"w{index}-{n}"
                server.register_tool(_spec(name))
                server.register_tool(build_tool_spec(_noop, name=name, description=f"round {n}"), replace=True)
                server.register_tool(build_tool_spec(_noop, name="shared", description=name), replace=True)
                server.unregister_tool(name)
        except Exception as exc:
            failures.append(exc)

    def read() -> None:
        try:
            while not stop.is_set():
                result = result_of(server.handle(request("tools/list")))
                listings.append([tool["name"] for tool in result["tools"]])
        except Exception as exc:
            failures.append(exc)

    readers = [threading.Thread(target=read) for _ in range(3)]
    workers = [threading.Thread(target=write, args=(index,)) for index in range(writers)]
    for thread in readers + workers:
        thread.start()
    for thread in workers:
        thread.join()
    stop.set()
    for thread in readers:
        thread.join()

    assert failures == []
    assert listings
    for names in listings:
        assert names[: len(base) + 1] == [*base, "shared"]
        dynamic = names[len(base) + 1 :]
        assert len(dynamic) == len(set(dynamic))
        owners = [name.split("-", 1)[0] for name in dynamic]
        assert len(owners) == len(set(owners))
    assert server.tool_names == [*base, "shared"]
