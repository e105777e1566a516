# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Add and remove tools while the server is running.

Every change emits ``notifications/tools/list_changed`` to connected clients.
A background thread stands in for whatever drives reconfiguration in a real
deployment (a webhook, a file watcher, a feature flag poll).
"""

from __future__ import annotations

import threading
import time

from plainmcp import MCPServer


server = MCPServer("dynamic-tools")


def make_feature(name: str):
    def feature(value: str) -> str:
        return f"{name}: {value}"

    return feature


def reconcile(flags: dict[str, bool]) -> None:
    for name, enabled in flags.items():
        present = name in server.tool_names
        if enabled and not present:
            server.define_tool(name, description=f"Feature tool {name}")(make_feature(name))
        elif not enabled and present:
            server.unregister_tool(name)


def flip_flags() -> None:
    enabled = False
    while True:
        enabled = not enabled
        reconcile({"beta_search": enabled, "stable_lookup": True})
        time.sleep(10)


if __name__ == "__main__":
    threading.Thread(target=flip_flags, daemon=True).start()
    server.serve_streamable_http(port=8001)
