# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Streamable HTTP server with a session-scoped custom method.

Usage::

    uv run python examples/http_server.py --port 8000
    uv run python examples/http_server.py --stateless

``POST /mcp`` with an ``initialize`` request returns an ``Mcp-Session-Id``
header; send it back on later requests.  ``GET /mcp`` with the same header
opens the event stream that carries notifications for that session.
"""

from __future__ import annotations

import argparse
from typing import Any

from plainmcp import MCPServer, get_context, resource_template, tool


def build_server() -> MCPServer:
    server = MCPServer("hello-http", server_context={"greeting": "hello"})

    with server.binding():

        @tool(description="Greet the caller and notify their session")
        def greet(name: str, server_context: dict[str, Any]) -> str:
            message = f"{server_context['greeting']}, {name}"
            get_context().notify("notifications/message", {"level": "info", "data": message})
            return message

        @resource_template("notes://{topic}", mime_type="text/plain")
        def note(topic: str) -> str:
            return f"No notes on {topic} yet."

    @server.define_custom_method("demo/whoami")
    def whoami(params: dict[str, Any]) -> dict[str, Any]:
        ctx = get_context()
        return {"sessionId": ctx.session_id, "protocolVersion": ctx.protocol_version}

    return server


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--stateless", action="store_true")
    args = parser.parse_args()

    build_server().serve_streamable_http(args.host, args.port, stateless=args.stateless)


if __name__ == "__main__":
    main()
