# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Minimal stdio server.

Usage::

    uv run python examples/stdio_server.py

Then type one JSON-RPC message per line, for example::

    {"jsonrpc":"2.0","id":1,"method":"initialize","params":{"protocolVersion":"2025-06-18"}}
    {"jsonrpc":"2.0","id":2,"method":"tools/call","params":{"name":"echo","arguments":{"text":"hi"}}}
"""

from __future__ import annotations

from typing import Literal

from plainmcp import MCPServer, ToolAnnotations, prompt, resource, tool


server = MCPServer("hello-stdio", instructions="Echo text back, or add two numbers.")

with server.binding():

    @tool(description="Echo the input text", annotations=ToolAnnotations(read_only=True))
    def echo(text: str) -> str:
        return text

    @tool(description="Add two numbers")
    def add(a: float, b: float) -> dict[str, float]:
        return {"sum": a + b}

    @prompt(description="Greet someone in the requested tone")
    def greet(name: str, tone: Literal["formal", "casual"] = "casual") -> list[dict[str, str]]:
        opener = "Good day" if tone == "formal" else "Hey"
        return [
            {"role": "user", "content": f"Write a short greeting for {name}."},
            {"role": "assistant", "content": f"{opener}, {name}!"},
        ]

    @resource("config://hello/motd", mime_type="text/plain")
    def motd() -> str:
        return "Welcome to plainmcp."


if __name__ == "__main__":
    server.serve_stdio()
