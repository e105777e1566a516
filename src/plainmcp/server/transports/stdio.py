# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Newline-delimited JSON-RPC over a pair of streams.

One peer, one thread: :meth:`StdioTransport.open` reads a line, dispatches it
synchronously, writes the reply, and only then reads the next line.  A slow
handler therefore stalls the whole connection.

When the input exposes a file descriptor the loop waits in a selector together
with an internal wake-up pipe, so :meth:`StdioTransport.close` (from any
thread or a signal handler) unblocks a pending read immediately.  Inputs
without a usable descriptor (``io.StringIO`` and friends) are read with
``readline`` and stop at EOF.
"""

from __future__ import annotations

from collections.abc import Iterator
import codecs
import contextlib
import io
import os
import selectors
import sys
import threading
from typing import IO, TYPE_CHECKING, Any

from .base import BaseTransport
from .. import jsonrpc
from ...context import PeerState
from ...utils import get_logger


if TYPE_CHECKING:
    from ..core import MCPServer


_READ_SIZE = 65536


class StdioTransport(BaseTransport):
    """Run an :class:`~plainmcp.server.MCPServer` over stdin/stdout."""

    TRANSPORT = ("stdio", "STDIO", "Standard IO")

    def __init__(
        self,
        server: MCPServer,
        *,
        input_stream: IO[Any] | None = None,
        output_stream: IO[Any] | None = None,
    ) -> None:
        super().__init__(server)
        self._input = input_stream if input_stream is not None else sys.stdin
        self._output = output_stream if output_stream is not None else sys.stdout
        self._peer = PeerState()
        self._closed = threading.Event()
        self._write_lock = threading.Lock()
        self._pipe_lock = threading.Lock()
        self._wake_w: int | None = None
        self._logger = get_logger("plainmcp.transport.stdio")

    @property
    def peer(self) -> PeerState:
        return self._peer

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Block until :meth:`close` is called or the input reaches EOF."""
        self.server.attach_transport(self)
        try:
            with contextlib.closing(self._frames()) as frames:
                for line in frames:
                    if self._closed.is_set():
                        break
                    if not line.strip():
                        continue
                    reply = self.server.handle_json(line, peer=self._peer)
                    if reply is not None:
                        self._write(reply)
        finally:
            self.server.detach_transport(self)
            self._logger.debug("STDIO loop finished")

    def close(self) -> None:
        self._closed.set()
        with self._pipe_lock:
            if self._wake_w is not None:
                with contextlib.suppress(OSError):
                    os.write(self._wake_w, b"\0")

    def send_notification(self, message: dict[str, Any], *, session_id: str | None = None) -> None:
        if self._closed.is_set():
            self._logger.debug("Transport closed; dropping %s", message.get("method"))
            return
        self._write(jsonrpc.encode(message))

    # ------------------------------------------------------------------
    # IO helpers
    # ------------------------------------------------------------------

    def _write(self, text: str) -> None:
        frame = text + "\n"
        with self._write_lock:
            if isinstance(self._output, io.TextIOBase):
                self._output.write(frame)
            else:
                self._output.write(frame.encode("utf-8"))
            self._output.flush()

    def _fileno(self) -> int | None:
        try:
            return self._input.fileno()
        except (AttributeError, OSError, ValueError):
            return None

    def _frames(self) -> Iterator[str]:
        fd = self._fileno()
        if fd is None:
            yield from self._readline_frames()
        else:
            yield from self._selector_frames(fd)

    def _readline_frames(self) -> Iterator[str]:
        while not self._closed.is_set():
            line = self._input.readline()
            if not line:
                return
            yield line.decode("utf-8", errors="replace") if isinstance(line, bytes) else line

    def _selector_frames(self, fd: int) -> Iterator[str]:
        wake_r, wake_w = os.pipe()
        os.set_blocking(wake_w, False)
        with self._pipe_lock:
            self._wake_w = wake_w

        selector = selectors.DefaultSelector()
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        buffer = ""
        try:
            try:
                selector.register(fd, selectors.EVENT_READ)
                selector.register(wake_r, selectors.EVENT_READ)
                selectable = True
            except (OSError, ValueError):
                # Regular files cannot be polled; they never block either.
                selectable = False

            while not self._closed.is_set():
                if selectable:
                    ready = {key.fd for key, _ in selector.select()}
                    if self._closed.is_set() or fd not in ready:
                        continue
                chunk = os.read(fd, _READ_SIZE)
                if not chunk:
                    tail = buffer + decoder.decode(b"", final=True)
                    if tail and not self._closed.is_set():
                        yield tail
                    return
                buffer += decoder.decode(chunk)
                while "\n" in buffer:
                    line, buffer = buffer.split("\n", 1)
                    if self._closed.is_set():
                        return
                    yield line
        finally:
            selector.close()
            with self._pipe_lock:
                self._wake_w = None
            os.close(wake_r)
            os.close(wake_w)


__all__ = ["StdioTransport"]
