# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Session state for the Streamable HTTP transport.

Each :class:`Session` owns the negotiated :class:`~plainmcp.context.PeerState`
for one client, at most one open event stream, and a bounded FIFO of pending
notifications.  When the queue is full the oldest pending notification is
dropped, a warning is logged, and :attr:`Session.dropped` is incremented.

:class:`SessionTable` stripes its map across a fixed number of buckets, each
with its own lock, so creation, lookup, and expiry for one identifier are
serialized without a table-wide lock.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
import threading
import time
from typing import Any
import uuid

from ..context import PeerState
from ..utils import get_logger


_logger = get_logger("plainmcp.sessions")


class Session:
    """Server-side state for one HTTP peer."""

    def __init__(self, session_id: str, *, max_queued: int = 1000) -> None:
        if max_queued < 1:
            raise ValueError("max_queued must be at least 1")
        self.id = session_id
        self.peer = PeerState(session_id=session_id)
        self.dropped = 0
        self._max_queued = max_queued
        self._queue: deque[dict[str, Any]] = deque()
        self._lock = threading.Lock()
        self._ready = threading.Condition(self._lock)
        self._generation = 0
        self._stream_open = False
        self._closed = False
        self._last_seen = time.monotonic()

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    @property
    def stream_open(self) -> bool:
        with self._lock:
            return self._stream_open

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._queue)

    def touch(self) -> None:
        with self._lock:
            self._last_seen = time.monotonic()

    def enqueue(self, message: dict[str, Any]) -> bool:
        """Queue *message* for the event stream.  Returns ``False`` once closed."""
        with self._lock:
            if self._closed:
                return False
            if len(self._queue) >= self._max_queued:
                dropped = self._queue.popleft()
                self.dropped += 1
                _logger.warning(
                    "Session %s notification queue full (%d); dropped oldest %s",
                    self.id,
                    self._max_queued,
                    dropped.get("method"),
                )
            self._queue.append(message)
            self._ready.notify_all()
            return True

    def next_message(self) -> dict[str, Any] | None:
        with self._lock:
            return self._queue.popleft() if self._queue else None

    def attach_stream(self) -> bool:
        """Mark the event stream open; ``False`` if one is already open."""
        with self._lock:
            if self._stream_open or self._closed:
                return False
            self._stream_open = True
            self._last_seen = time.monotonic()
            return True

    def detach_stream(self) -> None:
        with self._lock:
            self._stream_open = False
            self._last_seen = time.monotonic()
            self._generation += 1
            self._ready.notify_all()

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._queue.clear()
            self._ready.notify_all()

    def wake(self) -> None:
        """Release any thread blocked in :meth:`wait_for_message`."""
        with self._lock:
            self._generation += 1
            self._ready.notify_all()

    def wait_for_message(self, timeout: float) -> bool:
        """Block until a message is queued, the session closes, or :meth:`wake` is called.

        Returns ``False`` when *timeout* elapsed first.
        """
        with self._ready:
            generation = self._generation
            return self._ready.wait_for(
                lambda: bool(self._queue) or self._closed or self._generation != generation, timeout
            )

    def is_idle(self, timeout: float, now: float | None = None) -> bool:
        with self._lock:
            if self._stream_open:
                return False
            current = time.monotonic() if now is None else now
            return current - self._last_seen > timeout


class SessionTable:
    """Striped map of session id to :class:`Session`."""

    def __init__(self, *, timeout: float = 1800.0, max_queued: int = 1000, buckets: int = 16) -> None:
        self.timeout = timeout
        self.max_queued = max_queued
        self._buckets: list[dict[str, Session]] = [{} for _ in range(buckets)]
        self._locks = [threading.Lock() for _ in range(buckets)]

    def _slot(self, session_id: str) -> int:
        return hash(session_id) % len(self._buckets)

    def create(self) -> Session:
        while True:
            session_id = uuid.uuid4().hex
            slot = self._slot(session_id)
            with self._locks[slot]:
                if session_id in self._buckets[slot]:
                    continue
                session = Session(session_id, max_queued=self.max_queued)
                self._buckets[slot][session_id] = session
            _logger.debug("Created session %s", session_id)
            return session

    def get(self, session_id: str) -> Session | None:
        """Return the live session, expiring it first if it has been idle too long."""
        slot = self._slot(session_id)
        with self._locks[slot]:
            session = self._buckets[slot].get(session_id)
            if session is None:
                return None
            if session.is_idle(self.timeout):
                del self._buckets[slot][session_id]
            else:
                return session
        session.close()
        _logger.info("Session %s expired after %.0fs idle", session_id, self.timeout)
        return None

    def remove(self, session_id: str) -> Session | None:
        slot = self._slot(session_id)
        with self._locks[slot]:
            session = self._buckets[slot].pop(session_id, None)
        if session is not None:
            session.close()
        return session

    def expire_idle(self) -> list[str]:
        expired: list[Session] = []
        now = time.monotonic()
        for bucket, lock in zip(self._buckets, self._locks):
            with lock:
                for session_id, session in list(bucket.items()):
                    if session.is_idle(self.timeout, now):
                        expired.append(bucket.pop(session_id))
        for session in expired:
            session.close()
            _logger.info("Session %s expired after %.0fs idle", session.id, self.timeout)
        return [session.id for session in expired]

    def __iter__(self) -> Iterator[Session]:
        snapshot: list[Session] = []
        for bucket, lock in zip(self._buckets, self._locks):
            with lock:
                snapshot.extend(bucket.values())
        return iter(snapshot)

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def open_streams(self) -> list[Session]:
        return [session for session in self if session.stream_open]


__all__ = ["Session", "SessionTable"]
