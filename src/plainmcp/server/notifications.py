# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Server-to-client notifications.

The emitter forwards notification envelopes to whichever transport is
attached.  Sending while no transport is attached is a no-op: the message is
dropped, a debug record is logged, and :meth:`NotificationEmitter.send`
returns ``False``.  Transport failures are logged and never propagate to the
code that triggered the notification.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import threading
from typing import TYPE_CHECKING, Any

from . import jsonrpc
from .registry import CapabilityKind
from ..utils import get_logger


if TYPE_CHECKING:  # pragma: no cover
    from .transports.base import BaseTransport


TOOLS_LIST_CHANGED = "notifications/tools/list_changed"
PROMPTS_LIST_CHANGED = "notifications/prompts/list_changed"
RESOURCES_LIST_CHANGED = "notifications/resources/list_changed"


@dataclass(slots=True)
class NotificationFlags:
    """List-changed notifications advertised during initialization and emitted on mutation."""

    tools_changed: bool = True
    prompts_changed: bool = True
    resources_changed: bool = True


class NotificationEmitter:
    """Deliver notification envelopes through the attached transport."""

    def __init__(self, flags: NotificationFlags | None = None) -> None:
        self.flags = flags or NotificationFlags()
        self._transport: BaseTransport | None = None
        self._lock = threading.Lock()
        self._logger = get_logger("plainmcp.notifications")

    @property
    def transport(self) -> BaseTransport | None:
        with self._lock:
            return self._transport

    def attach(self, transport: BaseTransport) -> None:
        with self._lock:
            self._transport = transport

    def detach(self, transport: BaseTransport | None = None) -> None:
        with self._lock:
            if transport is None or self._transport is transport:
                self._transport = None

    def send(self, method: str, params: Mapping[str, Any] | None = None, *, session_id: str | None = None) -> bool:
        """Send one notification; ``session_id`` targets a single HTTP session.

        Returns ``True`` when the transport accepted the message.
        """
        transport = self.transport
        if transport is None:
            self._logger.debug("No transport attached; dropping %s", method)
            return False

        message = jsonrpc.notification(method, params)
        try:
            transport.send_notification(message, session_id=session_id)
        except Exception:
            self._logger.exception("Failed to deliver %s", method)
            return False
        return True

    def list_changed(self, kind: CapabilityKind) -> bool:
        kind = CapabilityKind(kind)
        if kind is CapabilityKind.TOOL:
            method, enabled = TOOLS_LIST_CHANGED, self.flags.tools_changed
        elif kind is CapabilityKind.PROMPT:
            method, enabled = PROMPTS_LIST_CHANGED, self.flags.prompts_changed
        else:
            method, enabled = RESOURCES_LIST_CHANGED, self.flags.resources_changed
        if not enabled:
            self._logger.debug("%s suppressed by notification flags", method)
            return False
        return self.send(method)


__all__ = [
    "NotificationEmitter",
    "NotificationFlags",
    "PROMPTS_LIST_CHANGED",
    "RESOURCES_LIST_CHANGED",
    "TOOLS_LIST_CHANGED",
]
