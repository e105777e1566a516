# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Thread-safe capability registry.

One ordered table per :class:`CapabilityKind`.  Every mutation is a single
step under an ``RLock``, and :meth:`CapabilityRegistry.list` returns a tuple
snapshot, so a concurrent ``*/list`` never observes a half-applied change.
Listeners run after the lock is released; they are how the server turns
mutations into ``list_changed`` notifications.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
import threading
from typing import Any

from ..exceptions import DuplicateNameError, NotFoundError
from ..utils import get_logger


class CapabilityKind(str, Enum):
    TOOL = "tool"
    PROMPT = "prompt"
    RESOURCE = "resource"
    RESOURCE_TEMPLATE = "resource_template"


_KEY_ATTRS: dict[CapabilityKind, str] = {
    CapabilityKind.TOOL: "name",
    CapabilityKind.PROMPT: "name",
    CapabilityKind.RESOURCE: "uri",
    CapabilityKind.RESOURCE_TEMPLATE: "uri_template",
}

RegistryListener = Callable[[CapabilityKind, str, str], None]
"""Called with ``(kind, key, operation)`` where operation is register/replace/unregister."""


def registry_key(kind: CapabilityKind, definition: Any) -> str:
    return str(getattr(definition, _KEY_ATTRS[kind]))


class CapabilityRegistry:
    """Holds tool, prompt, resource, and resource template definitions."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tables: dict[CapabilityKind, dict[str, Any]] = {kind: {} for kind in CapabilityKind}
        self._listeners: list[RegistryListener] = []
        self._logger = get_logger("plainmcp.registry")

    def add_listener(self, listener: RegistryListener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def register(self, kind: CapabilityKind, definition: Any, *, replace: bool = False) -> Any:
        """Add *definition*.

        Raises:
            DuplicateNameError: If the key already exists and *replace* is false.
                The registry is left untouched.
        """
        kind = CapabilityKind(kind)
        key = registry_key(kind, definition)
        with self._lock:
            table = self._tables[kind]
            existed = key in table
            if existed and not replace:
                raise DuplicateNameError(kind.value, key)
            # Replacement keeps the original position in listing order.
            table[key] = definition
        operation = "replace" if existed else "register"
        self._logger.debug("%s %s %r", operation, kind.value, key)
        self._emit(kind, key, operation)
        return definition

    def unregister(self, kind: CapabilityKind, key: str) -> Any:
        kind = CapabilityKind(kind)
        with self._lock:
            table = self._tables[kind]
            if key not in table:
                raise NotFoundError(kind.value, key)
            removed = table.pop(key)
        self._logger.debug("unregister %s %r", kind.value, key)
        self._emit(kind, key, "unregister")
        return removed

    def get(self, kind: CapabilityKind, key: str) -> Any:
        with self._lock:
            try:
                return self._tables[CapabilityKind(kind)][key]
            except KeyError:
                raise NotFoundError(CapabilityKind(kind).value, key) from None

    def find(self, kind: CapabilityKind, key: str) -> Any | None:
        with self._lock:
            return self._tables[CapabilityKind(kind)].get(key)

    def contains(self, kind: CapabilityKind, key: str) -> bool:
        with self._lock:
            return key in self._tables[CapabilityKind(kind)]

    def list(self, kind: CapabilityKind) -> tuple[Any, ...]:
        """Snapshot of *kind*'s definitions in registration order."""
        with self._lock:
            return tuple(self._tables[CapabilityKind(kind)].values())

    def keys(self, kind: CapabilityKind) -> list[str]:
        with self._lock:
            return list(self._tables[CapabilityKind(kind)])

    def _emit(self, kind: CapabilityKind, key: str, operation: str) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(kind, key, operation)
            except Exception:
                self._logger.exception("Registry listener failed for %s %r", kind.value, key)


__all__ = ["CapabilityKind", "CapabilityRegistry", "RegistryListener", "registry_key"]
