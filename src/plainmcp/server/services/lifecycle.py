# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Connection lifecycle: ``initialize``, ``ping``, and client notifications."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..notifications import NotificationFlags
from ... import types
from ...configuration import Configuration
from ...context import Context
from ...utils import get_logger
from ...versioning import features_for, negotiate_version, prune_implementation


@dataclass(slots=True)
class ServerInfo:
    """Identity advertised in ``serverInfo``."""

    name: str
    version: str
    title: str | None = None
    description: str | None = None
    website_url: str | None = None
    icons: list[Any] | None = None
    instructions: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name, "version": self.version}
        if self.title is not None:
            payload["title"] = self.title
        if self.description is not None:
            payload["description"] = self.description
        if self.website_url is not None:
            payload["websiteUrl"] = self.website_url
        if self.icons is not None:
            payload["icons"] = [
                types.Icon.model_validate(icon).model_dump(mode="json", exclude_none=True) for icon in self.icons
            ]
        payload.update(self.extra)
        return payload


class LifecycleService:
    def __init__(self, *, info: ServerInfo, configuration: Configuration, flags: NotificationFlags) -> None:
        self._info = info
        self._configuration = configuration
        self._flags = flags
        self._logger = get_logger("plainmcp.lifecycle")

    @property
    def info(self) -> ServerInfo:
        return self._info

    def capabilities(self) -> dict[str, Any]:
        caps = types.ServerCapabilities(
            tools=types.ToolsCapability(listChanged=self._flags.tools_changed),
            prompts=types.PromptsCapability(listChanged=self._flags.prompts_changed),
            resources=types.ResourcesCapability(listChanged=self._flags.resources_changed),
        )
        return caps.model_dump(by_alias=True, mode="json", exclude_none=True)

    def initialize(self, params: dict[str, Any], context: Context) -> dict[str, Any]:
        requested = params.get("protocolVersion")
        version = negotiate_version(requested, self._configuration.protocol_version)
        if requested != version:
            self._logger.info("Client requested protocol %r; negotiated %s", requested, version)

        client_info = params.get("clientInfo")
        capabilities = params.get("capabilities")
        context.peer.record_initialize(
            version,
            client_info if isinstance(client_info, Mapping) else None,
            capabilities if isinstance(capabilities, Mapping) else None,
        )

        features = features_for(version)
        result: dict[str, Any] = {
            "protocolVersion": version,
            "capabilities": self.capabilities(),
            "serverInfo": prune_implementation(self._info.as_payload(), features),
        }
        if self._info.instructions and features.instructions:
            result["instructions"] = self._info.instructions
        return result

    def ping(self, params: dict[str, Any], context: Context) -> dict[str, Any]:
        return {}

    def initialized(self, params: dict[str, Any], context: Context) -> None:
        context.peer.mark_initialized()
        self._logger.debug("Peer initialized (session=%s)", context.peer.session_id)

    def cancelled(self, params: dict[str, Any], context: Context) -> None:
        self._logger.debug("Client cancelled request %r: %s", params.get("requestId"), params.get("reason"))

    def client_list_changed(self, params: dict[str, Any], context: Context) -> None:
        self._logger.debug("Ignoring client-sent %s", context.method)


__all__ = ["LifecycleService", "ServerInfo"]
