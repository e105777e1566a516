# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Resource capability service.

Handles ``resources/list``, ``resources/templates/list``, and
``resources/read``.  A read resolves static resources first and then tries
templates in registration order; an unknown URI is reported with the MCP
resource-not-found code.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from ..adapters import normalize_resource_payload
from ..pagination import cursor_from, paginate_sequence
from ..registry import CapabilityKind, CapabilityRegistry
from ... import types
from ...configuration import Configuration
from ...context import Context
from ...exceptions import RESOURCE_NOT_FOUND, CapabilityNotFoundError, InvalidParamsError
from ...resource import ResourceSpec, extract_resource_spec
from ...resource_template import ResourceTemplateSpec, extract_resource_template_spec
from ...utils.callables import call_handler
from ...versioning import prune_definition


def _icons(raw: list[Any] | None) -> list[types.Icon] | None:
    return [types.Icon.model_validate(icon) for icon in raw] if raw is not None else None


class ResourcesService:
    def __init__(self, *, registry: CapabilityRegistry, configuration: Configuration) -> None:
        self._registry = registry
        self._configuration = configuration

    @property
    def uris(self) -> list[str]:
        return self._registry.keys(CapabilityKind.RESOURCE)

    @property
    def uri_templates(self) -> list[str]:
        return self._registry.keys(CapabilityKind.RESOURCE_TEMPLATE)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_resource(self, target: ResourceSpec | Callable[..., Any], *, replace: bool = False) -> ResourceSpec:
        spec = target if isinstance(target, ResourceSpec) else extract_resource_spec(target)
        if spec is None:
            raise TypeError("register_resource() expects a ResourceSpec or a function decorated with @resource")
        self._registry.register(CapabilityKind.RESOURCE, spec, replace=replace)
        return spec

    def unregister_resource(self, uri: str) -> ResourceSpec:
        return self._registry.unregister(CapabilityKind.RESOURCE, uri)

    def register_template(
        self, target: ResourceTemplateSpec | Callable[..., Any], *, replace: bool = False
    ) -> ResourceTemplateSpec:
        spec = target if isinstance(target, ResourceTemplateSpec) else extract_resource_template_spec(target)
        if spec is None:
            raise TypeError(
                "register_resource_template() expects a ResourceTemplateSpec or a function decorated "
                "with @resource_template"
            )
        self._registry.register(CapabilityKind.RESOURCE_TEMPLATE, spec, replace=replace)
        return spec

    def unregister_template(self, uri_template: str) -> ResourceTemplateSpec:
        return self._registry.unregister(CapabilityKind.RESOURCE_TEMPLATE, uri_template)

    # ------------------------------------------------------------------
    # Wire representation
    # ------------------------------------------------------------------

    @staticmethod
    def definition(spec: ResourceSpec) -> types.Resource:
        return types.Resource(
            uri=spec.uri,
            name=spec.name or spec.uri,
            title=spec.title,
            description=spec.description,
            mimeType=spec.mime_type,
            size=spec.size,
            icons=_icons(spec.icons),
            _meta=spec.meta,
        )

    @staticmethod
    def template_definition(spec: ResourceTemplateSpec) -> types.ResourceTemplate:
        return types.ResourceTemplate(
            uriTemplate=spec.uri_template,
            name=spec.name or spec.uri_template,
            title=spec.title,
            description=spec.description,
            mimeType=spec.mime_type,
            icons=_icons(spec.icons),
            _meta=spec.meta,
        )

    # ------------------------------------------------------------------
    # Built-in handlers
    # ------------------------------------------------------------------

    def list_resources(self, params: dict[str, Any], context: Context) -> dict[str, Any]:
        return self._list(params, context, CapabilityKind.RESOURCE, "resources", self.definition)

    def list_templates(self, params: dict[str, Any], context: Context) -> dict[str, Any]:
        return self._list(
            params,
            context,
            CapabilityKind.RESOURCE_TEMPLATE,
            "resourceTemplates",
            self.template_definition,
        )

    def _list(
        self,
        params: dict[str, Any],
        context: Context,
        kind: CapabilityKind,
        key: str,
        build: Callable[[Any], Any],
    ) -> dict[str, Any]:
        features = context.peer.features(self._configuration.protocol_version)
        page, next_cursor = paginate_sequence(
            self._registry.list(kind), cursor_from(params), limit=self._configuration.page_size
        )
        result: dict[str, Any] = {
            key: [
                prune_definition(build(spec).model_dump(by_alias=True, mode="json", exclude_none=True), features)
                for spec in page
            ]
        }
        if next_cursor is not None:
            result["nextCursor"] = next_cursor
        return result

    def read(self, params: dict[str, Any], context: Context) -> dict[str, Any]:
        uri = params.get("uri")
        if not isinstance(uri, str) or not uri:
            raise InvalidParamsError("Invalid params: 'uri' must be a non-empty string")
        return self.read_uri(uri, context.server_context).model_dump(by_alias=True, mode="json", exclude_none=True)

    def read_uri(self, uri: str, server_context: Any = None) -> types.ReadResourceResult:
        spec: ResourceSpec | None = self._registry.find(CapabilityKind.RESOURCE, uri)
        if spec is not None and spec.fn is not None:
            payload = call_handler(spec.fn, {}, server_context=server_context)
            return normalize_resource_payload(uri, spec.mime_type, payload)

        for template in self._registry.list(CapabilityKind.RESOURCE_TEMPLATE):
            if template.fn is None:
                continue
            variables = template.match(uri)
            if variables is None:
                continue
            payload = call_handler(template.fn, variables, server_context=server_context)
            return normalize_resource_payload(uri, template.mime_type, payload)

        raise CapabilityNotFoundError("resource", uri, code=RESOURCE_NOT_FOUND)


__all__ = ["ResourcesService"]
