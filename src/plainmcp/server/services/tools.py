# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Tool capability service: ``tools/list`` and ``tools/call``."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any

from ..adapters import normalize_tool_result
from ..pagination import cursor_from, paginate_sequence
from ..registry import CapabilityKind, CapabilityRegistry
from ... import types
from ...configuration import Configuration
from ...context import Context
from ...exceptions import CapabilityNotFoundError, InvalidParamsError
from ...tool import ToolAnnotations, ToolSpec, build_tool_spec, extract_tool_spec
from ...utils.callables import call_handler
from ...utils.schema import (
    infer_input_schema,
    normalize_input_schema,
    normalize_output_schema,
    validate_arguments,
)
from ...versioning import prune_call_result, prune_definition


class OutputSchemaError(RuntimeError):
    """Raised when a tool's structured content does not match its output schema."""


class ToolsService:
    """Validates, stores, lists, and invokes tools."""

    def __init__(self, *, registry: CapabilityRegistry, configuration: Configuration) -> None:
        self._registry = registry
        self._configuration = configuration

    @property
    def names(self) -> list[str]:
        return self._registry.keys(CapabilityKind.TOOL)

    def register(self, target: ToolSpec | Callable[..., Any], *, replace: bool = False) -> ToolSpec:
        spec = target if isinstance(target, ToolSpec) else extract_tool_spec(target)
        if spec is None:
            spec = build_tool_spec(target)
        resolved = self._resolve(spec)
        self._registry.register(CapabilityKind.TOOL, resolved, replace=replace)
        return resolved

    def unregister(self, name: str) -> ToolSpec:
        return self._registry.unregister(CapabilityKind.TOOL, name)

    def _resolve(self, spec: ToolSpec) -> ToolSpec:
        input_schema = spec.input_schema if spec.input_schema is not None else infer_input_schema(spec.fn)
        return replace(
            spec,
            input_schema=normalize_input_schema(input_schema),
            output_schema=normalize_output_schema(spec.output_schema),
            annotations=ToolAnnotations.coerce(spec.annotations),
        )

    # ------------------------------------------------------------------
    # Wire representation
    # ------------------------------------------------------------------

    @staticmethod
    def definition(spec: ToolSpec) -> types.Tool:
        icons = [types.Icon.model_validate(icon) for icon in spec.icons] if spec.icons is not None else None
        return types.Tool(
            name=spec.name,
            title=spec.title,
            description=spec.description or None,
            inputSchema=spec.input_schema or {"type": "object"},
            outputSchema=spec.output_schema,
            annotations=spec.annotations.to_model(),
            icons=icons,
            _meta=spec.meta,
        )

    # ------------------------------------------------------------------
    # Built-in handlers
    # ------------------------------------------------------------------

    def list_tools(self, params: dict[str, Any], context: Context) -> dict[str, Any]:
        features = context.peer.features(self._configuration.protocol_version)
        specs = self._registry.list(CapabilityKind.TOOL)
        page, next_cursor = paginate_sequence(specs, cursor_from(params), limit=self._configuration.page_size)

        tools = [
            prune_definition(self.definition(spec).model_dump(by_alias=True, mode="json", exclude_none=True), features)
            for spec in page
        ]
        result: dict[str, Any] = {"tools": tools}
        if next_cursor is not None:
            result["nextCursor"] = next_cursor
        return result

    def call_tool(self, params: dict[str, Any], context: Context) -> dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str):
            raise InvalidParamsError("Invalid params: 'name' must be a string")
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, Mapping):
            raise InvalidParamsError("Invalid params: 'arguments' must be an object")

        spec: ToolSpec | None = self._registry.find(CapabilityKind.TOOL, name)
        if spec is None:
            raise CapabilityNotFoundError("tool", name)

        if self._configuration.validate_tool_call_arguments:
            validate_arguments(arguments, spec.input_schema or {"type": "object"}).raise_for_errors()

        result = normalize_tool_result(call_handler(spec.fn, arguments, server_context=context.server_context))
        if spec.output_schema is not None and not result.isError:
            self._check_output(spec, result)

        features = context.peer.features(self._configuration.protocol_version)
        return prune_call_result(result.model_dump(by_alias=True, mode="json", exclude_none=True), features)

    @staticmethod
    def _check_output(spec: ToolSpec, result: types.CallToolResult) -> None:
        if result.structuredContent is None:
            raise OutputSchemaError(f"Tool '{spec.name}' declares an output schema but returned no structured content")
        report = validate_arguments(result.structuredContent, spec.output_schema or {})
        if not report.ok:
            raise OutputSchemaError(f"Tool '{spec.name}' returned invalid structured content: {report.summary()}")


__all__ = ["OutputSchemaError", "ToolsService"]
