# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Prompt capability service: ``prompts/list`` and ``prompts/get``."""

from __future__ import annotations

from collections.abc import Callable, Mapping
import dataclasses
from typing import Any

from ..adapters import normalize_prompt_result
from ..pagination import cursor_from, paginate_sequence
from ..registry import CapabilityKind, CapabilityRegistry
from ... import types
from ...configuration import Configuration
from ...context import Context
from ...exceptions import CapabilityNotFoundError, InvalidArgumentsError, InvalidParamsError
from ...prompt import PromptSpec, build_prompt_spec, extract_prompt_spec, infer_arguments
from ...utils.callables import call_handler
from ...versioning import prune_definition


class PromptsService:
    def __init__(self, *, registry: CapabilityRegistry, configuration: Configuration) -> None:
        self._registry = registry
        self._configuration = configuration

    @property
    def names(self) -> list[str]:
        return self._registry.keys(CapabilityKind.PROMPT)

    def register(self, target: PromptSpec | Callable[..., Any], *, replace: bool = False) -> PromptSpec:
        spec = target if isinstance(target, PromptSpec) else extract_prompt_spec(target)
        if spec is None:
            spec = build_prompt_spec(target)
        if spec.arguments is None:
            spec = dataclasses.replace(spec, arguments=infer_arguments(spec.fn))
        self._registry.register(CapabilityKind.PROMPT, spec, replace=replace)
        return spec

    def unregister(self, name: str) -> PromptSpec:
        return self._registry.unregister(CapabilityKind.PROMPT, name)

    @staticmethod
    def definition(spec: PromptSpec) -> types.Prompt:
        arguments = [
            types.PromptArgument(name=arg.name, description=arg.description, required=arg.required)
            for arg in spec.arguments or ()
        ]
        icons = [types.Icon.model_validate(icon) for icon in spec.icons] if spec.icons is not None else None
        return types.Prompt(
            name=spec.name,
            title=spec.title,
            description=spec.description,
            arguments=arguments or None,
            icons=icons,
            _meta=spec.meta,
        )

    def list_prompts(self, params: dict[str, Any], context: Context) -> dict[str, Any]:
        features = context.peer.features(self._configuration.protocol_version)
        specs = self._registry.list(CapabilityKind.PROMPT)
        page, next_cursor = paginate_sequence(specs, cursor_from(params), limit=self._configuration.page_size)
        result: dict[str, Any] = {
            "prompts": [
                prune_definition(self.definition(spec).model_dump(by_alias=True, mode="json", exclude_none=True), features)
                for spec in page
            ]
        }
        if next_cursor is not None:
            result["nextCursor"] = next_cursor
        return result

    def get_prompt(self, params: dict[str, Any], context: Context) -> dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str):
            raise InvalidParamsError("Invalid params: 'name' must be a string")
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, Mapping):
            raise InvalidParamsError("Invalid params: 'arguments' must be an object")

        spec: PromptSpec | None = self._registry.find(CapabilityKind.PROMPT, name)
        if spec is None:
            raise CapabilityNotFoundError("prompt", name)

        missing = [arg.name for arg in spec.arguments or () if arg.required and arg.name not in arguments]
        mismatched = [
            {"path": key, "expected": "string", "actual": type(value).__name__}
            for key, value in arguments.items()
            if not isinstance(value, str)
        ]
        if missing or mismatched:
            raise InvalidArgumentsError(
                f"Invalid arguments for prompt '{name}'", missing=missing, mismatched=mismatched
            )

        rendered = call_handler(spec.fn, arguments, server_context=context.server_context)
        result = normalize_prompt_result(rendered, description=spec.description)
        return result.model_dump(by_alias=True, mode="json", exclude_none=True)


__all__ = ["PromptsService"]
