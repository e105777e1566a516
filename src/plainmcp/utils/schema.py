# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""JSON Schema handling for capability inputs and outputs.

Schemas are normalised once, at registration time: ``type`` defaults to
``"object"``, ``required`` entries and property names are coerced to strings
(so ``Enum`` members and symbolic keys behave like their textual form), and
any ``$ref`` that points outside the document is rejected.  Validation is then
a pure function of ``(arguments, schema)`` built on :mod:`jsonschema` and
collects every failure instead of stopping at the first.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, MutableMapping
from dataclasses import dataclass, field
from enum import Enum
import inspect
import types as pytypes
from typing import Any, get_type_hints

from jsonschema import Draft202012Validator
from jsonschema import exceptions as jsonschema_exceptions
from pydantic import TypeAdapter
from pydantic.errors import PydanticUserError
from typing_extensions import NotRequired, TypedDict

from ..exceptions import InvalidArgumentsError, SchemaError


__all__ = [
    "JsonSchema",
    "ValidationReport",
    "infer_input_schema",
    "normalize_input_schema",
    "normalize_output_schema",
    "validate_arguments",
    "validate_instance",
]


JsonSchema = dict[str, Any]

CONTEXT_PARAMETER = "server_context"
"""Handler parameter that receives the server context instead of an argument."""


@dataclass(slots=True)
class ValidationReport:
    """Every problem found while validating one argument mapping."""

    missing: list[str] = field(default_factory=list)
    mismatched: list[dict[str, Any]] = field(default_factory=list)
    other: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (self.missing or self.mismatched or self.other)

    def summary(self) -> str:
        parts: list[str] = []
        if self.missing:
            parts.append("missing required: " + ", ".join(self.missing))
        if self.mismatched:
            parts.append(
                "wrong type: "
                + ", ".join(f"{item['path']} (expected {item['expected']}, got {item['actual']})" for item in self.mismatched)
            )
        parts.extend(self.other)
        return "; ".join(parts) if parts else "valid"

    def raise_for_errors(self) -> None:
        if self.ok:
            return
        raise InvalidArgumentsError(
            f"Invalid arguments: {self.summary()}",
            missing=self.missing,
            mismatched=self.mismatched,
            errors=self.other,
        )


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------


def normalize_input_schema(schema: Mapping[str, Any] | None) -> JsonSchema:
    """Return a canonical, self-contained copy of *schema*.

    Raises:
        SchemaError: If the schema references an external document or is not a
            valid JSON Schema.
    """
    if schema is None:
        return {"type": "object"}
    if not isinstance(schema, Mapping):
        raise SchemaError(f"Schema must be a mapping, got {type(schema).__name__}")

    clone = _canonical(schema)
    clone.setdefault("type", "object")
    _reject_external_refs(clone, path="#")

    try:
        Draft202012Validator.check_schema(clone)
    except jsonschema_exceptions.SchemaError as exc:
        raise SchemaError(f"Invalid schema: {exc.message}") from exc
    return clone


def normalize_output_schema(schema: Mapping[str, Any] | None) -> JsonSchema | None:
    if schema is None:
        return None
    return normalize_input_schema(schema)


def _canonical_key(key: Any) -> str:
    if isinstance(key, Enum):
        key = key.value
    return str(key)


def _canonical(node: Any) -> Any:
    """Deep-copy *node*, coercing ``required`` entries and property names to ``str``."""
    if isinstance(node, Mapping):
        result: dict[str, Any] = {}
        for key, value in node.items():
            name = _canonical_key(key)
            if name == "required" and isinstance(value, (list, tuple, set, frozenset)):
                seen: list[str] = []
                for item in value:
                    text = _canonical_key(item)
                    if text not in seen:
                        seen.append(text)
                result[name] = seen
            elif name in {"properties", "patternProperties", "$defs", "definitions"} and isinstance(value, Mapping):
                result[name] = {_canonical_key(prop): _canonical(sub) for prop, sub in value.items()}
            else:
                result[name] = _canonical(value)
        return result
    if isinstance(node, (list, tuple)):
        return [_canonical(item) for item in node]
    if isinstance(node, Enum):
        return node.value
    return node


def _reject_external_refs(node: Any, *, path: str) -> None:
    if isinstance(node, Mapping):
        for key, value in node.items():
            if key in {"$ref", "$dynamicRef"} and isinstance(value, str) and not value.startswith("#"):
                raise SchemaError(f"External schema reference {value!r} at {path} is not allowed")
            _reject_external_refs(value, path=f"{path}/{key}")
    elif isinstance(node, list):
        for index, item in enumerate(node):
            _reject_external_refs(item, path=f"{path}/{index}")


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_arguments(arguments: Any, schema: Mapping[str, Any]) -> ValidationReport:
    """Validate *arguments* against *schema* and collect every failure."""
    report = ValidationReport()
    validator = Draft202012Validator(schema)

    for error in validator.iter_errors(arguments):
        path = _dotted(error.absolute_path)
        if error.validator == "required":
            instance = error.instance if isinstance(error.instance, Mapping) else {}
            for name in error.validator_value:
                if name in instance:
                    continue
                qualified = f"{path}.{name}" if path else str(name)
                if qualified not in report.missing:
                    report.missing.append(qualified)
        elif error.validator == "type":
            report.mismatched.append(
                {"path": path or "$", "expected": error.validator_value, "actual": _json_type(error.instance)}
            )
        else:
            report.other.append(f"{path or '$'}: {error.message}")
    return report


def validate_instance(instance: Any, schema: Mapping[str, Any]) -> None:
    """Raise :class:`InvalidArgumentsError` when *instance* does not satisfy *schema*."""
    validate_arguments(instance, schema).raise_for_errors()


def _dotted(path: Iterable[Any]) -> str:
    parts: list[str] = []
    for part in path:
        if isinstance(part, int):
            parts.append(f"[{part}]")
        elif parts:
            parts.append(f".{part}")
        else:
            parts.append(str(part))
    return "".join(parts)


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


# ---------------------------------------------------------------------------
# Inference from signatures
# ---------------------------------------------------------------------------


def infer_input_schema(fn: Callable[..., Any]) -> JsonSchema:
    """Build an object schema from *fn*'s keyword-capable parameters.

    Parameters without defaults become required.  The ``server_context``
    parameter is skipped because the dispatcher supplies it.  Callables taking
    ``*args``/``**kwargs`` get an open object schema.

    Raises:
        SchemaError: If pydantic cannot derive a schema from the annotations.
    """
    signature = inspect.signature(fn)
    hints = _resolved_hints(fn)
    annotations: dict[str, Any] = {}
    default_values: dict[str, Any] = {}

    for name, param in signature.parameters.items():
        if name == CONTEXT_PARAMETER:
            continue
        if param.kind not in (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY):
            return {"type": "object"}

        annotation = hints.get(name, param.annotation)
        if annotation is inspect.Parameter.empty or isinstance(annotation, str):
            annotation = Any
        if param.default is inspect.Parameter.empty:
            annotations[name] = annotation
        else:
            annotations[name] = NotRequired[annotation]
            default_values[name] = param.default

    if not annotations:
        return {"type": "object", "properties": {}, "additionalProperties": False}

    namespace = {"__annotations__": annotations}
    fn_name = getattr(fn, "__name__", "handler")
    typed_dict = pytypes.new_class(f"{fn_name.title()}Input", (TypedDict,), {}, lambda ns: ns.update(namespace))

    try:
        schema = TypeAdapter(typed_dict).json_schema()
    except (PydanticUserError, TypeError, ValueError) as exc:
        raise SchemaError(f"Unable to infer an input schema for {fn_name!r}; pass input_schema explicitly") from exc

    properties = schema.setdefault("properties", {})
    required: list[str] = []
    for name in annotations:
        properties.setdefault(name, {})
        if name in default_values:
            default = default_values[name]
            if default is None or isinstance(default, (str, int, float, bool)):
                properties[name].setdefault("default", default)
        else:
            required.append(name)

    schema["type"] = "object"
    schema["additionalProperties"] = False
    if required:
        schema["required"] = required
    else:
        schema.pop("required", None)
    _prune_titles(schema)
    return normalize_input_schema(schema)


def _prune_titles(node: Any) -> None:
    """Remove generated ``title`` annotations, keeping properties named ``title``."""
    if isinstance(node, MutableMapping):
        if isinstance(node.get("title"), str):
            node.pop("title")
        for value in node.values():
            _prune_titles(value)
    elif isinstance(node, list):
        for value in node:
            _prune_titles(value)


def _resolved_hints(fn: Callable[..., Any]) -> dict[str, Any]:
    """Evaluate string annotations (``from __future__ import annotations``) where possible."""
    try:
        return get_type_hints(fn, include_extras=True)
    except (NameError, TypeError, AttributeError):
        return {}
