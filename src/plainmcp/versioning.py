# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Protocol version negotiation and per-version field gating.

A client proposes a protocol revision in ``initialize``; the server echoes it
when it is supported and no newer than the configured maximum, otherwise it
answers with the maximum.  Every optional field that later revisions added is
tied to a :class:`VersionFeatures` switch so responses for an older peer omit
fields that peer cannot understand instead of failing the request.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cache
from typing import Any, Final

from mcp.types import LATEST_PROTOCOL_VERSION


SUPPORTED_PROTOCOL_VERSIONS: Final[tuple[str, ...]] = (
    "2024-11-05",
    "2025-03-26",
    "2025-06-18",
    "2025-11-25",
)

if LATEST_PROTOCOL_VERSION in SUPPORTED_PROTOCOL_VERSIONS:
    DEFAULT_PROTOCOL_VERSION: Final[str] = LATEST_PROTOCOL_VERSION
else:  # pragma: no cover - depends on the installed SDK
    DEFAULT_PROTOCOL_VERSION = SUPPORTED_PROTOCOL_VERSIONS[-1]


@dataclass(frozen=True)
class VersionFeatures:
    """Feature switches tied to a negotiated protocol version."""

    version: str
    instructions: bool
    tool_annotations: bool
    titles: bool
    output_schema: bool
    structured_content: bool
    meta: bool
    icons: bool
    website_url: bool
    server_description: bool


def is_supported(version: str | None) -> bool:
    return version in SUPPORTED_PROTOCOL_VERSIONS


def _rank(version: str) -> int:
    return SUPPORTED_PROTOCOL_VERSIONS.index(version)


@cache
def features_for(version: str) -> VersionFeatures:
    """Return the feature switches for *version*.

    Raises:
        ValueError: If *version* is not one of :data:`SUPPORTED_PROTOCOL_VERSIONS`.
    """
    if not is_supported(version):
        raise ValueError(f"Unsupported protocol version: {version}")

    rank = _rank(version)
    since_2025_03 = rank >= _rank("2025-03-26")
    since_2025_06 = rank >= _rank("2025-06-18")
    since_2025_11 = rank >= _rank("2025-11-25")
    return VersionFeatures(
        version=version,
        instructions=since_2025_03,
        tool_annotations=since_2025_03,
        titles=since_2025_06,
        output_schema=since_2025_06,
        structured_content=since_2025_06,
        meta=since_2025_06,
        icons=since_2025_11,
        website_url=since_2025_11,
        server_description=since_2025_11,
    )


def negotiate_version(requested: Any, maximum: str = DEFAULT_PROTOCOL_VERSION) -> str:
    """Confirm *requested* or downgrade to *maximum*.

    A supported request at or below the maximum is echoed back.  Anything else
    (unknown strings, newer revisions, non-string values) yields *maximum*, and
    the client decides whether it can continue with that revision.
    """
    if isinstance(requested, str) and is_supported(requested) and _rank(requested) <= _rank(maximum):
        return requested
    return maximum


# ---------------------------------------------------------------------------
# Pruning helpers (operate on JSON-ready dictionaries)
# ---------------------------------------------------------------------------


def prune_implementation(info: dict[str, Any], features: VersionFeatures) -> dict[str, Any]:
    """Drop ``serverInfo`` fields the negotiated revision does not define."""
    pruned = dict(info)
    if not features.titles:
        pruned.pop("title", None)
    if not features.website_url:
        pruned.pop("websiteUrl", None)
    if not features.icons:
        pruned.pop("icons", None)
    if not features.server_description:
        pruned.pop("description", None)
    return pruned


def prune_definition(definition: dict[str, Any], features: VersionFeatures) -> dict[str, Any]:
    """Drop capability definition fields the negotiated revision does not define."""
    pruned = dict(definition)
    if not features.titles:
        pruned.pop("title", None)
        annotations = pruned.get("annotations")
        if isinstance(annotations, dict):
            pruned["annotations"] = {key: value for key, value in annotations.items() if key != "title"}
    if not features.tool_annotations:
        pruned.pop("annotations", None)
    if not features.output_schema:
        pruned.pop("outputSchema", None)
    if not features.icons:
        pruned.pop("icons", None)
    if not features.meta:
        pruned.pop("_meta", None)
    return pruned


def prune_call_result(result: dict[str, Any], features: VersionFeatures) -> dict[str, Any]:
    pruned = dict(result)
    if not features.structured_content:
        pruned.pop("structuredContent", None)
    if not features.meta:
        pruned.pop("_meta", None)
    return pruned


__all__ = [
    "DEFAULT_PROTOCOL_VERSION",
    "SUPPORTED_PROTOCOL_VERSIONS",
    "VersionFeatures",
    "features_for",
    "is_supported",
    "negotiate_version",
    "prune_call_result",
    "prune_definition",
    "prune_implementation",
]
