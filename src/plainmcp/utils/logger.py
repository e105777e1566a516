# ==============================================================================
#                  © 2025 Dedalus Labs, Inc. and affiliates
#                            Licensed under MIT
#               github.com/dedalus-labs/openmcp-python/LICENSE
# ==============================================================================

"""Logging setup for plainmcp.

Everything goes to ``stderr`` so the stdio transport can own ``stdout`` for
protocol frames.  Output is colored text by default, plain text when
``NO_COLOR`` is set, and structured JSON when ``PLAINMCP_LOG_JSON`` is truthy.
A custom serializer (for example ``orjson``) can be plugged in for JSON output
without adding a dependency here.
"""

from __future__ import annotations

from collections.abc import Callable
import json
import logging
import os
from typing import Any, ClassVar, Final


# ANSI color codes for terminal output
RESET: Final[str] = "\033[0m"

DEBUG_COLOR: Final[str] = "\033[36m"
INFO_COLOR: Final[str] = "\033[32m"
WARNING_COLOR: Final[str] = "\033[33m"
ERROR_COLOR: Final[str] = "\033[1;31m"
CRITICAL_COLOR: Final[str] = "\033[1;35m"
LOGGER_COLOR: Final[str] = "\033[94m"

DEFAULT_LOGGER_NAME: Final[str] = "plainmcp"
ENV_LOG_LEVEL: Final[str] = "PLAINMCP_LOG_LEVEL"
ENV_LOG_JSON: Final[str] = "PLAINMCP_LOG_JSON"
ENV_NO_COLOR: Final[str] = "NO_COLOR"
DEFAULT_FORMAT: Final[str] = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DEFAULT_DATEFMT: Final[str] = "%Y-%m-%d %H:%M:%S"

JsonSerializer = Callable[[dict[str, Any]], str]
PayloadTransformer = Callable[[dict[str, Any]], dict[str, Any]]

_BUILTIN_RECORD_KEYS: set[str] = set(logging.makeLogRecord({}).__dict__) | {"context", "message", "asctime"}


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level and logger name.

    Override LEVEL_COLORS to customize colors for each log level.
    """

    LEVEL_COLORS: ClassVar[dict[str, str]] = {
        "DEBUG": DEBUG_COLOR,
        "INFO": INFO_COLOR,
        "WARNING": WARNING_COLOR,
        "ERROR": ERROR_COLOR,
        "CRITICAL": CRITICAL_COLOR,
    }

    def format(self, record: logging.LogRecord) -> str:
        orig_levelname = record.levelname
        orig_name = record.name

        record.levelname = f"{self.LEVEL_COLORS.get(orig_levelname, '')}{orig_levelname}{RESET}"
        record.name = f"{LOGGER_COLOR}{orig_name}{RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = orig_levelname
            record.name = orig_name


class PlainMCPHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """StreamHandler installed by :func:`setup_logger` (writes to ``stderr``)."""


class StructuredJSONFormatter(logging.Formatter):
    """Serialize log records into JSON using a user-provided serializer."""

    def __init__(
        self,
        serializer: JsonSerializer,
        *,
        datefmt: str | None = None,
        payload_transformer: PayloadTransformer | None = None,
    ) -> None:
        super().__init__(datefmt=datefmt)
        self._serializer = serializer
        self._transformer = payload_transformer or _default_payload_transformer

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
            "process": record.process,
            "thread": record.thread,
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        extra: dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key == "context" and isinstance(value, dict):
                extra.update(value)
                continue
            if key in _BUILTIN_RECORD_KEYS or key.startswith("_structured_"):
                continue
            extra.setdefault(key, value)
        if extra:
            payload["context"] = extra

        return self._serializer(self._transformer(payload))


def _default_json_serializer(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, default=str)


def _default_payload_transformer(payload: dict[str, Any]) -> dict[str, Any]:
    return payload


def _has_plainmcp_handler(root: logging.Logger) -> bool:
    return any(isinstance(handler, PlainMCPHandler) for handler in root.handlers)


def _read_bool_env(key: str) -> bool:
    value = os.getenv(key)
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _resolve_level(level: int | str | None) -> int:
    if level is None:
        override = os.getenv(ENV_LOG_LEVEL)
        if not override:
            return logging.INFO
        level = override

    if isinstance(level, int):
        return level

    resolved = logging.getLevelName(str(level).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logger(
    *,
    level: int | str | None = None,
    use_json: bool | None = None,
    use_color: bool | None = None,
    json_serializer: JsonSerializer | None = None,
    payload_transformer: PayloadTransformer | None = None,
    fmt: str | None = None,
    datefmt: str | None = DEFAULT_DATEFMT,
    force: bool = False,
) -> None:
    """Configure the root logger.

    Args:
        level: Override the log level. Falls back to ``PLAINMCP_LOG_LEVEL`` then
            ``logging.INFO``.
        use_json: Enable JSON output. Defaults to ``PLAINMCP_LOG_JSON``.
        use_color: Enable colored output. Defaults to ``True`` unless ``NO_COLOR``
            is set or JSON output is enabled.
        json_serializer: Callable that turns the payload dict into a string.
        payload_transformer: Callable applied to the payload before serialization.
        fmt: Format string for text output.
        datefmt: Date format for text and JSON output.
        force: Replace a handler installed by an earlier call.
    """
    root = logging.getLogger()

    if _has_plainmcp_handler(root) and not force:
        return

    if force:
        for handler in list(root.handlers):
            if isinstance(handler, PlainMCPHandler):
                root.removeHandler(handler)
                handler.close()

    resolved_level = _resolve_level(level)
    root.setLevel(resolved_level)

    resolved_use_json = use_json if use_json is not None else _read_bool_env(ENV_LOG_JSON)

    if use_color is not None:
        resolved_use_color = use_color
    elif os.getenv(ENV_NO_COLOR):
        resolved_use_color = False
    else:
        resolved_use_color = not resolved_use_json

    handler = PlainMCPHandler()
    handler.setLevel(resolved_level)

    formatter: logging.Formatter
    if resolved_use_json:
        serializer = json_serializer or _default_json_serializer
        formatter = StructuredJSONFormatter(serializer, datefmt=datefmt, payload_transformer=payload_transformer)
    elif resolved_use_color:
        formatter = ColoredFormatter(fmt or DEFAULT_FORMAT, datefmt=datefmt)
    else:
        formatter = logging.Formatter(fmt or DEFAULT_FORMAT, datefmt=datefmt)

    handler.setFormatter(formatter)
    root.addHandler(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a named logger, installing the default handler on first use."""
    root = logging.getLogger()
    if not _has_plainmcp_handler(root):
        setup_logger()
    return logging.getLogger(name or DEFAULT_LOGGER_NAME)


__all__ = [
    "DEFAULT_LOGGER_NAME",
    "ColoredFormatter",
    "PlainMCPHandler",
    "StructuredJSONFormatter",
    "get_logger",
    "setup_logger",
]
