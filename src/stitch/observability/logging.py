"""Structured logging setup for stitch, backed by ``structlog``.

Library modules obtain loggers with ``structlog.get_logger(__name__)`` and
emit event-name messages with keyword fields. Nothing is configured at
import time; applications call ``configure_logging`` once.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Final, TextIO

import structlog

if TYPE_CHECKING:
    from stitch.config.schema import ObservabilitySettings

_DEFAULT_LEVEL: Final[str] = "WARNING"
_FORMATS: Final[frozenset[str]] = frozenset({"console", "json"})


def configure_logging(
    level: int | str = _DEFAULT_LEVEL,
    *,
    fmt: str = "console",
    stream: TextIO | None = None,
) -> None:
    """Configure structlog to render filtered events to ``stream`` (stderr by default)."""

    parsed_level = _parse_log_level(level)
    if fmt not in _FORMATS:
        raise ValueError(f"unsupported log format {fmt!r}; expected one of: console, json")

    renderer: structlog.types.Processor
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(parsed_level),
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )


def configure_from_settings(
    settings: ObservabilitySettings, *, stream: TextIO | None = None
) -> None:
    """Apply the ``[observability]`` section of a loaded ``StitchConfig``."""

    configure_logging(settings.log_level, fmt=settings.log_format, stream=stream)


def reset_logging() -> None:
    """Restore structlog's default configuration."""

    structlog.reset_defaults()


def _parse_log_level(value: int | str) -> int:
    if isinstance(value, int):
        return value

    if not isinstance(value, str):
        raise ValueError(f"level must be int or str, got {type(value).__name__}")

    normalized = value.strip().upper()
    parsed = logging.getLevelName(normalized)
    if isinstance(parsed, int):
        return parsed

    raise ValueError(f"unsupported logging level {value!r}")


__all__ = [
    "configure_from_settings",
    "configure_logging",
    "reset_logging",
]
