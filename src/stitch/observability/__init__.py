"""Public observability primitives: structured logging configuration."""

from stitch.observability.logging import (
    configure_from_settings,
    configure_logging,
    reset_logging,
)

__all__ = [
    "configure_from_settings",
    "configure_logging",
    "reset_logging",
]
