"""
stitch config package public API.

Purpose
- Export config loading/validation entrypoints and public error types.

Functional requirements
- Support loading from ``stitch.toml`` + ``STITCH_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from stitch.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    load_config,
)
from stitch.config.schema import (
    DEFAULT_CONFIG,
    BuildSettings,
    ConfigValidationError,
    ConfigValidationIssue,
    ObservabilitySettings,
    StitchConfig,
    assert_valid_config,
    default_config,
    merge_config,
    validate_config,
)

__all__ = [
    "BuildSettings",
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "ObservabilitySettings",
    "StitchConfig",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "load_config",
    "merge_config",
    "validate_config",
]
