"""
stitch: config schema

File: src/stitch/config/schema.py

Purpose
- Define the ``stitch.toml`` schema, its defaults, and strict validation.
- Materialize validated payloads into the frozen ``StitchConfig`` value.

Functional requirements
- Unknown sections/keys and wrongly typed values are reported together.
- Validation never mutates the caller's mapping.
"""

from __future__ import annotations

import copy
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Final, TypedDict

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS: Final[tuple[str, ...]] = ("console", "json")


class BuildConfig(TypedDict):
    namespace: str
    admin_acl: list[str]
    max_price: float


class ObservabilityConfig(TypedDict):
    log_level: str
    log_format: str


class StitchConfigDict(TypedDict):
    build: BuildConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[StitchConfigDict] = {
    "build": {
        "namespace": "",
        "admin_acl": [],
        "max_price": 0.0,
    },
    "observability": {
        "log_level": "WARNING",
        "log_format": "console",
    },
}


@dataclass(frozen=True, slots=True)
class BuildSettings:
    """Initial scalar settings of a build context."""

    namespace: str = ""
    admin_acl: tuple[str, ...] = ()
    max_price: float = 0.0


@dataclass(frozen=True, slots=True)
class ObservabilitySettings:
    log_level: str = "WARNING"
    log_format: str = "console"


@dataclass(frozen=True, slots=True)
class StitchConfig:
    build: BuildSettings = field(default_factory=BuildSettings)
    observability: ObservabilitySettings = field(default_factory=ObservabilitySettings)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> StitchConfig:
        validated = assert_valid_config(payload)
        build = validated["build"]
        observability = validated["observability"]
        return cls(
            build=BuildSettings(
                namespace=build["namespace"],
                admin_acl=tuple(build["admin_acl"]),
                max_price=float(build["max_price"]),
            ),
            observability=ObservabilitySettings(
                log_level=observability["log_level"],
                log_format=observability["log_format"],
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "build": {
                "namespace": self.build.namespace,
                "admin_acl": list(self.build.admin_acl),
                "max_price": self.build.max_price,
            },
            "observability": {
                "log_level": self.observability.log_level,
                "log_format": self.observability.log_format,
            },
        }


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> StitchConfigDict:
    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto ``base`` without mutating either input."""

    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in overlay.items():
        existing = merged.get(key)
        if isinstance(existing, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_config(existing, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def validate_config(config: Mapping[str, object]) -> tuple[ConfigValidationIssue, ...]:
    issues = _IssueCollector()
    if not isinstance(config, Mapping):
        issues.add("<root>", f"expected table, got {type(config).__name__}")
        return issues.items()

    _reject_unknown_keys(config, set(DEFAULT_CONFIG), "<root>", issues)

    build = _section(config, "build", issues)
    if build is not None:
        _reject_unknown_keys(build, set(DEFAULT_CONFIG["build"]), "build", issues)
        if "namespace" in build:
            _as_str(build["namespace"], "build.namespace", issues)
        if "admin_acl" in build:
            _as_str_list(build["admin_acl"], "build.admin_acl", issues)
        if "max_price" in build:
            _as_non_negative_number(build["max_price"], "build.max_price", issues)

    observability = _section(config, "observability", issues)
    if observability is not None:
        _reject_unknown_keys(
            observability, set(DEFAULT_CONFIG["observability"]), "observability", issues
        )
        if "log_level" in observability:
            level = _as_str(observability["log_level"], "observability.log_level", issues)
            if level is not None and level.upper() not in LOG_LEVELS:
                issues.add(
                    "observability.log_level",
                    f"must be one of: {', '.join(LOG_LEVELS)}",
                )
        if "log_format" in observability:
            fmt = _as_str(observability["log_format"], "observability.log_format", issues)
            if fmt is not None and fmt not in LOG_FORMATS:
                issues.add(
                    "observability.log_format",
                    f"must be one of: {', '.join(LOG_FORMATS)}",
                )

    return issues.items()


def assert_valid_config(config: Mapping[str, object]) -> dict[str, Any]:
    """Return the config merged over defaults, or raise ``ConfigValidationError``."""

    issues = validate_config(config)
    if issues:
        raise ConfigValidationError(issues)
    merged = merge_config(default_config(), config)
    level = merged["observability"]["log_level"]
    merged["observability"]["log_level"] = level.upper()
    return merged


def _section(
    config: Mapping[str, object], name: str, issues: _IssueCollector
) -> Mapping[str, object] | None:
    if name not in config:
        return None
    value = config[name]
    if not isinstance(value, Mapping):
        issues.add(name, f"expected table, got {type(value).__name__}")
        return None
    return value


def _reject_unknown_keys(
    payload: Mapping[str, object], allowed: set[str], path: str, issues: _IssueCollector
) -> None:
    for key in sorted(str(item) for item in payload):
        if key not in allowed:
            issues.add(f"{path}.{key}" if path != "<root>" else key, "unknown key")


def _as_str(value: object, path: str, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    return value


def _as_str_list(value: object, path: str, issues: _IssueCollector) -> list[str] | None:
    if not isinstance(value, (list, tuple)):
        issues.add(path, f"expected array of strings, got {type(value).__name__}")
        return None
    parsed: list[str] = []
    for index, item in enumerate(value):
        text = _as_str(item, f"{path}[{index}]", issues)
        if text is not None:
            parsed.append(text)
    return parsed


def _as_non_negative_number(value: object, path: str, issues: _IssueCollector) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        issues.add(path, f"expected number, got {type(value).__name__}")
        return None
    parsed = float(value)
    if not math.isfinite(parsed) or parsed < 0:
        issues.add(path, "must be a finite number >= 0")
        return None
    return parsed


__all__ = [
    "DEFAULT_CONFIG",
    "LOG_FORMATS",
    "LOG_LEVELS",
    "BuildSettings",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ObservabilitySettings",
    "StitchConfig",
    "StitchConfigDict",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]
