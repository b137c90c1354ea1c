"""Stable constants shared by the builder surface and the exported graph."""

from __future__ import annotations

from typing import Final

# Reserved label name of the public internet sentinel.
PUBLIC_INTERNET_LABEL: Final[str] = "public"

# Hostnames are ``<name>.q`` for a label and ``<k>.<name>.q`` for its k-th replica.
HOSTNAME_SUFFIX: Final[str] = ".q"

# Machine roles assigned by the deployment helpers.
ROLE_MASTER: Final[str] = "Master"
ROLE_WORKER: Final[str] = "Worker"

# Top-level fields of the exported graph, in canonical order.
EXPORT_FIELDS: Final[tuple[str, ...]] = (
    "labels",
    "connections",
    "machines",
    "placements",
    "invariants",
    "namespace",
    "adminACL",
    "maxPrice",
)

GITHUB_API_URL: Final[str] = "https://api.github.com"

__all__ = [
    "EXPORT_FIELDS",
    "GITHUB_API_URL",
    "HOSTNAME_SUFFIX",
    "PUBLIC_INTERNET_LABEL",
    "ROLE_MASTER",
    "ROLE_WORKER",
]
