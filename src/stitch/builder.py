"""Top-level builder functions used by authored stitch programs.

Every function here acts on the active build context: the one bound by the
innermost ``build_session`` block, or the process-default context.
``public_internet`` resolves to the active context's sentinel label.
"""

from __future__ import annotations

from collections.abc import Iterable

from stitch.context import current_context
from stitch.domain.models import (
    Assertion,
    Connection,
    Invariant,
    Label,
    Machine,
    Placement,
    PlacementRule,
    Range,
)


def connect(ports: Range | int, from_: Label, to: Label) -> Connection:
    """Allow traffic from ``from_`` to ``to`` on ``ports`` (a range or a single port)."""
    return current_context().connect(ports, from_, to)


def place(target: Label, rule: PlacementRule) -> Placement:
    return current_context().place(target, rule)


def assert_(invariant: Invariant, desired: bool) -> Assertion:
    return current_context().assert_(invariant, desired)


def deploy_machines(machines: Machine | Iterable[Machine]) -> None:
    current_context().deploy_machines(machines)


def deploy_masters(n: int, machine: Machine) -> None:
    current_context().deploy_masters(n, machine)


def deploy_workers(n: int, machine: Machine) -> None:
    current_context().deploy_workers(n, machine)


def set_namespace(namespace: str) -> None:
    current_context().set_namespace(namespace)


def set_admin_acl(acl: Iterable[str]) -> None:
    current_context().set_admin_acl(acl)


def set_max_price(max_price: float) -> None:
    current_context().set_max_price(max_price)


def __getattr__(name: str) -> Label:
    if name == "public_internet":
        return current_context().public_internet
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "assert_",
    "connect",
    "deploy_machines",
    "deploy_masters",
    "deploy_workers",
    "place",
    "public_internet",  # noqa: F822
    "set_admin_acl",
    "set_max_price",
    "set_namespace",
]
