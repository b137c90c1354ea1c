"""
stitch: declarative infrastructure graph builder.

Purpose
- Author-facing API for declaring containers, labels, connections,
  placements, machines and invariants, accumulated into a build context and
  exported as one graph for an external compiler/scheduler.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
- ``public_internet`` always resolves to the active context's sentinel label.
"""

from stitch.builder import (
    assert_,
    connect,
    deploy_machines,
    deploy_masters,
    deploy_workers,
    place,
    set_admin_acl,
    set_max_price,
    set_namespace,
)
from stitch.context import (
    BuildContext,
    BuildPhase,
    ExportedGraph,
    build_session,
    current_context,
    default_context,
    public_port_placements,
)
from stitch.domain.models import (
    ACLReachable,
    Assertion,
    Between,
    Connection,
    Container,
    Docker,
    Enough,
    Invariant,
    InvariantType,
    Label,
    LabelRule,
    Machine,
    MachineRule,
    Neighborship,
    Placement,
    Port,
    PortRange,
    Range,
    Reachable,
)
from stitch.keys import github_keys
from stitch.validation import (
    KeyLookupError,
    PublicInternetError,
    PublicInternetPortRangeError,
    PublicInternetSelfLoopError,
    StitchError,
)

__version__ = "0.1.0"


def __getattr__(name: str) -> Label:
    if name == "public_internet":
        return current_context().public_internet
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "ACLReachable",
    "Assertion",
    "Between",
    "BuildContext",
    "BuildPhase",
    "Connection",
    "Container",
    "Docker",
    "Enough",
    "ExportedGraph",
    "Invariant",
    "InvariantType",
    "KeyLookupError",
    "Label",
    "LabelRule",
    "Machine",
    "MachineRule",
    "Neighborship",
    "Placement",
    "Port",
    "PortRange",
    "PublicInternetError",
    "PublicInternetPortRangeError",
    "PublicInternetSelfLoopError",
    "Range",
    "Reachable",
    "StitchError",
    "assert_",
    "build_session",
    "connect",
    "current_context",
    "default_context",
    "deploy_machines",
    "deploy_masters",
    "deploy_workers",
    "github_keys",
    "place",
    "public_internet",  # noqa: F822
    "public_port_placements",
    "set_admin_acl",
    "set_max_price",
    "set_namespace",
]
