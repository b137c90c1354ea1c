"""Construction-time validation of declared connections.

Only two rules exist, both about the public internet sentinel:

- the sentinel may not be connected to itself;
- a connection touching the sentinel must name a single port, not a range.

Nothing else about the graph (reachability, capacity, schedulability) is
checked here.
"""

from __future__ import annotations

from stitch.domain.models import Label, Port, Range


class StitchError(ValueError):
    """Base class for errors raised while building a stitch graph."""


class PublicInternetError(StitchError):
    """Raised when a connection breaks a public internet rule."""


class PublicInternetSelfLoopError(PublicInternetError):
    """Raised when the public internet is connected to itself."""

    def __init__(self) -> None:
        super().__init__("cannot connect public internet to itself")


class PublicInternetPortRangeError(PublicInternetError):
    """Raised when a public internet connection spans more than one port."""

    def __init__(self, ports: Range) -> None:
        self.ports = ports
        super().__init__(
            f"public internet cannot connect on port ranges (got {ports.min}-{ports.max})"
        )


class KeyLookupError(StitchError):
    """Raised when SSH keys cannot be retrieved for a user."""


def coerce_ports(ports: Range | int) -> Range:
    """Box a raw port number into a single-port range."""
    if isinstance(ports, Range):
        return ports
    if isinstance(ports, bool) or not isinstance(ports, int):
        raise TypeError(f"ports must be a Range or an int, got {type(ports).__name__}")
    return Port(ports)


def validate_connection(ports: Range, from_: Label, to: Label) -> None:
    from_public = from_.is_public_internet
    to_public = to.is_public_internet
    if from_public and to_public:
        raise PublicInternetSelfLoopError()
    if (from_public or to_public) and not ports.is_port:
        raise PublicInternetPortRangeError(ports)


__all__ = [
    "KeyLookupError",
    "PublicInternetError",
    "PublicInternetPortRangeError",
    "PublicInternetSelfLoopError",
    "StitchError",
    "coerce_ports",
    "validate_connection",
]
