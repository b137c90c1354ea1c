"""Entity model of the stitch language with canonical export serialization.

Value entities (``Range``, ``Machine``, rules, ``Connection``, ``Placement``,
invariants and ``Assertion``) are frozen dataclasses. ``Label`` and
``Container`` carry identity (a unique name, a unique ID) and register with
the build context that created them, so they are plain slotted classes.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import TYPE_CHECKING, ClassVar, NoReturn, Protocol, assert_never

from stitch.constants import HOSTNAME_SUFFIX, PUBLIC_INTERNET_LABEL

if TYPE_CHECKING:
    from typing import Self

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]


class EntityRegistry(Protocol):
    """Subset of the build context that entity constructors depend on."""

    def unique_label_name(self, base: str) -> str: ...

    def next_container_id(self) -> int: ...

    def register_label(self, label: Label) -> None: ...


class CanonicalModel:
    """Mixin for canonical dict/json serialization."""

    def to_dict(self) -> dict[str, JSONValue]:
        _fail(self.__class__.__name__, "to_dict is not implemented for this model type")

    def to_json(self) -> str:
        return _canonical_json(self.to_dict())


def _fail(path: str, message: str) -> NoReturn:
    raise ValueError(f"{path}: {message}")


def _canonical_json(value: JSONValue) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _expect_object(
    value: object,
    path: str,
    *,
    required: set[str],
    optional: set[str] | None = None,
) -> dict[str, object]:
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")

    parsed: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            _fail(path, f"object keys must be strings, got {type(key).__name__}")
        parsed[key] = item

    allowed = required | (optional or set())
    unknown = sorted(key for key in parsed if key not in allowed)
    if unknown:
        _fail(path, f"unexpected fields: {unknown}")

    missing = sorted(key for key in required if key not in parsed)
    if missing:
        _fail(path, f"missing required fields: {missing}")

    return parsed


def _as_int(value: object, path: str, *, minimum: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        _fail(path, f"expected integer, got {type(value).__name__}")
    if minimum is not None and value < minimum:
        _fail(path, f"must be >= {minimum}")
    return value


def _as_text(value: object, path: str) -> str:
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    return value


def _as_optional_text(value: object, path: str) -> str | None:
    if value is None:
        return None
    return _as_text(value, path)


def _as_str_tuple(value: object, path: str) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, Iterable):
        _fail(path, f"expected array of strings, got {type(value).__name__}")
    return tuple(_as_text(item, f"{path}[{index}]") for index, item in enumerate(value))


def _as_range(value: object, path: str) -> Range:
    if isinstance(value, Range):
        return value
    parsed = _expect_object(value, path, required={"min", "max"})
    return Range(
        _as_int(parsed["min"], f"{path}.min"),
        _as_int(parsed["max"], f"{path}.max"),
    )


def _resolve_registry(context: EntityRegistry | None) -> EntityRegistry:
    if context is not None:
        return context
    from stitch.context import current_context

    return current_context()


@dataclass(frozen=True, slots=True)
class Range(CanonicalModel):
    """Inclusive integer interval. A ``max`` of 0 leaves the upper bound open."""

    min: int = 0
    max: int = 0

    def __post_init__(self) -> None:
        _as_int(self.min, "Range.min")
        _as_int(self.max, "Range.max")
        if self.max != 0 and self.min > self.max:
            _fail("Range", f"min ({self.min}) must be <= max ({self.max})")

    @property
    def is_port(self) -> bool:
        return self.min == self.max

    def accepts(self, value: float) -> bool:
        return self.min <= value and (self.max == 0 or value <= self.max)

    def to_dict(self) -> dict[str, JSONValue]:
        return {"min": self.min, "max": self.max}


PortRange = Range


def Port(port: int) -> Range:  # noqa: N802
    """Single-port range ``[port, port]``."""
    return Range(port, port)


@dataclass(frozen=True, slots=True, kw_only=True)
class Machine(CanonicalModel):
    """Machine template. Derive variants with ``with_role``; never mutate."""

    provider: str = ""
    role: str = ""
    region: str = ""
    size: str = ""
    cpu: Range = field(default_factory=Range)
    ram: Range = field(default_factory=Range)
    disk_size: int = 0
    keys: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        for name in ("provider", "role", "region", "size"):
            _as_text(getattr(self, name), f"Machine.{name}")
        object.__setattr__(self, "cpu", _as_range(self.cpu, "Machine.cpu"))
        object.__setattr__(self, "ram", _as_range(self.ram, "Machine.ram"))
        _as_int(self.disk_size, "Machine.disk_size", minimum=0)
        object.__setattr__(self, "keys", _as_str_tuple(self.keys, "Machine.keys"))

    def with_role(self, role: str) -> Machine:
        return replace(self, role=role)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "provider": self.provider,
            "role": self.role,
            "region": self.region,
            "size": self.size,
            "cpu": self.cpu.to_dict(),
            "ram": self.ram.to_dict(),
            "diskSize": self.disk_size,
            "keys": list(self.keys),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Machine:
        parsed = _expect_object(
            data,
            "Machine",
            required=set(),
            optional={"provider", "role", "region", "size", "cpu", "ram", "diskSize", "keys"},
        )
        return cls(
            provider=_as_text(parsed.get("provider", ""), "Machine.provider"),
            role=_as_text(parsed.get("role", ""), "Machine.role"),
            region=_as_text(parsed.get("region", ""), "Machine.region"),
            size=_as_text(parsed.get("size", ""), "Machine.size"),
            cpu=_as_range(parsed.get("cpu", Range()), "Machine.cpu"),
            ram=_as_range(parsed.get("ram", Range()), "Machine.ram"),
            disk_size=_as_int(parsed.get("diskSize", 0), "Machine.diskSize", minimum=0),
            keys=_as_str_tuple(parsed.get("keys", ()), "Machine.keys"),
        )


@dataclass(frozen=True, slots=True)
class LabelRule:
    """Placement relative to the containers of another label."""

    exclusive: bool
    other_label: Label

    def __post_init__(self) -> None:
        object.__setattr__(self, "exclusive", bool(self.exclusive))


@dataclass(frozen=True, slots=True)
class MachineRule:
    """Placement relative to attributes of the hosting machine."""

    exclusive: bool
    provider: str | None = field(default=None, kw_only=True)
    size: str | None = field(default=None, kw_only=True)
    region: str | None = field(default=None, kw_only=True)

    def __post_init__(self) -> None:
        object.__setattr__(self, "exclusive", bool(self.exclusive))
        for name in ("provider", "size", "region"):
            value = _as_optional_text(getattr(self, name), f"MachineRule.{name}")
            object.__setattr__(self, name, value or None)


PlacementRule = LabelRule | MachineRule


class Container:
    """A container image instance with a build-context-wide unique ID."""

    __slots__ = ("_registry", "args", "env", "id", "image")

    def __init__(
        self,
        image: str,
        args: Sequence[str] | None = None,
        *,
        env: Mapping[str, str] | None = None,
        context: EntityRegistry | None = None,
    ) -> None:
        self._registry = _resolve_registry(context)
        self.id = self._registry.next_container_id()
        self.image = _as_text(image, "Container.image")
        self.args: tuple[str, ...] = _as_str_tuple(args or (), "Container.args")
        self.env: dict[str, str] = dict(env or {})

    def clone(self) -> Container:
        """Copy with a fresh ID and an independent copy of the environment."""
        return Container(self.image, self.args, env=self.env, context=self._registry)

    def replicate(self, n: int) -> list[Container]:
        return [self.clone() for _ in range(n)]

    def with_env(self, env: Mapping[str, str]) -> Self:
        self.env = dict(env)
        return self

    def set_env(self, key: str, value: str) -> Self:
        self.env[key] = value
        return self

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "image": self.image,
            "args": list(self.args),
            "env": dict(self.env),
        }

    def __repr__(self) -> str:
        return f"Container(id={self.id}, image={self.image!r}, args={list(self.args)!r})"


Docker = Container


class Label:
    """A uniquely named group of container replicas.

    Constructing a label reserves its name with the build context and
    appends the label to the context's label list. Containers must come from
    the same build context, since container IDs are only unique within one.
    """

    __slots__ = ("_public", "annotations", "containers", "name")

    def __init__(
        self,
        name: str,
        containers: Iterable[Container] = (),
        *,
        context: EntityRegistry | None = None,
    ) -> None:
        registry = _resolve_registry(context)
        members = list(containers)
        for container in members:
            if container._registry is not registry:
                _fail(
                    "Label.containers",
                    f"container {container.id} was created in a different build context",
                )
        self.name = registry.unique_label_name(name)
        self.containers: list[Container] = members
        self.annotations: list[str] = []
        self._public = False
        registry.register_label(self)

    @classmethod
    def public_sentinel(cls, context: EntityRegistry) -> Label:
        """Create the label standing for the public internet."""
        label = cls(PUBLIC_INTERNET_LABEL, (), context=context)
        label._public = True
        return label

    @property
    def is_public_internet(self) -> bool:
        return self._public

    def hostname(self) -> str:
        return self.name + HOSTNAME_SUFFIX

    def children(self) -> list[str]:
        return [
            f"{index}.{self.name}{HOSTNAME_SUFFIX}"
            for index in range(1, len(self.containers) + 1)
        ]

    def annotate(self, annotation: str) -> Self:
        self.annotations.append(_as_text(annotation, "Label.annotation"))
        return self

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "name": self.name,
            "hostname": self.hostname(),
            "containerIds": [container.id for container in self.containers],
            "annotations": list(self.annotations),
        }

    def __repr__(self) -> str:
        return f"Label(name={self.name!r}, containers={len(self.containers)})"


@dataclass(frozen=True, slots=True)
class Connection(CanonicalModel):
    """Directional traffic allowance from ``from_`` to ``to`` over ``ports``."""

    ports: Range
    from_: Label
    to: Label

    @property
    def min_port(self) -> int:
        return self.ports.min

    @property
    def max_port(self) -> int:
        return self.ports.max

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "minPort": self.ports.min,
            "maxPort": self.ports.max,
            "from": self.from_.name,
            "to": self.to.name,
        }


@dataclass(frozen=True, slots=True)
class Placement(CanonicalModel):
    target: Label
    rule: PlacementRule

    def to_dict(self) -> dict[str, JSONValue]:
        out: dict[str, JSONValue] = {
            "targetLabel": self.target.name,
            "exclusive": self.rule.exclusive,
        }
        match self.rule:
            case LabelRule(other_label=other):
                out["otherLabel"] = other.name
            case MachineRule(provider=provider, size=size, region=region):
                for key, value in (("provider", provider), ("size", size), ("region", region)):
                    if value is not None:
                        out[key] = value
            case _:
                assert_never(self.rule)
        return out


class InvariantType(StrEnum):
    REACH = "reach"
    REACH_ACL = "reachACL"
    NEIGHBOR = "reachDirect"
    BETWEEN = "between"
    ENOUGH = "enough"


@dataclass(frozen=True, slots=True)
class Reachable:
    from_: Label
    to: Label
    type: ClassVar[InvariantType] = InvariantType.REACH


@dataclass(frozen=True, slots=True)
class ACLReachable:
    from_: Label
    to: Label
    type: ClassVar[InvariantType] = InvariantType.REACH_ACL


@dataclass(frozen=True, slots=True)
class Neighborship:
    from_: Label
    to: Label
    type: ClassVar[InvariantType] = InvariantType.NEIGHBOR


@dataclass(frozen=True, slots=True)
class Between:
    from_: Label
    between: Label
    to: Label
    type: ClassVar[InvariantType] = InvariantType.BETWEEN


@dataclass(frozen=True, slots=True)
class Enough:
    type: ClassVar[InvariantType] = InvariantType.ENOUGH


Invariant = Reachable | ACLReachable | Neighborship | Between | Enough


def invariant_to_dict(invariant: Invariant) -> dict[str, JSONValue]:
    out: dict[str, JSONValue] = {"type": invariant.type.value}
    match invariant:
        case Reachable(from_=src, to=dst) | ACLReachable(from_=src, to=dst):
            out["from"] = src.name
            out["to"] = dst.name
        case Neighborship(from_=src, to=dst):
            out["from"] = src.name
            out["to"] = dst.name
        case Between(from_=src, between=middle, to=dst):
            out["from"] = src.name
            out["between"] = middle.name
            out["to"] = dst.name
        case Enough():
            pass
        case _:
            assert_never(invariant)
    return out


@dataclass(frozen=True, slots=True)
class Assertion(CanonicalModel):
    """An invariant paired with whether it must hold (True) or must not (False)."""

    invariant: Invariant
    desired: bool

    def __post_init__(self) -> None:
        object.__setattr__(self, "desired", bool(self.desired))

    def to_dict(self) -> dict[str, JSONValue]:
        out = invariant_to_dict(self.invariant)
        out["desired"] = self.desired
        return out


__all__ = [
    "ACLReachable",
    "Assertion",
    "Between",
    "CanonicalModel",
    "Connection",
    "Container",
    "Docker",
    "Enough",
    "EntityRegistry",
    "Invariant",
    "InvariantType",
    "JSONScalar",
    "JSONValue",
    "Label",
    "LabelRule",
    "Machine",
    "MachineRule",
    "Neighborship",
    "Placement",
    "PlacementRule",
    "Port",
    "PortRange",
    "Range",
    "Reachable",
    "invariant_to_dict",
]
