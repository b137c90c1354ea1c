"""Build context: the accumulator of everything one stitch evaluation declares.

A ``BuildContext`` owns the label naming registry, the container ID counter,
the public internet sentinel, and the lists of labels, connections,
machines, placements and invariants. The active context is tracked with a
``ContextVar``; a process-default context is used when no session is open.
"""

from __future__ import annotations

import contextvars
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Any

import structlog

from stitch.config.schema import BuildSettings, StitchConfig
from stitch.constants import ROLE_MASTER, ROLE_WORKER
from stitch.domain.models import (
    Assertion,
    CanonicalModel,
    Connection,
    Container,
    Invariant,
    JSONValue,
    Label,
    LabelRule,
    Machine,
    Placement,
    PlacementRule,
    Range,
    _as_str_tuple,
)
from stitch.domain.naming import ContainerIdAllocator, LabelNameRegistry
from stitch.validation import PublicInternetError, coerce_ports, validate_connection


class BuildPhase(StrEnum):
    BUILDING = "building"
    EXPORTED = "exported"


FrozenRecord = Mapping[str, Any]


def _freeze(value: JSONValue) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze(item) for key, item in value.items()})
    if isinstance(value, list | tuple):
        return tuple(_freeze(item) for item in value)
    return value


def _thaw(value: Any) -> JSONValue:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return value


def _freeze_records(records: Iterable[dict[str, JSONValue]]) -> tuple[FrozenRecord, ...]:
    return tuple(_freeze(record) for record in records)


@dataclass(frozen=True, slots=True)
class ExportedGraph(CanonicalModel):
    """Read-only snapshot of a build context in the shape the compiler consumes.

    Entity records are held as read-only mappings with tuples in place of
    lists; ``to_dict`` returns fresh plain dicts and lists on every call.
    """

    labels: tuple[FrozenRecord, ...]
    connections: tuple[FrozenRecord, ...]
    machines: tuple[FrozenRecord, ...]
    placements: tuple[FrozenRecord, ...]
    invariants: tuple[FrozenRecord, ...]
    namespace: str
    admin_acl: tuple[str, ...]
    max_price: float

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "labels": _thaw(self.labels),
            "connections": _thaw(self.connections),
            "machines": _thaw(self.machines),
            "placements": _thaw(self.placements),
            "invariants": _thaw(self.invariants),
            "namespace": self.namespace,
            "adminACL": list(self.admin_acl),
            "maxPrice": self.max_price,
        }


class BuildContext:
    """Mutable accumulator for one stitch evaluation."""

    def __init__(
        self,
        config: StitchConfig | None = None,
        *,
        logger: Any | None = None,
    ) -> None:
        settings = config.build if config is not None else BuildSettings()
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._names = LabelNameRegistry()
        self._ids = ContainerIdAllocator()
        self._phase = BuildPhase.BUILDING

        self._labels: list[Label] = []
        self._connections: list[Connection] = []
        self._machines: list[Machine] = []
        self._placements: list[Placement] = []
        self._invariants: list[Assertion] = []

        self._namespace = settings.namespace
        self._admin_acl: tuple[str, ...] = tuple(settings.admin_acl)
        self._max_price = float(settings.max_price)

        self.public_internet = Label.public_sentinel(self)

    # Hooks used by entity constructors.

    def unique_label_name(self, base: str) -> str:
        return self._names.unique(base)

    def next_container_id(self) -> int:
        return self._ids.next_id()

    def register_label(self, label: Label) -> None:
        self._note_mutation("label")
        self._labels.append(label)

    # Builder operations.

    def label(self, name: str, containers: Iterable[Container] = ()) -> Label:
        return Label(name, containers, context=self)

    def docker(self, image: str, args: Iterable[str] | None = None) -> Container:
        return Container(image, list(args) if args is not None else None, context=self)

    def connect(self, ports: Range | int, from_: Label, to: Label) -> Connection:
        port_range = coerce_ports(ports)
        try:
            validate_connection(port_range, from_, to)
        except PublicInternetError as exc:
            self._logger.warning(
                "stitch_connection_rejected",
                from_label=from_.name,
                to_label=to.name,
                min_port=port_range.min,
                max_port=port_range.max,
                reason=str(exc),
            )
            raise
        connection = Connection(port_range, from_, to)
        self._note_mutation("connection")
        self._connections.append(connection)
        return connection

    def place(self, target: Label, rule: PlacementRule) -> Placement:
        placement = Placement(target, rule)
        self._note_mutation("placement")
        self._placements.append(placement)
        return placement

    def assert_(self, invariant: Invariant, desired: bool) -> Assertion:
        assertion = Assertion(invariant, desired)
        self._note_mutation("invariant")
        self._invariants.append(assertion)
        return assertion

    def deploy_machines(self, machines: Machine | Iterable[Machine]) -> None:
        batch = [machines] if isinstance(machines, Machine) else list(machines)
        self._note_mutation("machine")
        self._machines.extend(batch)

    def deploy_masters(self, n: int, machine: Machine) -> None:
        self.deploy_machines(machine.with_role(ROLE_MASTER) for _ in range(n))

    def deploy_workers(self, n: int, machine: Machine) -> None:
        self.deploy_machines(machine.with_role(ROLE_WORKER) for _ in range(n))

    def set_namespace(self, namespace: str) -> None:
        self._note_mutation("namespace")
        self._namespace = namespace

    def set_admin_acl(self, acl: Iterable[str]) -> None:
        entries = _as_str_tuple(acl, "adminACL")
        self._note_mutation("adminACL")
        self._admin_acl = entries

    def set_max_price(self, max_price: float) -> None:
        self._note_mutation("maxPrice")
        self._max_price = float(max_price)

    # Queries.

    @property
    def phase(self) -> BuildPhase:
        return self._phase

    @property
    def labels(self) -> tuple[Label, ...]:
        return tuple(self._labels)

    @property
    def connections(self) -> tuple[Connection, ...]:
        return tuple(self._connections)

    @property
    def machines(self) -> tuple[Machine, ...]:
        return tuple(self._machines)

    @property
    def placements(self) -> tuple[Placement, ...]:
        return tuple(self._placements)

    @property
    def invariants(self) -> tuple[Assertion, ...]:
        return tuple(self._invariants)

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def admin_acl(self) -> tuple[str, ...]:
        return self._admin_acl

    @property
    def max_price(self) -> float:
        return self._max_price

    def containers(self) -> tuple[Container, ...]:
        """All containers attached to labels, ordered by ID."""
        by_id: dict[int, Container] = {}
        for label in self._labels:
            for container in label.containers:
                by_id.setdefault(container.id, container)
        return tuple(by_id[key] for key in sorted(by_id))

    def find_label(self, name: str) -> Label | None:
        for label in self._labels:
            if label.name == name:
                return label
        return None

    def export(self) -> ExportedGraph:
        """Snapshot the graph for the compiler and mark the context exported."""
        graph = ExportedGraph(
            labels=_freeze_records(label.to_dict() for label in self._labels),
            connections=_freeze_records(item.to_dict() for item in self._connections),
            machines=_freeze_records(item.to_dict() for item in self._machines),
            placements=_freeze_records(item.to_dict() for item in self._placements),
            invariants=_freeze_records(item.to_dict() for item in self._invariants),
            namespace=self._namespace,
            admin_acl=self._admin_acl,
            max_price=self._max_price,
        )
        self._phase = BuildPhase.EXPORTED
        self._logger.info(
            "stitch_graph_exported",
            labels=len(graph.labels),
            connections=len(graph.connections),
            machines=len(graph.machines),
            placements=len(graph.placements),
            invariants=len(graph.invariants),
            namespace=graph.namespace,
        )
        return graph

    def _note_mutation(self, kind: str) -> None:
        if self._phase is BuildPhase.EXPORTED:
            self._logger.warning("stitch_mutation_after_export", kind=kind)

    def __repr__(self) -> str:
        return (
            f"BuildContext(phase={self._phase.value}, labels={len(self._labels)}, "
            f"connections={len(self._connections)}, machines={len(self._machines)})"
        )


def public_port_placements(context: BuildContext) -> tuple[Placement, ...]:
    """Derive exclusive placements between labels exposing the same public port.

    Two labels reachable from the public internet on the same port cannot
    share a host, so every pair (including a label with itself) sharing a
    public port gets an exclusive ``LabelRule``. The result is not added to
    the context.
    """
    by_port: dict[int, list[Label]] = {}
    for connection in context.connections:
        if connection.from_.is_public_internet:
            target = connection.to
        elif connection.to.is_public_internet:
            target = connection.from_
        else:
            continue
        by_port.setdefault(connection.min_port, []).append(target)

    seen: dict[tuple[str, str], Placement] = {}
    for labels in by_port.values():
        for target in labels:
            for other in labels:
                key = (target.name, other.name)
                if key not in seen:
                    seen[key] = Placement(target, LabelRule(True, other))
    return tuple(seen.values())


_ACTIVE_CONTEXT: contextvars.ContextVar[BuildContext] = contextvars.ContextVar(
    "stitch_active_build_context"
)
_PROCESS_CONTEXT: BuildContext | None = None


def default_context() -> BuildContext:
    """Return the process-default context, creating it on first use."""
    global _PROCESS_CONTEXT
    if _PROCESS_CONTEXT is None:
        _PROCESS_CONTEXT = BuildContext()
    return _PROCESS_CONTEXT


def current_context() -> BuildContext:
    """Return the context bound by the innermost ``build_session``, or the default."""
    try:
        return _ACTIVE_CONTEXT.get()
    except LookupError:
        return default_context()


@contextmanager
def build_session(
    config: StitchConfig | None = None,
    *,
    context: BuildContext | None = None,
) -> Iterator[BuildContext]:
    """Bind a fresh (or the given) context as the active one for the block."""
    session = context if context is not None else BuildContext(config)
    token = _ACTIVE_CONTEXT.set(session)
    try:
        yield session
    finally:
        _ACTIVE_CONTEXT.reset(token)


__all__ = [
    "BuildContext",
    "BuildPhase",
    "ExportedGraph",
    "build_session",
    "current_context",
    "default_context",
    "public_port_placements",
]
