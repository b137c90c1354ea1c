"""Unit tests for stitch entity models and their export shapes."""

from __future__ import annotations

import dataclasses
import json

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from stitch.context import BuildContext, build_session
from stitch.domain.models import (
    ACLReachable,
    Assertion,
    Between,
    Connection,
    Container,
    Docker,
    Enough,
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
    invariant_to_dict,
)


def test_port_is_single_point_range() -> None:
    port = Port(8080)

    assert port == Range(8080, 8080)
    assert port.is_port
    assert not Range(1, 100).is_port
    assert PortRange is Range


def test_range_rejects_inverted_bounds_and_non_integers() -> None:
    with pytest.raises(ValueError, match=r"Range: min \(5\) must be <= max \(2\)"):
        Range(5, 2)
    with pytest.raises(ValueError, match="Range.min: expected integer"):
        Range(1.5, 2)  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="Range.max: expected integer"):
        Range(1, True)


def test_range_with_zero_max_is_open_ended() -> None:
    rng = Range(4, 0)

    assert rng.accepts(4)
    assert rng.accepts(1024)
    assert not rng.accepts(3)
    assert Range().accepts(0)


def test_bounded_range_accepts_inclusive_interval() -> None:
    rng = Range(1, 3)

    assert [rng.accepts(value) for value in (0, 1, 2, 3, 4)] == [False, True, True, True, False]
    assert rng.to_dict() == {"min": 1, "max": 3}


def test_machine_defaults_are_zero_equivalents() -> None:
    machine = Machine()

    assert machine.to_dict() == {
        "provider": "",
        "role": "",
        "region": "",
        "size": "",
        "cpu": {"min": 0, "max": 0},
        "ram": {"min": 0, "max": 0},
        "diskSize": 0,
        "keys": [],
    }


def test_machine_with_role_returns_new_value_and_leaves_receiver() -> None:
    base = Machine(provider="Amazon", size="m4.large", keys=["ssh-rsa AAA"])

    worker = base.with_role("Worker")

    assert worker is not base
    assert worker.role == "Worker"
    assert base.role == ""
    assert dataclasses.replace(worker, role="") == base
    with pytest.raises(dataclasses.FrozenInstanceError):
        base.role = "Master"  # type: ignore[misc]


def test_machine_rejects_unknown_options() -> None:
    with pytest.raises(TypeError):
        Machine(flavour="large")  # type: ignore[call-arg]
    with pytest.raises(ValueError, match=r"Machine: unexpected fields: \['flavour'\]"):
        Machine.from_dict({"provider": "Amazon", "flavour": "large"})


def test_machine_from_dict_reads_camel_case_fields() -> None:
    machine = Machine.from_dict(
        {
            "provider": "Google",
            "region": "us-east1-b",
            "cpu": {"min": 2, "max": 8},
            "ram": {"min": 4, "max": 0},
            "diskSize": 32,
            "keys": ["key-a", "key-b"],
        }
    )

    assert machine.cpu == Range(2, 8)
    assert machine.ram == Range(4, 0)
    assert machine.disk_size == 32
    assert machine.keys == ("key-a", "key-b")
    assert Machine.from_dict(machine.to_dict()) == machine


def test_machine_rule_keeps_only_given_attributes() -> None:
    rule = MachineRule(True, provider="Amazon", size="")

    assert rule.exclusive is True
    assert rule.provider == "Amazon"
    assert rule.size is None
    assert rule.region is None
    with pytest.raises(TypeError):
        MachineRule(True, zone="a")  # type: ignore[call-arg]


def test_rule_exclusive_flag_is_coerced_to_bool(ctx: BuildContext) -> None:
    other = Label("other", context=ctx)

    assert LabelRule("exclusive", other).exclusive is True  # type: ignore[arg-type]
    assert MachineRule(0).exclusive is False  # type: ignore[arg-type]


def test_docker_assigns_increasing_ids(ctx: BuildContext) -> None:
    first = Docker("nginx", context=ctx)
    second = Container("redis", ["redis-server"], context=ctx)

    assert Docker is Container
    assert second.id == first.id + 1
    assert first.args == ()
    assert second.args == ("redis-server",)
    assert first.env == {}


def test_clone_gets_new_id_and_independent_env(ctx: BuildContext) -> None:
    template = Container("spark", ["run", "worker"], context=ctx).with_env({"A": "1"})

    clone = template.clone()
    clone.set_env("B", "2")
    template.env["C"] = "3"

    assert clone.id != template.id
    assert clone.image == template.image
    assert clone.args == template.args
    assert clone.env == {"A": "1", "B": "2"}
    assert template.env == {"A": "1", "C": "3"}


@given(n=st.integers(min_value=0, max_value=25))
@settings(max_examples=30, deadline=None)
def test_replicate_yields_n_distinct_increasing_ids(n: int) -> None:
    with build_session():
        template = Docker("quilt/spark", ["run", "master"])
        replicas = template.replicate(n)

    ids = [replica.id for replica in replicas]
    assert len(replicas) == n
    assert ids == sorted(set(ids))
    assert all(replica_id > template.id for replica_id in ids)
    assert all(replica.image == "quilt/spark" for replica in replicas)
    assert all(replica.args == ("run", "master") for replica in replicas)


def test_replicas_do_not_share_environment(ctx: BuildContext) -> None:
    replicas = Docker("spark", context=ctx).with_env({"MASTERS": "1.m.q"}).replicate(3)

    replicas[0].set_env("ZOO", "zk.q")

    assert replicas[0].env == {"MASTERS": "1.m.q", "ZOO": "zk.q"}
    assert replicas[1].env == {"MASTERS": "1.m.q"}
    assert replicas[2].env is not replicas[1].env


def test_with_env_replaces_whole_environment(ctx: BuildContext) -> None:
    source = {"X": "1"}
    container = Docker("img", context=ctx).set_env("OLD", "yes")

    assert container.with_env(source) is container
    source["Y"] = "2"

    assert container.env == {"X": "1"}


def test_label_registers_with_context_and_gets_unique_name(ctx: BuildContext) -> None:
    names = [Label("foo", context=ctx).name for _ in range(3)]

    assert names == ["foo", "foo2", "foo3"]
    assert [label.name for label in ctx.labels] == ["public", "foo", "foo2", "foo3"]


def test_label_rejects_containers_from_another_context(ctx: BuildContext) -> None:
    local = Docker("local", context=ctx)
    with build_session() as other:
        foreign = Docker("foreign")

    with pytest.raises(ValueError, match="Label.containers: container 1 was created in a different"):
        Label("mixed", [local, foreign], context=ctx)

    assert foreign.id == local.id == 1
    assert ctx.find_label("mixed") is None
    assert Label("mixed", [local], context=ctx).name == "mixed"
    assert other.labels == (other.public_internet,)


def test_label_hostname_and_children(ctx: BuildContext) -> None:
    containers = Docker("img", context=ctx).replicate(3)
    label = Label("spark-wk", containers, context=ctx)

    assert label.hostname() == "spark-wk.q"
    assert label.children() == ["1.spark-wk.q", "2.spark-wk.q", "3.spark-wk.q"]

    label.containers.pop()
    assert label.children() == ["1.spark-wk.q", "2.spark-wk.q"]
    label.containers.clear()
    assert label.children() == []


@given(k=st.integers(min_value=0, max_value=12))
@settings(max_examples=20, deadline=None)
def test_children_are_one_indexed_per_replica(k: int) -> None:
    with build_session():
        label = Label("svc", Docker("img").replicate(k))

    expected = [f"{index}.svc.q" for index in range(1, k + 1)]
    assert label.children() == expected
    assert label.hostname() == label.name + ".q"


def test_label_annotate_is_fluent(ctx: BuildContext) -> None:
    label = Label("db", context=ctx).annotate("stateful").annotate("tier=backend")

    assert label.annotations == ["stateful", "tier=backend"]
    assert label.to_dict() == {
        "name": "db",
        "hostname": "db.q",
        "containerIds": [],
        "annotations": ["stateful", "tier=backend"],
    }


def test_only_the_sentinel_is_public_internet(ctx: BuildContext) -> None:
    impostor = Label("public", context=ctx)

    assert ctx.public_internet.name == "public"
    assert ctx.public_internet.is_public_internet
    assert impostor.name == "public2"
    assert not impostor.is_public_internet


def test_connection_export_uses_label_names(ctx: BuildContext) -> None:
    a = Label("a", context=ctx)
    b = Label("b", context=ctx)
    connection = Connection(Range(1000, 2000), a, b)

    assert connection.min_port == 1000
    assert connection.max_port == 2000
    assert json.loads(connection.to_json()) == {
        "minPort": 1000,
        "maxPort": 2000,
        "from": "a",
        "to": "b",
    }


def test_placement_export_for_label_and_machine_rules(ctx: BuildContext) -> None:
    masters = Label("masters", context=ctx)
    workers = Label("workers", context=ctx)

    label_placement = Placement(masters, LabelRule(True, workers))
    machine_placement = Placement(workers, MachineRule(False, provider="Amazon", region="us-west-1"))

    assert label_placement.to_dict() == {
        "targetLabel": "masters",
        "exclusive": True,
        "otherLabel": "workers",
    }
    assert machine_placement.to_dict() == {
        "targetLabel": "workers",
        "exclusive": False,
        "provider": "Amazon",
        "region": "us-west-1",
    }


def test_invariant_variants_export_their_shape(ctx: BuildContext) -> None:
    a = Label("a", context=ctx)
    b = Label("b", context=ctx)
    c = Label("c", context=ctx)

    assert invariant_to_dict(Reachable(a, b)) == {"type": "reach", "from": "a", "to": "b"}
    assert invariant_to_dict(ACLReachable(a, b)) == {"type": "reachACL", "from": "a", "to": "b"}
    assert invariant_to_dict(Neighborship(a, b)) == {
        "type": "reachDirect",
        "from": "a",
        "to": "b",
    }
    assert invariant_to_dict(Between(a, b, c)) == {
        "type": "between",
        "from": "a",
        "between": "b",
        "to": "c",
    }
    assert invariant_to_dict(Enough()) == {"type": "enough"}


def test_every_invariant_type_has_a_variant() -> None:
    variants = (Reachable, ACLReachable, Neighborship, Between, Enough)

    assert {variant.type for variant in variants} == set(InvariantType)


def test_assertion_carries_desired_flag(ctx: BuildContext) -> None:
    a = Label("a", context=ctx)

    assertion = Assertion(Reachable(ctx.public_internet, a), False)

    assert assertion.to_dict() == {"type": "reach", "from": "public", "to": "a", "desired": False}
