"""Unit tests for label naming and container ID allocation."""

from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from stitch.domain.naming import ContainerIdAllocator, LabelNameRegistry


def test_repeated_base_name_gets_running_count_suffix() -> None:
    registry = LabelNameRegistry()

    assert [registry.unique("foo") for _ in range(3)] == ["foo", "foo2", "foo3"]
    assert registry.count("foo") == 3


def test_distinct_bases_are_counted_independently() -> None:
    registry = LabelNameRegistry()

    assert registry.unique("web") == "web"
    assert registry.unique("db") == "db"
    assert registry.unique("web") == "web2"
    assert registry.unique("db") == "db2"
    assert registry.count("cache") == 0


def test_generated_name_never_collides_with_verbatim_request() -> None:
    registry = LabelNameRegistry()

    assert registry.unique("foo2") == "foo2"
    assert registry.unique("foo") == "foo"
    assert registry.unique("foo") == "foo3"
    assert registry.unique("foo2") == "foo22"
    assert len(registry) == 4


def test_issued_names_are_tracked() -> None:
    registry = LabelNameRegistry()
    registry.unique("a")
    registry.unique("a")

    assert "a" in registry
    assert "a2" in registry
    assert registry.issued() == frozenset({"a", "a2"})


@given(names=st.lists(st.sampled_from(["a", "a2", "b", "ab", "a22"]), max_size=40))
@settings(max_examples=100, deadline=None)
def test_issued_names_are_pairwise_distinct(names: list[str]) -> None:
    registry = LabelNameRegistry()
    issued = [registry.unique(name) for name in names]

    assert len(set(issued)) == len(issued)
    assert all(result.startswith(base) for result, base in zip(issued, names, strict=True))


def test_container_ids_start_at_one_and_increase() -> None:
    allocator = ContainerIdAllocator()
    assert allocator.last == 0

    assert [allocator.next_id() for _ in range(4)] == [1, 2, 3, 4]
    assert allocator.last == 4
