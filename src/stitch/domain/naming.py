"""Deterministic label naming and container ID allocation for one build context."""

from __future__ import annotations

__all__ = [
    "ContainerIdAllocator",
    "LabelNameRegistry",
]


class LabelNameRegistry:
    """Issue unique label names from requested base names.

    The first request for a base name returns it unchanged. The k-th request
    (k >= 2) returns the base name followed by the running count ``k``, so
    three requests for ``"foo"`` yield ``"foo"``, ``"foo2"`` and ``"foo3"``.

    A generated name may coincide with a base name requested verbatim
    (``"foo2"`` asked for directly). Such candidates are skipped by advancing
    the count, so no two names issued by one registry are ever equal.
    """

    __slots__ = ("_counts", "_issued")

    def __init__(self) -> None:
        self._counts: dict[str, int] = {}
        self._issued: set[str] = set()

    def unique(self, base: str) -> str:
        if not isinstance(base, str):
            raise TypeError(f"label name must be a string, got {type(base).__name__}")

        while True:
            count = self._counts.get(base, 0) + 1
            self._counts[base] = count
            candidate = base if count == 1 else f"{base}{count}"
            if candidate not in self._issued:
                self._issued.add(candidate)
                return candidate

    def count(self, base: str) -> int:
        """Return how many times ``base`` has been requested so far."""
        return self._counts.get(base, 0)

    def issued(self) -> frozenset[str]:
        return frozenset(self._issued)

    def __contains__(self, name: object) -> bool:
        return name in self._issued

    def __len__(self) -> int:
        return len(self._issued)


class ContainerIdAllocator:
    """Monotonic container ID counter. IDs start at 1 and are never reused."""

    __slots__ = ("_last",)

    def __init__(self) -> None:
        self._last = 0

    def next_id(self) -> int:
        self._last += 1
        return self._last

    @property
    def last(self) -> int:
        """Most recently issued ID, or 0 when none has been issued."""
        return self._last
