"""Spill-guarded in-memory aggregation.

A group-count map task tallies multiplicity-weighted counts per group key.
Under adversarial key cardinality the tally could grow without bound, so the
aggregator carries a ceiling: once it holds more distinct keys than the
threshold, every entry is flushed downstream and the map is cleared.

Spilling is not an error. It trades memory for extra partial tallies per
key, which the combine and reduce phases (signed 64-bit summation) merge back
together. Results are identical for any threshold.

Example:
    spilling = SpillingCounterMap(threshold=5000, flush=lambda key, total: ctx.emit(key, total))

    for vertex in partition:
        spilling.increment(group_of(vertex), weight_of(vertex) * vertex.path_count)
        spilling.check()

    spilling.flush()
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Iterator

import structlog

slog = structlog.get_logger(__name__)

_INT64_MAX = 2**63 - 1


def wrap_int64(value: int) -> int:
    """Reduce an int to the signed 64-bit range, wrapping like a Java long."""
    value &= 0xFFFFFFFFFFFFFFFF
    return value - 0x10000000000000000 if value > _INT64_MAX else value


def sum_int64(values: Iterable[int]) -> int:
    """Sum with signed 64-bit wraparound, as every tally phase does."""
    total = 0
    for value in values:
        total = wrap_int64(total + value)
    return total


class CounterMap:
    """Mapping from group key to a running signed 64-bit sum.

    Entries are created lazily on first increment. Insertion order is
    preserved for deterministic flushing but carries no meaning.
    """

    def __init__(self) -> None:
        self._counts: dict[Hashable, int] = {}

    def increment(self, key: Hashable, delta: int = 1) -> int:
        """Add delta to the key's sum and return the new sum."""
        total = wrap_int64(self._counts.get(key, 0) + delta)
        self._counts[key] = total
        return total

    def get(self, key: Hashable) -> int:
        return self._counts.get(key, 0)

    def items(self) -> Iterator[tuple[Hashable, int]]:
        return iter(list(self._counts.items()))

    def clear(self) -> None:
        self._counts.clear()

    def __len__(self) -> int:
        return len(self._counts)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(list(self._counts))

    def __repr__(self) -> str:
        return f"CounterMap({self._counts!r})"


class SpillingCounterMap:
    """CounterMap with a distinct-key ceiling and a flush target.

    Args:
        threshold: Maximum distinct keys held before a spill (must be > 0)
        flush: Called once per (key, sum) entry when the map is flushed
    """

    def __init__(self, threshold: int, flush: Callable[[Hashable, int], None]) -> None:
        if threshold <= 0:
            raise ValueError(f"spill threshold must be positive, got {threshold}")
        self._threshold = threshold
        self._flush_entry = flush
        self._map = CounterMap()
        self._spill_count = 0

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def spill_count(self) -> int:
        """Number of threshold-triggered flushes so far."""
        return self._spill_count

    @property
    def counts(self) -> CounterMap:
        return self._map

    def increment(self, key: Hashable, delta: int) -> None:
        self._map.increment(key, delta)

    def check(self) -> bool:
        """Spill if the map holds more keys than the threshold.

        Call after each processed record.

        Returns:
            True if a spill happened
        """
        if len(self._map) <= self._threshold:
            return False
        self._spill_count += 1
        slog.debug(
            "counter_map_spilled",
            distinct_keys=len(self._map),
            threshold=self._threshold,
            spill_number=self._spill_count,
        )
        self.flush()
        return True

    def flush(self) -> int:
        """Emit every entry and clear the map.

        Returns:
            Number of entries flushed
        """
        flushed = 0
        for key, total in self._map.items():
            self._flush_entry(key, total)
            flushed += 1
        self._map.clear()
        return flushed

    def __len__(self) -> int:
        return len(self._map)
