"""Stats — message size statistics for one or more mailboxes."""
from __future__ import annotations

import math
from typing import Any, Callable, Iterable


def percentile(sorted_sizes: list[int], fraction: float) -> float | None:
    """
    Linear interpolation between closest ranks; *sorted_sizes* must be sorted.
    Returns None for an empty list.
    """
    if not sorted_sizes:
        return None
    position = (len(sorted_sizes) - 1) * fraction
    lower = math.floor(position)
    upper = math.ceil(position)
    if lower == upper:
        return float(sorted_sizes[lower])
    weight = position - lower
    return sorted_sizes[lower] * (1 - weight) + sorted_sizes[upper] * weight


class Stats:
    """
    Holds a list of message sizes (bytes) and derives count, total, min,
    quartiles, median and max from it.

    Derived values are computed on first access and cached; `add` clears
    the cache. An empty Stats has count 0, total 0 and None for every
    other value, so an empty folder never looks like one full of 0-byte
    messages.
    """

    def __init__(self, message_sizes: Iterable[int] | None = None) -> None:
        self._message_sizes: list[int] = list(message_sizes or [])
        self._cache: dict[str, Any] = {}

    @property
    def message_sizes(self) -> list[int]:
        return list(self._message_sizes)

    def add(self, other: Stats | None) -> None:
        """Merge *other*'s sizes into this instance (mutates self)."""
        if other is None:
            return
        self._message_sizes.extend(other._message_sizes)
        self._invalidate()

    def copy(self) -> Stats:
        return Stats(self._message_sizes)

    # ── Derived values ────────────────────────────────────────────────────

    @property
    def count(self) -> int:
        return self._memo("count", lambda: len(self._message_sizes))

    @property
    def total_size(self) -> int:
        return self._memo("total_size", lambda: sum(self._message_sizes))

    @property
    def min_size(self) -> int | None:
        return self._memo("min_size", lambda: min(self._message_sizes, default=None))

    @property
    def q1_size(self) -> float | None:
        return self._memo("q1_size", lambda: percentile(self._sorted(), 0.25))

    @property
    def median_size(self) -> float | None:
        return self._memo("median_size", lambda: percentile(self._sorted(), 0.5))

    @property
    def q3_size(self) -> float | None:
        return self._memo("q3_size", lambda: percentile(self._sorted(), 0.75))

    @property
    def max_size(self) -> int | None:
        return self._memo("max_size", lambda: max(self._message_sizes, default=None))

    def value(self, key: str) -> int | float | None:
        """Look up a derived value by its sort key name (e.g. 'median_size')."""
        return getattr(self, key)

    def as_row(self) -> list[int | float | None]:
        return [
            self.count,
            self.total_size,
            self.min_size,
            self.q1_size,
            self.median_size,
            self.q3_size,
            self.max_size,
        ]

    # ── Internals ─────────────────────────────────────────────────────────

    def _memo(self, key: str, compute: Callable[[], Any]) -> Any:
        if key not in self._cache:
            self._cache[key] = compute()
        return self._cache[key]

    def _sorted(self) -> list[int]:
        return self._memo("_sorted", lambda: sorted(self._message_sizes))

    def _invalidate(self) -> None:
        self._cache.clear()

    def __repr__(self) -> str:
        return f"Stats(count={self.count}, total_size={self.total_size})"
