"""Per-dispatcher call metrics."""

from __future__ import annotations

import threading

COUNTERS = (
    "calls",
    "attempts",
    "input_length",
    "output_length",
    "prefix_length",
    "suffix_length",
    "schema_length",
    "examples_length",
    "moderation_checks",
    "deserialization_failures",
)


class ProxyMetrics:
    """Monotonic counters shared by every call on one dispatcher.

    Increments happen under a single lock so concurrent calls never lose
    updates; ``snapshot`` returns a consistent copy.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters = dict.fromkeys(COUNTERS, 0)

    def add(self, **deltas: int) -> None:
        unknown = set(deltas) - set(self._counters)
        if unknown:
            raise KeyError(f"Unknown metric(s): {', '.join(sorted(unknown))}")
        if any(value < 0 for value in deltas.values()):
            raise ValueError("Metric increments must be non-negative")
        with self._lock:
            for name, value in deltas.items():
                self._counters[name] += value

    def __getitem__(self, name: str) -> int:
        with self._lock:
            return self._counters[name]

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counters)
