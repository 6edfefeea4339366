"""Per-call tracing for proxied calls."""

from __future__ import annotations

import threading
import time
import uuid
from datetime import datetime, timezone

from chat_proxy.types import CallTrace


class TraceStore:
    """In-memory, thread-safe trace storage with a bounded history."""

    def __init__(self, *, max_records: int = 1000) -> None:
        self._records: dict[str, CallTrace] = {}
        self._lock = threading.Lock()
        self.max_records = max_records

    def create_record(
        self,
        *,
        method: str,
        attempts: int,
        latency_ms: float,
        input_length: int,
        output_length: int,
        prefix_length: int,
        suffix_length: int,
        error: str | None = None,
    ) -> CallTrace:
        record = CallTrace(
            trace_id=str(uuid.uuid4()),
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            method=method,
            attempts=attempts,
            latency_ms=latency_ms,
            input_length=input_length,
            output_length=output_length,
            prefix_length=prefix_length,
            suffix_length=suffix_length,
            succeeded=error is None,
            error=error,
        )
        with self._lock:
            self._records[record.trace_id] = record
            while len(self._records) > self.max_records:
                del self._records[next(iter(self._records))]
        return record

    def get(self, trace_id: str) -> CallTrace:
        with self._lock:
            record = self._records.get(trace_id)
        if record is None:
            raise KeyError(f"Trace not found: {trace_id}")
        return record

    def list_recent(self, limit: int = 20) -> list[CallTrace]:
        with self._lock:
            records = list(self._records.values())
        return records[-limit:] if limit > 0 else []

    def summary(self) -> dict[str, float | int]:
        """Aggregate call statistics for dashboards and the ``/metrics`` endpoint."""
        with self._lock:
            records = list(self._records.values())
        total = len(records)
        if total == 0:
            return {
                "total_calls": 0,
                "failed_calls": 0,
                "avg_latency_ms": 0.0,
                "p95_latency_ms": 0.0,
                "avg_attempts": 0.0,
            }

        latencies = sorted(record.latency_ms for record in records)
        p95_index = max(0, int((len(latencies) * 0.95) - 1))
        return {
            "total_calls": total,
            "failed_calls": sum(1 for record in records if not record.succeeded),
            "avg_latency_ms": sum(latencies) / total,
            "p95_latency_ms": latencies[p95_index],
            "avg_attempts": sum(record.attempts for record in records) / total,
        }


class Timer:
    """Simple context timer used by the dispatcher."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0
