"""
Sender metrics collection for logbull.

Tracks queue drops, dispatches and delivery outcomes for one sender.
In-memory counters are always kept (cheap, and handy for assertions in
tests); Prometheus exporters are only created when enabled.

Design goals:
- Safe to call from producer threads and from the sender event loop
- Zero global state; each collector owns an isolated registry
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Any

from prometheus_client import CollectorRegistry, Counter, Histogram


@dataclass
class SenderMetrics:
    """Captured runtime counters for quick assertions in tests."""

    entries_submitted: int = 0
    entries_dropped: int = 0
    batches_dispatched: int = 0
    overflow_dispatches: int = 0
    entries_delivered: int = 0
    entries_rejected: int = 0
    delivery_failures: int = 0


class MetricsCollector:
    """Sender-scoped metrics collector.

    When metrics are disabled every method still updates the in-memory
    counters but never touches Prometheus.
    """

    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._lock = threading.Lock()
        self._state = SenderMetrics()

        self._registry: CollectorRegistry | None = None
        self._c_entries: Any | None = None
        self._c_batches: Any | None = None
        self._c_failures: Any | None = None
        self._h_delivery_latency: Any | None = None

        if self._enabled:
            # Isolated registry avoids duplicate registration across senders
            self._registry = CollectorRegistry()
            self._c_entries = Counter(
                "logbull_entries_total",
                "Log entries by pipeline outcome",
                ["outcome"],
                registry=self._registry,
            )
            self._c_batches = Counter(
                "logbull_batches_dispatched_total",
                "Batches handed to a delivery task",
                ["path"],
                registry=self._registry,
            )
            self._c_failures = Counter(
                "logbull_delivery_failures_total",
                "Batches dropped because delivery failed",
                registry=self._registry,
            )
            self._h_delivery_latency = Histogram(
                "logbull_delivery_seconds",
                "Latency of one delivery request",
                buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        """Expose the isolated Prometheus registry when enabled."""
        return self._registry

    def _count_entries(self, outcome: str, amount: int) -> None:
        if self._c_entries is not None and amount:
            self._c_entries.labels(outcome=outcome).inc(amount)

    def record_submitted(self) -> None:
        with self._lock:
            self._state.entries_submitted += 1
        self._count_entries("submitted", 1)

    def record_dropped(self, count: int = 1) -> None:
        with self._lock:
            self._state.entries_dropped += count
        self._count_entries("dropped", count)

    def record_dispatch(self, *, overflow: bool) -> None:
        with self._lock:
            self._state.batches_dispatched += 1
            if overflow:
                self._state.overflow_dispatches += 1
        if self._c_batches is not None:
            self._c_batches.labels(path="overflow" if overflow else "gated").inc()

    def record_delivery(
        self,
        *,
        delivered: int,
        rejected: int = 0,
        latency_seconds: float | None = None,
    ) -> None:
        with self._lock:
            self._state.entries_delivered += delivered
            self._state.entries_rejected += rejected
        self._count_entries("delivered", delivered)
        self._count_entries("rejected", rejected)
        if latency_seconds is not None and self._h_delivery_latency is not None:
            self._h_delivery_latency.observe(latency_seconds)

    def record_delivery_failure(self, batch_size: int) -> None:
        with self._lock:
            self._state.delivery_failures += 1
            self._state.entries_dropped += batch_size
        if self._c_failures is not None:
            self._c_failures.inc()
        self._count_entries("dropped", batch_size)

    def snapshot(self) -> SenderMetrics:
        # Lightweight copy without exposing internals
        with self._lock:
            return replace(self._state)
