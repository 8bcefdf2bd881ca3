"""
Strictly monotonic, collision-free timestamps for log ordering.

The collection server orders entries by timestamp, so two entries must never
share one and a later call must never sort before an earlier one. The wall
clock alone guarantees neither: it has finite resolution and can step
backwards. ``TimestampGenerator`` fixes both by issuing ``last + 1ns``
whenever the clock has not moved past the previously issued value.

Ordering only holds among stamps issued by one generator, so loggers and
handlers share the one owned by their ``AppContext``.
"""

from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from typing import Callable

_NS_PER_SECOND = 1_000_000_000


def format_timestamp(timestamp_ns: int) -> str:
    """Format nanoseconds since the epoch as ``YYYY-MM-DDTHH:MM:SS.nnnnnnnnnZ``."""
    seconds, nanos = divmod(timestamp_ns, _NS_PER_SECOND)
    moment = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return f"{moment:%Y-%m-%dT%H:%M:%S}.{nanos:09d}Z"


class TimestampGenerator:
    """Issues unique, increasing UTC timestamps with nanosecond precision.

    Thread-safe: all callers go through a single critical section.
    """

    def __init__(self, clock_ns: Callable[[], int] = time.time_ns) -> None:
        self._clock_ns = clock_ns
        self._lock = threading.Lock()
        self._last_ns = 0

    @property
    def last_issued_ns(self) -> int:
        with self._lock:
            return self._last_ns

    def next_ns(self) -> int:
        with self._lock:
            current = self._clock_ns()
            if current <= self._last_ns:
                current = self._last_ns + 1
            self._last_ns = current
            return current

    def next(self) -> str:
        return format_timestamp(self.next_ns())
