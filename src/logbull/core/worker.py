"""
Batch formation and bounded concurrent dispatch.

Runs on the sender's event loop. Each drain pulls at most one batch worth of
entries from the queue without blocking; each batch is handed to its own
delivery task.

Admission policy: a counting semaphore sized ``max_workers`` gates delivery
tasks. When a slot is free the task takes it and releases it on completion.
When no slot is free the batch is still dispatched, on an ungated overflow
task, so the drain loop never waits on the network. Bursts can therefore
briefly exceed ``max_workers``; overflow dispatches are counted in metrics.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Protocol

from ..metrics.metrics import MetricsCollector
from . import diagnostics
from .concurrency import NonBlockingRingQueue
from .envelope import LogBatch, LogEntry


class DeliveryTransport(Protocol):
    async def deliver(self, batch: LogBatch) -> Any: ...

    async def aclose(self) -> None: ...


class BatchDispatcher:
    """Drains the entry queue into batches and tracks delivery tasks."""

    def __init__(
        self,
        *,
        queue: NonBlockingRingQueue[LogEntry],
        batch_max_size: int,
        max_workers: int,
        transport: DeliveryTransport,
        metrics: MetricsCollector | None = None,
    ) -> None:
        if batch_max_size <= 0:
            raise ValueError("batch_max_size must be > 0")
        if max_workers <= 0:
            raise ValueError("max_workers must be > 0")
        self._queue = queue
        self._batch_max_size = batch_max_size
        self._max_workers = max_workers
        self._transport = transport
        self._metrics = metrics
        self._gate = threading.BoundedSemaphore(max_workers)
        self._gated_in_flight = 0
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    @property
    def gated_in_flight(self) -> int:
        return self._gated_in_flight

    def drain(self) -> list[LogEntry]:
        return self._queue.drain(self._batch_max_size)

    def dispatch(self, batch: LogBatch) -> asyncio.Task[None]:
        """Start delivery of ``batch``; must be called on the sender loop."""
        gated = self._gate.acquire(blocking=False)
        if gated:
            self._gated_in_flight += 1
        if self._metrics is not None:
            self._metrics.record_dispatch(overflow=not gated)
        task = asyncio.get_running_loop().create_task(self._deliver(batch, gated))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def drain_and_dispatch(self) -> asyncio.Task[None] | None:
        entries = self.drain()
        if not entries:
            return None
        return self.dispatch(LogBatch(tuple(entries)))

    async def _deliver(self, batch: LogBatch, gated: bool) -> None:
        try:
            await self._transport.deliver(batch)
        except Exception as exc:
            diagnostics.warn(
                "dispatcher",
                "delivery task failed",
                error_type=type(exc).__name__,
                error=str(exc),
                batch_size=len(batch),
            )
            if self._metrics is not None:
                self._metrics.record_delivery_failure(len(batch))
        finally:
            if gated:
                self._gated_in_flight -= 1
                self._gate.release()

    async def wait_idle(self) -> None:
        """Wait until every dispatched task, including late ones, finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self) -> int:
        """Cancel every tracked delivery task; returns how many were running."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        return len(tasks)
