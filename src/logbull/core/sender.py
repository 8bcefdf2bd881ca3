"""
Sender lifecycle: queueing, timed flushing and graceful shutdown.

A ``Sender`` owns a bounded entry queue, a private asyncio event loop on a
daemon thread, a ``BatchDispatcher`` and a delivery transport. Producers on
any thread call ``submit``, which never blocks. A ticker on the sender loop
drains and dispatches once per ``flush_interval_seconds``; ``flush`` does the
same on demand; ``shutdown`` drains everything queued and waits for all
deliveries.

State machine (one-way):

    ACTIVE -> SHUTTING_DOWN -> STOPPED

Entries submitted once shutdown has begun are discarded silently.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import contextlib
import threading
import types
from enum import Enum

from ..metrics.metrics import MetricsCollector
from . import diagnostics
from .app_context import AppContext, default_context
from .concurrency import NonBlockingRingQueue
from .envelope import LogEntry
from .settings import Settings
from .worker import BatchDispatcher, DeliveryTransport

_ABANDON_TIMEOUT_SECONDS = 1.0


class SenderState(str, Enum):
    ACTIVE = "active"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class Sender:
    """Batches entries and ships them through a delivery transport.

    Usage:
        with Sender(settings) as sender:
            sender.submit(entry)
            sender.flush()
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: DeliveryTransport | None = None,
        metrics: MetricsCollector | None = None,
        app: AppContext | None = None,
    ) -> None:
        cfg = settings.sender
        self._settings = settings
        self._app = app or default_context()
        self._metrics = metrics or MetricsCollector(enabled=cfg.enable_metrics)
        if transport is None:
            from ..sinks.http_client import HttpDeliveryTransport

            transport = HttpDeliveryTransport.from_settings(
                settings, metrics=self._metrics
            )
        self._transport = transport
        self._queue: NonBlockingRingQueue[LogEntry] = NonBlockingRingQueue(
            capacity=cfg.queue_capacity
        )
        self._dispatcher = BatchDispatcher(
            queue=self._queue,
            batch_max_size=cfg.batch_max_size,
            max_workers=cfg.max_workers,
            transport=transport,
            metrics=self._metrics,
        )
        self._flush_interval = cfg.flush_interval_seconds

        self._state = SenderState.ACTIVE
        # Guards state transitions and counts flush() calls in progress
        self._cond = threading.Condition()
        self._active_calls = 0
        self._stopped = threading.Event()

        self._ticker: asyncio.Task[None] | None = None
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._run_loop, name="logbull-sender", daemon=True
        )
        self._thread.start()
        self._loop.call_soon_threadsafe(self._start_ticker)
        self._app.register_sender(self)

    def __enter__(self) -> Sender:
        return self

    def __exit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc: BaseException | None,
        _tb: types.TracebackType | None,
    ) -> None:
        self.shutdown()

    @property
    def state(self) -> SenderState:
        return self._state

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    @property
    def queue_size(self) -> int:
        return self._queue.qsize()

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def _on_loop_thread(self) -> bool:
        return threading.current_thread() is self._thread

    def _start_ticker(self) -> None:
        if self._state is SenderState.ACTIVE:
            self._ticker = self._loop.create_task(self._tick())

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self._flush_interval)
            try:
                self._dispatcher.drain_and_dispatch()
            except Exception as exc:
                diagnostics.warn(
                    "sender",
                    "timed flush failed",
                    error_type=type(exc).__name__,
                    error=str(exc),
                )

    def submit(self, entry: LogEntry) -> bool:
        """Queue ``entry`` for delivery without blocking.

        Returns True if the entry was queued. A full queue drops the entry
        with a diagnostic; after shutdown has begun it is discarded silently.
        """
        if self._state is not SenderState.ACTIVE:
            return False
        if self._queue.try_enqueue(entry):
            self._metrics.record_submitted()
            return True
        if self._queue.closed:
            return False
        self._metrics.record_dropped()
        diagnostics.warn(
            "sender",
            "log queue full, dropping log entry",
            capacity=self._queue.capacity,
            _rate_limit_key="queue-full",
        )
        return False

    async def _flush_once(self) -> None:
        task = self._dispatcher.drain_and_dispatch()
        if task is not None:
            await asyncio.wait({task})

    def flush(self) -> None:
        """Dispatch up to one batch of queued entries and wait for its delivery."""
        if self._on_loop_thread():
            self._dispatcher.drain_and_dispatch()
            return
        with self._cond:
            if self._state is SenderState.STOPPED:
                return
            self._active_calls += 1
        try:
            asyncio.run_coroutine_threadsafe(self._flush_once(), self._loop).result()
        finally:
            with self._cond:
                self._active_calls -= 1
                self._cond.notify_all()

    async def _drain_and_close(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._ticker
        # The queue is closed, so this terminates
        while self._dispatcher.drain_and_dispatch() is not None:
            pass
        await self._dispatcher.wait_idle()
        await self._transport.aclose()

    async def _cancel_and_close(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
        await self._dispatcher.cancel_all()
        await self._transport.aclose()

    def _abandon_deliveries(self) -> None:
        """Cancel deliveries still running after a timed-out drain."""
        try:
            asyncio.run_coroutine_threadsafe(
                self._cancel_and_close(), self._loop
            ).result(_ABANDON_TIMEOUT_SECONDS)
        except Exception as exc:
            diagnostics.warn(
                "sender",
                "failed to release delivery resources",
                error_type=type(exc).__name__,
                error=str(exc),
            )

    def shutdown(self, timeout: float | None = None) -> None:
        """Drain queued entries, wait for in-flight deliveries, then stop.

        Runs once; concurrent or repeated calls wait for the first one to
        finish and return without raising.
        """
        if self._on_loop_thread():
            diagnostics.warn("sender", "shutdown called from the sender loop; ignored")
            return
        with self._cond:
            first = self._state is SenderState.ACTIVE
            if first:
                self._state = SenderState.SHUTTING_DOWN
        if not first:
            self._stopped.wait(timeout)
            return

        self._queue.close()
        try:
            future = asyncio.run_coroutine_threadsafe(
                self._drain_and_close(), self._loop
            )
            future.result(timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            diagnostics.warn(
                "sender",
                "shutdown timed out, abandoning in-flight deliveries",
                timeout_seconds=timeout,
                in_flight=self._dispatcher.in_flight,
            )
            self._abandon_deliveries()
        except Exception as exc:
            diagnostics.warn(
                "sender",
                "shutdown drain failed",
                error_type=type(exc).__name__,
                error=str(exc),
            )
        finally:
            with self._cond:
                self._state = SenderState.STOPPED
                while self._active_calls:
                    self._cond.wait()
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join()
            self._loop.close()
            self._app.unregister_sender(self)
            self._stopped.set()
