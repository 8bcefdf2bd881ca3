"""
Process-level state shared by every logbull logger.

An ``AppContext`` owns the one ``TimestampGenerator`` all loggers stamp
entries with, so that timestamps stay unique and ordered across loggers and
handlers, and the collection of live senders drained at interpreter exit.

Loggers, handlers and senders that are not given a context use the default
one returned by ``default_context()``. Tests and embedding applications can
create their own and pass it explicitly.

The atexit drain is best-effort: each live sender gets
``sender.atexit_drain_timeout_seconds`` to deliver what it still holds.
"""

from __future__ import annotations

import atexit
import threading
import weakref
from typing import TYPE_CHECKING

from . import diagnostics
from .timestamp import TimestampGenerator

if TYPE_CHECKING:
    from .sender import Sender


class AppContext:
    """Shared timestamp generator plus a weak registry of live senders."""

    def __init__(self, *, timestamps: TimestampGenerator | None = None) -> None:
        self._timestamps = timestamps or TimestampGenerator()
        # WeakSet so that registration never keeps a sender alive
        self._senders: weakref.WeakSet[Sender] = weakref.WeakSet()
        self._lock = threading.Lock()

    @property
    def timestamps(self) -> TimestampGenerator:
        return self._timestamps

    def register_sender(self, sender: Sender) -> None:
        with self._lock:
            self._senders.add(sender)

    def unregister_sender(self, sender: Sender) -> None:
        with self._lock:
            self._senders.discard(sender)

    def live_senders(self) -> list[Sender]:
        with self._lock:
            return list(self._senders)

    def drain_at_exit(self) -> None:
        """Shut down every live sender that opted into the exit drain."""
        for sender in self.live_senders():
            cfg = sender.settings.sender
            if not cfg.atexit_drain_enabled:
                continue
            try:
                sender.shutdown(timeout=cfg.atexit_drain_timeout_seconds)
            except Exception as exc:
                diagnostics.warn(
                    "app-context",
                    "exit drain failed",
                    error_type=type(exc).__name__,
                    error=str(exc),
                )


_default_context = AppContext()


def default_context() -> AppContext:
    return _default_context


def _atexit_handler() -> None:
    _default_context.drain_at_exit()


atexit.register(_atexit_handler)
