"""
Internal diagnostics for non-fatal pipeline problems.

logbull never raises to application code once a logger is running. Dropped
entries, transport failures and server-side rejections are reported here as
structured JSON lines on stderr instead.

Usage:
    from logbull.core import diagnostics

    diagnostics.warn("sender", "log queue full, dropping entry",
                     _rate_limit_key="queue-full")

Diagnostics are enabled by default and can be turned off with
``LOGBULL_DIAGNOSTICS_ENABLED=false``. The writer can be swapped in tests via
``set_writer_for_tests``.
"""

from __future__ import annotations

import os
import sys
import threading
import time
from typing import Any, Callable

import orjson

Writer = Callable[[dict[str, Any]], None]

# Cached on first use; tests reset it to None for isolation
_internal_logging_enabled: bool | None = None

_writer: Writer | None = None

# Per-key token window: at most _RATE_LIMIT_MAX diagnostics per window
_RATE_LIMIT_WINDOW_SECONDS = 1.0
_RATE_LIMIT_MAX = 5
_rate_lock = threading.Lock()
_rate_windows: dict[str, tuple[float, int]] = {}


def _is_enabled() -> bool:
    global _internal_logging_enabled
    if _internal_logging_enabled is None:
        raw = os.getenv("LOGBULL_DIAGNOSTICS_ENABLED", "true").strip().lower()
        _internal_logging_enabled = raw not in {"0", "false", "no", "off"}
    return _internal_logging_enabled


def _default_writer(payload: dict[str, Any]) -> None:
    line = orjson.dumps(payload, default=repr) + b"\n"
    stream = sys.stderr
    buffer = getattr(stream, "buffer", None)
    if buffer is not None:
        buffer.write(line)
        buffer.flush()
    else:
        stream.write(line.decode("utf-8"))
        stream.flush()


def set_writer_for_tests(writer: Writer | None) -> None:
    """Replace the diagnostics writer; pass None to restore stderr output."""
    global _writer
    _writer = writer
    reset_rate_limits()


def reset_rate_limits() -> None:
    with _rate_lock:
        _rate_windows.clear()


def _allow(key: str | None) -> bool:
    if key is None:
        return True
    now = time.monotonic()
    with _rate_lock:
        start, count = _rate_windows.get(key, (now, 0))
        if now - start >= _RATE_LIMIT_WINDOW_SECONDS:
            start, count = now, 0
        if count >= _RATE_LIMIT_MAX:
            _rate_windows[key] = (start, count)
            return False
        _rate_windows[key] = (start, count + 1)
        return True


def _emit(
    level: str,
    component: str,
    message: str,
    rate_limit_key: str | None,
    fields: dict[str, Any],
) -> None:
    if not _is_enabled():
        return
    if not _allow(rate_limit_key):
        return
    payload: dict[str, Any] = {
        "ts": time.time(),
        "level": level,
        "logger": "logbull",
        "component": component,
        "message": message,
    }
    payload.update(fields)
    try:
        (_writer or _default_writer)(payload)
    except Exception:
        # Diagnostics must never break the pipeline
        pass


def warn(
    component: str,
    message: str,
    *,
    _rate_limit_key: str | None = None,
    **fields: Any,
) -> None:
    """Emit a WARN diagnostic for a contained, non-fatal problem."""
    _emit("WARN", component, message, _rate_limit_key, fields)


def debug(
    component: str,
    message: str,
    *,
    _rate_limit_key: str | None = None,
    **fields: Any,
) -> None:
    _emit("DEBUG", component, message, _rate_limit_key, fields)
