"""
Public entrypoints for logbull.

Provides ``get_logger()`` and ``runtime()``; everything else is re-exported
for convenience.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from ._version import __version__
from .core.app_context import AppContext, default_context
from .core.envelope import LogBatch, LogEntry
from .core.errors import ConfigurationError, LogBullError
from .core.levels import LogLevel
from .core.logger import LogBullLogger
from .core.sender import Sender, SenderState
from .core.settings import SenderSettings, Settings, load_settings
from .core.timestamp import TimestampGenerator
from .handlers.stdlib import LogBullHandler

__all__ = [
    "AppContext",
    "ConfigurationError",
    "LogBatch",
    "LogBullError",
    "LogBullHandler",
    "LogBullLogger",
    "LogEntry",
    "LogLevel",
    "Sender",
    "SenderSettings",
    "SenderState",
    "Settings",
    "TimestampGenerator",
    "VERSION",
    "__version__",
    "default_context",
    "get_logger",
    "load_settings",
    "runtime",
]


def get_logger(
    *,
    settings: Settings | None = None,
    timestamps: TimestampGenerator | None = None,
    app: AppContext | None = None,
    **overrides: Any,
) -> LogBullLogger:
    """Return a ready-to-use logger.

    Keyword overrides win over ``settings``; without ``settings`` the
    remaining values are read from ``LOGBULL_*`` environment variables.
    Loggers share the timestamp generator of ``app``, by default the
    process-wide ``default_context()``.

    Example:
        logger = get_logger(
            project_id="12345678-1234-1234-1234-123456789012",
            host="https://logbull.example.com",
            api_key="my-api-key-123",
        )
        logger.info("service started", version="1.4.2")
        logger.shutdown()

    Raises:
        ConfigurationError: If the project id, host or API key is malformed.
    """
    return LogBullLogger(
        load_settings(settings, **overrides), timestamps=timestamps, app=app
    )


@contextmanager
def runtime(
    *,
    settings: Settings | None = None,
    app: AppContext | None = None,
    **overrides: Any,
) -> Iterator[LogBullLogger]:
    """Context manager that creates a logger and drains it on exit."""
    logger = get_logger(settings=settings, app=app, **overrides)
    try:
        yield logger
    finally:
        logger.shutdown()


VERSION = __version__
