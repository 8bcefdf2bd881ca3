"""
Bridge from the standard library ``logging`` module into logbull.

Attach ``LogBullHandler`` to any stdlib logger and its records are shipped
like native logbull entries:

    import logging
    from logbull.handlers import LogBullHandler

    handler = LogBullHandler(project_id="...", host="https://logbull.example")
    logging.getLogger().addHandler(handler)
    logging.getLogger("app").warning("disk low", extra={"free_mb": 120})

Values passed through ``extra=`` become entry fields. The handler does its
own level filtering from the configured minimum level; console echo is off
by default since stdlib logging usually has its own console handler.
"""

from __future__ import annotations

import logging
from typing import Any

from ..core.app_context import AppContext
from ..core.levels import LogLevel, level_from_stdlib
from ..core.logger import LogBullLogger
from ..core.settings import Settings, load_settings

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset(
    logging.LogRecord(
        name="", level=0, pathname="", lineno=0, msg="", args=None, exc_info=None
    ).__dict__
) | {"message", "asctime", "taskName"}

_STDLIB_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL,
}


class LogBullHandler(logging.Handler):
    """``logging.Handler`` that forwards records to a ``LogBullLogger``."""

    def __init__(
        self,
        logger: LogBullLogger | None = None,
        *,
        settings: Settings | None = None,
        app: AppContext | None = None,
        **overrides: Any,
    ) -> None:
        if logger is None:
            overrides.setdefault("console_echo", False)
            logger = LogBullLogger(load_settings(settings, **overrides), app=app)
        super().__init__(level=_STDLIB_LEVELS[logger.min_level])
        self._logger = logger

    @property
    def logger(self) -> LogBullLogger:
        return self._logger

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = record.getMessage()
            fields = self._record_fields(record)
            self._logger.emit(
                level_from_stdlib(record.levelno),
                message,
                fields,
                validate=False,
            )
        except Exception:
            self.handleError(record)

    def _record_fields(self, record: logging.LogRecord) -> dict[str, Any]:
        fields: dict[str, Any] = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        fields.setdefault("logger", record.name)
        if record.exc_info:
            formatter = self.formatter or logging.Formatter()
            fields.setdefault("exception", formatter.formatException(record.exc_info))
        return fields

    def flush(self) -> None:
        self._logger.flush()

    def close(self) -> None:
        try:
            self._logger.shutdown()
        finally:
            super().close()
