"""
User-facing logger.

``LogBullLogger`` filters by level, validates input, merges persistent
context with per-call fields, stamps the entry, echoes it to the console and
hands it to the sender. It never raises for bad input or delivery problems.

Example:
    logger = LogBullLogger(load_settings(project_id=..., host=...))
    request_log = logger.with_context({"request_id": "abc"})
    request_log.info("user logged in", user_id=42)
    logger.shutdown()
"""

from __future__ import annotations

import types
from typing import Any, Mapping

from . import diagnostics
from .app_context import AppContext, default_context
from .envelope import LogEntry, build_entry
from .errors import EntryValidationError
from .levels import LogLevel, is_enabled_for
from .sender import Sender
from .serialization import merge_fields
from .settings import Settings, load_settings
from .timestamp import TimestampGenerator
from .validation import validate_log_fields, validate_log_message


class LogBullLogger:
    """Structured logger that ships entries to LogBull.

    Without both ``project_id`` and ``host`` configured the logger runs in
    console-only mode: entries are echoed locally and never sent.

    Entries are stamped by the app context's shared generator unless
    ``timestamps`` is given, so ordering holds across every logger and
    handler in the process.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        sender: Sender | None = None,
        timestamps: TimestampGenerator | None = None,
        console: Any | None = None,
        context: Mapping[str, Any] | None = None,
        app: AppContext | None = None,
    ) -> None:
        self._settings = settings if settings is not None else load_settings()
        self._app = app or default_context()
        if sender is None and not self._settings.console_only:
            sender = Sender(self._settings, app=self._app)
        self._sender = sender
        self._timestamps = timestamps or self._app.timestamps
        if console is None and self._settings.console_echo:
            from ..sinks.console import ConsoleSink

            console = ConsoleSink()
        self._console = console
        self._context: dict[str, Any] = merge_fields(None, context)

    def __enter__(self) -> LogBullLogger:
        return self

    def __exit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc: BaseException | None,
        _tb: types.TracebackType | None,
    ) -> None:
        self.shutdown()

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def sender(self) -> Sender | None:
        return self._sender

    @property
    def console_only(self) -> bool:
        return self._sender is None

    @property
    def min_level(self) -> LogLevel:
        return self._settings.log_level

    @property
    def context(self) -> dict[str, Any]:
        return dict(self._context)

    def with_context(self, context: Mapping[str, Any]) -> LogBullLogger:
        """Return a child logger whose entries carry ``context`` as well.

        The child shares this logger's sender, settings and timestamp
        generator; keys in ``context`` override inherited ones.
        """
        child = LogBullLogger.__new__(LogBullLogger)
        child._settings = self._settings
        child._app = self._app
        child._sender = self._sender
        child._timestamps = self._timestamps
        child._console = self._console
        child._context = merge_fields(self._context, context)
        return child

    def is_enabled_for(self, level: LogLevel) -> bool:
        return is_enabled_for(level, self._settings.log_level)

    def debug(
        self, message: str, fields: Mapping[str, Any] | None = None, **extra: Any
    ) -> None:
        self.log(LogLevel.DEBUG, message, fields, **extra)

    def info(
        self, message: str, fields: Mapping[str, Any] | None = None, **extra: Any
    ) -> None:
        self.log(LogLevel.INFO, message, fields, **extra)

    def warning(
        self, message: str, fields: Mapping[str, Any] | None = None, **extra: Any
    ) -> None:
        self.log(LogLevel.WARNING, message, fields, **extra)

    def error(
        self, message: str, fields: Mapping[str, Any] | None = None, **extra: Any
    ) -> None:
        self.log(LogLevel.ERROR, message, fields, **extra)

    def critical(
        self, message: str, fields: Mapping[str, Any] | None = None, **extra: Any
    ) -> None:
        self.log(LogLevel.CRITICAL, message, fields, **extra)

    def log(
        self,
        level: LogLevel | str,
        message: str,
        fields: Mapping[str, Any] | None = None,
        **extra: Any,
    ) -> None:
        try:
            parsed = LogLevel.parse(level)
        except ValueError as exc:
            diagnostics.warn(
                "logger",
                "invalid log entry dropped",
                reason=str(exc),
                level=str(level),
            )
            return
        if extra:
            fields = {**fields, **extra} if fields else extra
        self.emit(parsed, message, fields)

    def emit(
        self,
        level: LogLevel,
        message: str,
        fields: Mapping[str, Any] | None = None,
        *,
        validate: bool = True,
    ) -> LogEntry | None:
        """Build and ship one entry; returns it, or None if it was dropped."""
        if not self.is_enabled_for(level):
            return None
        if validate:
            try:
                validate_log_message(message)
                validate_log_fields(fields)
            except EntryValidationError as exc:
                diagnostics.warn(
                    "logger",
                    "invalid log entry dropped",
                    reason=exc.message,
                    level=level.value,
                )
                return None

        entry = build_entry(
            level,
            str(message),
            timestamps=self._timestamps,
            fields=merge_fields(self._context, fields),
        )
        if self._console is not None:
            self._console.write(entry)
        if self._sender is not None:
            self._sender.submit(entry)
        return entry

    def flush(self) -> None:
        if self._sender is not None:
            self._sender.flush()

    def shutdown(self, timeout: float | None = None) -> None:
        if self._sender is not None:
            self._sender.shutdown(timeout)
