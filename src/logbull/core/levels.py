"""Log level definitions and priority lookups.

LogBull understands five levels. Parsing is case-insensitive and accepts the
common aliases WARN and FATAL so that values coming from environment
variables or other logging frameworks map cleanly.

Example:
    >>> LogLevel.parse("warn")
    <LogLevel.WARNING: 'WARNING'>
    >>> LogLevel.ERROR.priority
    40
"""

from __future__ import annotations

from enum import Enum
from typing import Final

_LEVEL_PRIORITIES: Final[dict[str, int]] = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}

_ALIASES: Final[dict[str, str]] = {
    "WARN": "WARNING",
    "FATAL": "CRITICAL",
}


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def priority(self) -> int:
        return _LEVEL_PRIORITIES[self.value]

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str | LogLevel) -> LogLevel:
        """Parse a level name, accepting aliases.

        Raises:
            ValueError: If the name is not a known level.
        """
        if isinstance(value, LogLevel):
            return value
        name = str(value).strip().upper()
        name = _ALIASES.get(name, name)
        try:
            return cls(name)
        except ValueError:
            raise ValueError(
                f"Unknown log level '{value}'. "
                f"Expected one of: {', '.join(_LEVEL_PRIORITIES)}"
            ) from None


def get_level_priority(level: str | LogLevel) -> int:
    """Get priority for a level name. Unknown levels default to INFO (20)."""
    try:
        return LogLevel.parse(level).priority
    except ValueError:
        return _LEVEL_PRIORITIES["INFO"]


def is_enabled_for(level: LogLevel, minimum: LogLevel) -> bool:
    return level.priority >= minimum.priority


def level_from_stdlib(levelno: int) -> LogLevel:
    """Map a stdlib ``logging`` level number onto a LogBull level."""
    if levelno < 20:
        return LogLevel.DEBUG
    if levelno < 30:
        return LogLevel.INFO
    if levelno < 40:
        return LogLevel.WARNING
    if levelno < 50:
        return LogLevel.ERROR
    return LogLevel.CRITICAL
