"""
Log entry construction.

A ``LogEntry`` is created once per log call, on the producer's thread, and is
immutable from then on: it travels through the queue and into a batch
without being copied or modified.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Sequence

from .levels import LogLevel
from .serialization import clean_text, sanitize_fields
from .timestamp import TimestampGenerator

MAX_MESSAGE_LENGTH = 10_000
_ELLIPSIS = "..."


def format_message(message: str) -> str:
    """Trim whitespace and cap the message at ``MAX_MESSAGE_LENGTH`` chars."""
    message = clean_text(message).strip()
    if len(message) > MAX_MESSAGE_LENGTH:
        message = message[: MAX_MESSAGE_LENGTH - len(_ELLIPSIS)] + _ELLIPSIS
    return message


@dataclass(frozen=True)
class LogEntry:
    level: LogLevel
    message: str
    timestamp: str
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Freeze the field mapping so the entry cannot change after creation
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level.value,
            "message": self.message,
            "timestamp": self.timestamp,
            "fields": dict(self.fields),
        }


@dataclass(frozen=True)
class LogBatch:
    """An ordered group of entries sent in one request."""

    entries: Sequence[LogEntry]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> LogEntry:
        return self.entries[index]

    def to_payload(self) -> dict[str, Any]:
        return {"logs": [entry.to_dict() for entry in self.entries]}


def build_entry(
    level: LogLevel,
    message: str,
    *,
    timestamps: TimestampGenerator,
    fields: Mapping[str, Any] | None = None,
) -> LogEntry:
    """Construct an entry, stamping it with the next unique timestamp."""
    return LogEntry(
        level=level,
        message=format_message(message),
        timestamp=timestamps.next(),
        fields=sanitize_fields(fields),
    )
