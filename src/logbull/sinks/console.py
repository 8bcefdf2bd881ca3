from __future__ import annotations

import sys
import threading
from typing import TextIO

from ..core.envelope import LogEntry
from ..core.levels import LogLevel

_STDERR_LEVELS = frozenset({LogLevel.ERROR, LogLevel.CRITICAL})


def format_console_line(entry: LogEntry) -> str:
    line = f"[{entry.timestamp}] [{entry.level.value}] {entry.message}"
    if entry.fields:
        pairs = ", ".join(f"{key}={value}" for key, value in entry.fields.items())
        line += f" ({pairs})"
    return line


class ConsoleSink:
    """Echoes entries as human-readable lines.

    - ERROR and CRITICAL go to stderr, everything else to stdout
    - One lock per sink keeps lines from different threads intact
    - Never raises upstream; errors are contained
    """

    def __init__(
        self,
        *,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        self._stdout = stdout
        self._stderr = stderr
        self._lock = threading.Lock()

    def write(self, entry: LogEntry) -> None:
        # Resolve streams late so pytest's capsys and redirects are honoured
        if entry.level in _STDERR_LEVELS:
            stream = self._stderr or sys.stderr
        else:
            stream = self._stdout or sys.stdout
        try:
            line = format_console_line(entry)
            with self._lock:
                stream.write(line + "\n")
                stream.flush()
        except Exception:
            # Contain sink errors; do not propagate
            return None
