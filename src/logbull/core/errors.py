"""
Exception hierarchy for logbull.

Only configuration problems are ever raised to application code. Everything
that happens after a logger is constructed (validation failures, transport
errors, server-side rejections) is reported through diagnostics instead.
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    SERIALIZATION = "serialization"
    TRANSPORT = "transport"


class LogBullError(Exception):
    """Base class for all logbull errors."""

    category: ErrorCategory = ErrorCategory.CONFIGURATION

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class ConfigurationError(LogBullError, ValueError):
    """Malformed project id, host URL, API key or tunable."""

    category = ErrorCategory.CONFIGURATION


class EntryValidationError(LogBullError, ValueError):
    """A log message or field set failed the pre-enqueue checks."""

    category = ErrorCategory.VALIDATION


class SerializationError(LogBullError):
    """A batch could not be encoded to the wire format."""

    category = ErrorCategory.SERIALIZATION
