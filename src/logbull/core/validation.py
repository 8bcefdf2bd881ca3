"""
Validation of configuration values and of log input.

Configuration validators raise ``ValueError`` so they can be used directly
as pydantic field validators; ``Settings`` turns them into
``ConfigurationError`` at load time. Input validators raise
``EntryValidationError``; the logger reports those as diagnostics and drops
the entry.
"""

from __future__ import annotations

import re
from typing import Any, Final, Mapping
from urllib.parse import urlparse

from .errors import EntryValidationError

_UUID_PATTERN: Final = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
_API_KEY_PATTERN: Final = re.compile(r"^[a-zA-Z0-9_\-.]{10,}$")

MAX_MESSAGE_LENGTH: Final = 10_000
MAX_FIELDS_COUNT: Final = 100
MAX_FIELD_KEY_LENGTH: Final = 100


def validate_project_id(project_id: str) -> str:
    project_id = project_id.strip()
    if not project_id:
        raise ValueError("project ID cannot be empty")
    if not _UUID_PATTERN.match(project_id):
        raise ValueError(
            f"invalid project ID format '{project_id}'. Must be a valid UUID "
            "format: xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx"
        )
    return project_id


def validate_host_url(host: str) -> str:
    host = host.strip()
    if not host:
        raise ValueError("host URL cannot be empty")
    try:
        parsed = urlparse(host)
    except ValueError as e:
        raise ValueError(f"invalid host URL format: {e}") from e
    if parsed.scheme not in ("http", "https"):
        raise ValueError(
            f"host URL must use http or https scheme, got: {parsed.scheme}"
        )
    if not parsed.netloc:
        raise ValueError("host URL must have a host component")
    return host.rstrip("/")


def validate_api_key(api_key: str) -> str:
    api_key = api_key.strip()
    if len(api_key) < 10:
        raise ValueError("API key must be at least 10 characters long")
    if not _API_KEY_PATTERN.match(api_key):
        raise ValueError(
            "invalid API key format. API key must contain only alphanumeric "
            "characters, underscores, hyphens, and dots"
        )
    return api_key


def validate_log_message(message: Any) -> None:
    if not isinstance(message, str):
        raise EntryValidationError(
            f"log message must be a string, got {type(message).__name__}"
        )
    message = message.strip()
    if not message:
        raise EntryValidationError("log message cannot be empty")
    if len(message) > MAX_MESSAGE_LENGTH:
        raise EntryValidationError(
            f"log message too long ({len(message)} chars). "
            f"Maximum allowed: {MAX_MESSAGE_LENGTH}"
        )


def validate_log_fields(fields: Mapping[Any, Any] | None) -> None:
    if fields is None:
        return
    if len(fields) > MAX_FIELDS_COUNT:
        raise EntryValidationError(
            f"too many fields ({len(fields)}). Maximum allowed: {MAX_FIELDS_COUNT}"
        )
    for key in fields:
        name = str(key).strip()
        if not name:
            raise EntryValidationError("field key cannot be empty")
        if len(name) > MAX_FIELD_KEY_LENGTH:
            raise EntryValidationError(
                f"field key too long ({len(name)} chars). "
                f"Maximum: {MAX_FIELD_KEY_LENGTH}"
            )
