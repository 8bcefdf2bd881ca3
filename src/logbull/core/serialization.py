"""
Field sanitization and wire serialization.

Fields attached to a log entry can hold arbitrary Python objects, while the
wire format is JSON. ``sanitize_fields`` normalizes every value into the JSON
variant model (str, int, float, bool, None, list, dict with string keys) up
front, so that a batch can always be encoded later and a single bad value
never costs the whole batch.

Encoding uses orjson and exposes bytes directly through ``SerializedView``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import orjson

from .errors import SerializationError

_ORJSON_OPTIONS = orjson.OPT_NON_STR_KEYS


def _default(obj: Any) -> Any:
    """Default serializer hook for unsupported types.

    Keep minimal; prefer upstream objects to be plain JSON types already.
    """
    if hasattr(obj, "model_dump"):
        return obj.model_dump(exclude_none=True)
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


@dataclass
class SerializedView:
    """A lightweight container exposing zero-copy friendly views."""

    data: bytes

    @property
    def view(self) -> memoryview:
        return memoryview(self.data)

    def __bytes__(self) -> bytes:
        return self.data


def clean_text(value: str) -> str:
    """Escape lone surrogates, which UTF-8 JSON cannot carry.

    They come from ``os.fsdecode`` or ``surrogateescape`` decoding; the
    result is stable under repeated application.
    """
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        return value.encode("utf-8", "backslashreplace").decode("utf-8")
    return value


def _to_debug_string(value: Any) -> str:
    try:
        text = repr(value)
    except Exception:
        text = object.__repr__(value)
    return clean_text(text)


def sanitize_value(value: Any) -> Any:
    """Normalize one field value into the JSON variant model.

    Containers and orjson-native types (dataclasses, datetimes, UUIDs,
    enums, pydantic models) are replaced by their decoded JSON form. Values
    that cannot be encoded at all become their ``repr``.
    """
    if isinstance(value, str):
        return clean_text(value)
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)
    if isinstance(value, int):
        # orjson rejects integers outside the 64-bit range
        if -(2**63) <= value < 2**64:
            return value
        return str(value)
    try:
        return orjson.loads(
            orjson.dumps(value, default=_default, option=_ORJSON_OPTIONS)
        )
    except TypeError:
        return _to_debug_string(value)


def sanitize_fields(fields: Mapping[Any, Any] | None) -> dict[str, Any]:
    """Return a serialization-safe copy of ``fields``.

    Keys are trimmed and entries with an empty key are dropped. The result
    is stable under repeated application.
    """
    if not fields:
        return {}
    sanitized: dict[str, Any] = {}
    for key, value in fields.items():
        name = clean_text(key if isinstance(key, str) else str(key)).strip()
        if not name:
            continue
        sanitized[name] = sanitize_value(value)
    return sanitized


def merge_fields(
    base: Mapping[Any, Any] | None,
    overlay: Mapping[Any, Any] | None,
) -> dict[str, Any]:
    """Merge two field sets; keys from ``overlay`` win on conflict."""
    merged = sanitize_fields(base)
    merged.update(sanitize_fields(overlay))
    return merged


def serialize_mapping_to_json_bytes(payload: Mapping[str, Any]) -> SerializedView:
    """Serialize mapping to JSON bytes using orjson without intermediate str."""
    try:
        data = orjson.dumps(payload, default=_default, option=_ORJSON_OPTIONS)
    except TypeError as e:
        raise SerializationError("Serialization failed", cause=e) from e
    return SerializedView(data=data)


def serialize_logs(logs: Iterable[Mapping[str, Any]]) -> SerializedView:
    """Encode entries as the ``{"logs": [...]}`` request body."""
    return serialize_mapping_to_json_bytes({"logs": list(logs)})
