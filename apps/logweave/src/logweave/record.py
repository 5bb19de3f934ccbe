"""
Enriched record type and its canonical JSON form.
"""

from __future__ import annotations

import datetime as dt
import enum
import uuid
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any, FrozenSet

import orjson

from .levels import LogLevel

SERIALIZE_OPTIONS = orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS | orjson.OPT_UTC_Z | orjson.OPT_NAIVE_UTC


def orjson_dumps(v: Any, *, default: Any = str, option: int = SERIALIZE_OPTIONS) -> str:
    """Fast JSON serialization using orjson."""
    return orjson.dumps(v, default=default, option=option).decode()


# Range orjson accepts for integers.
_INT_MIN = -(2**63)
_INT_MAX = 2**64 - 1
_NATIVE_TYPES = (float, dt.datetime, dt.date, dt.time, uuid.UUID)
_NATIVE_KEY_TYPES = (str, int, float, bool, dt.datetime, dt.date, dt.time, uuid.UUID, enum.Enum)


def _safe_str(value: str) -> str:
    # Lone surrogates are not valid UTF-8.
    return value.encode("utf-8", "backslashreplace").decode("utf-8")


def _sanitize_key(key: Any) -> Any:
    if isinstance(key, str):
        return _safe_str(key)
    if key is None or isinstance(key, _NATIVE_KEY_TYPES):
        return key
    return _safe_str(str(key))


def _sanitize(value: Any, path: FrozenSet[int]) -> Any:
    """Rewrite ``value`` into something orjson always accepts."""
    if value is None or isinstance(value, (bool, enum.Enum, *_NATIVE_TYPES)):
        return value
    if isinstance(value, str):
        return _safe_str(value)
    if isinstance(value, int):
        return value if _INT_MIN <= value <= _INT_MAX else str(value)
    if isinstance(value, (Mapping, list, tuple, set, frozenset)):
        if id(value) in path:
            return "<cycle>"
        path = path | {id(value)}
        if isinstance(value, Mapping):
            return {_sanitize_key(k): _sanitize(v, path) for k, v in value.items()}
        return [_sanitize(item, path) for item in value]
    return _safe_str(str(value))


def serialize_record(fields: Mapping[str, Any]) -> str:
    """Canonical text of a record: compact JSON with sorted keys.

    Values orjson rejects (integers beyond 64 bits, lone surrogates, cycles,
    unsupported keys) are rewritten as text instead of failing.
    """
    try:
        return orjson_dumps(dict(fields))
    except TypeError:
        return orjson_dumps(_sanitize(fields, frozenset()))


class EnrichedRecord(Mapping[str, Any]):
    """Read-only view of a fully enriched record.

    The field mapping is frozen at construction; ``serialized`` is the text
    computed from exactly those fields and is never recomputed.
    """

    __slots__ = ("_fields", "_serialized")

    def __init__(self, fields: Mapping[str, Any], serialized: str) -> None:
        self._fields = MappingProxyType(dict(fields))
        self._serialized = serialized

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any]) -> EnrichedRecord:
        return cls(fields, serialize_record(fields))

    @property
    def serialized(self) -> str:
        return self._serialized

    @property
    def level(self) -> LogLevel:
        return LogLevel.parse(self._fields["level"])

    @property
    def message(self) -> str | None:
        return self._fields.get("message")

    @property
    def timestamp(self) -> str:
        return self._fields["timestamp"]

    def to_dict(self) -> dict[str, Any]:
        """Shallow, mutable copy of the fields."""
        return dict(self._fields)

    def __getitem__(self, key: str) -> Any:
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"EnrichedRecord({self._serialized})"
