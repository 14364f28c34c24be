"""Translate schema field declarations into storage columns and codecs."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from decimal import Decimal
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, Numeric, String, Text
from sqlalchemy.types import TypeEngine

from scribe.core.errors import RecordValidationError
from scribe.models.schema import FieldSpec

Codec = Callable[[Any], Any]

FALLBACK = "fallback"


@dataclass(slots=True, frozen=True)
class FieldMapping:
    """Storage column type plus the encode/decode pair for one field."""

    name: str
    kind: str
    column_type: TypeEngine
    encode: Codec
    decode: Codec

    @property
    def native(self) -> bool:
        return self.kind != FALLBACK

    def column(self) -> Column:
        # Columns stay nullable so that adding one never fails on existing rows.
        return Column(self.name, self.column_type, nullable=True)


def _identity(value: Any) -> Any:
    return value


def _serialize(value: Any) -> Any:
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=False)


def _decode_number(value: Any) -> Any:
    if isinstance(value, Decimal):
        value = float(value)
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _checked(name: str, expected: tuple[type, ...], label: str) -> Codec:
    def encode(value: Any) -> Any:
        if value is None:
            return None
        # bool is an int subclass; only boolean columns accept it
        if isinstance(value, bool) and bool not in expected:
            raise RecordValidationError(f"Field {name!r} expects {label}, got boolean.")
        if not isinstance(value, expected):
            raise RecordValidationError(f"Field {name!r} expects {label}, got {type(value).__name__}.")
        return value

    return encode


class TypeMapper:
    """Map declared JSON types to SQL column types.

    Known types get a native column. Everything else, and every column added
    to an existing table, is stored as serialized JSON text and returned
    verbatim, so ``"woot"`` reads back as ``'"woot"'``.
    """

    def __init__(self, naive_timezone: tzinfo | str = "UTC") -> None:
        if isinstance(naive_timezone, str):
            naive_timezone = timezone.utc if naive_timezone.upper() == "UTC" else ZoneInfo(naive_timezone)
        self.naive_timezone = naive_timezone

    def declared_kind(self, field: FieldSpec) -> str:
        if field.is_timestamp:
            return "timestamp"
        if field.type in ("object", "array"):
            return "json"
        if field.type in ("string", "number", "integer", "boolean"):
            return field.type
        return FALLBACK

    def map_field(self, field: FieldSpec) -> FieldMapping:
        """Native mapping for a field declared when its table is created."""

        return self._for_kind(field.name, self.declared_kind(field))

    def fallback(self, name: str) -> FieldMapping:
        return self._for_kind(name, FALLBACK)

    def from_live(self, name: str, live_type: TypeEngine) -> FieldMapping:
        """Recover the mapping of an existing column from its reflected type."""

        # Text must be tested before String: it is the fallback marker.
        if isinstance(live_type, Text):
            kind = FALLBACK
        elif isinstance(live_type, JSON):
            kind = "json"
        elif isinstance(live_type, DateTime):
            kind = "timestamp"
        elif isinstance(live_type, Boolean):
            kind = "boolean"
        elif isinstance(live_type, Integer):
            kind = "integer"
        elif isinstance(live_type, Numeric):
            kind = "number"
        elif isinstance(live_type, String):
            kind = "string"
        else:
            kind = FALLBACK
        return self._for_kind(name, kind)

    def _for_kind(self, name: str, kind: str) -> FieldMapping:
        if kind == "string":
            return FieldMapping(name, kind, String(), _checked(name, (str,), "a string"), _identity)
        if kind == "timestamp":
            return FieldMapping(name, kind, DateTime(), self.encode_timestamp, self.decode_timestamp)
        if kind == "number":
            encode = _checked(name, (int, float, Decimal), "a number")
            return FieldMapping(name, kind, Numeric(asdecimal=False), encode, _decode_number)
        if kind == "integer":
            return FieldMapping(name, kind, Integer(), _checked(name, (int,), "an integer"), _identity)
        if kind == "boolean":
            return FieldMapping(name, kind, Boolean(), _checked(name, (bool,), "a boolean"), _identity)
        if kind == "json":
            return FieldMapping(name, kind, JSON(none_as_null=True), _identity, _identity)
        return FieldMapping(name, FALLBACK, Text(), _serialize, _identity)

    def encode_timestamp(self, value: Any) -> datetime | None:
        """Normalize a timestamp to naive UTC for storage."""

        if value is None:
            return None

        if isinstance(value, str):
            raw = value.strip()
            if raw[-1:] in ("Z", "z"):
                raw = f"{raw[:-1]}+00:00"
            try:
                value = datetime.fromisoformat(raw)
            except ValueError as exc:
                raise RecordValidationError(f"Invalid ISO-8601 timestamp {value!r}.") from exc
        elif not isinstance(value, datetime):
            raise RecordValidationError(f"Timestamps must be ISO-8601 strings, got {type(value).__name__}.")

        if value.tzinfo is None:
            value = value.replace(tzinfo=self.naive_timezone)
        try:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        except (OverflowError, ValueError) as exc:
            raise RecordValidationError(f"Timestamp {value.isoformat()} is out of range in UTC.") from exc

    @staticmethod
    def decode_timestamp(value: Any) -> str | None:
        """Render a stored timestamp as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""

        if value is None:
            return None
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return f"{value:%Y-%m-%dT%H:%M:%S}.{value.microsecond // 1000:03d}Z"
