"""Component schema values parsed from JSON-Schema-like documents."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict

from scribe.core.errors import UnsupportedSchemaError

SYSTEM_COLUMNS = ("id", "date_created", "date_modified", "created_by", "modified_by")
# owned by the history table; never valid as declared fields
HISTORY_COLUMNS = ("history_id", "archived_at")
DEFAULT_SCHEMA_PATH = Path(__file__).with_name("default.table.schema.json")

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
MAX_IDENTIFIER_LENGTH = 63


class FieldSpec(BaseModel):
    """One declared field: name, JSON type tag, optional format, required flag."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    format: str | None = None
    required: bool = False

    @property
    def is_timestamp(self) -> bool:
        return self.type == "string" and self.format == "date-time"


class ComponentSchema(BaseModel):
    """Immutable, ordered set of fields supplied alongside every operation."""

    model_config = ConfigDict(frozen=True)

    properties: tuple[FieldSpec, ...] = ()

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> ComponentSchema:
        """Parse a ``{"properties": ..., "required": [...]}`` document."""

        if not isinstance(document, Mapping):
            raise UnsupportedSchemaError("Schema document must be a JSON object.")

        properties = document.get("properties") or {}
        if not isinstance(properties, Mapping):
            raise UnsupportedSchemaError("Schema 'properties' must be a JSON object.")

        required = document.get("required") or []
        if not isinstance(required, list) or not all(isinstance(name, str) for name in required):
            raise UnsupportedSchemaError("Schema 'required' must be a list of field names.")

        fields = tuple(
            _parse_field(name, declaration, required=name in required)
            for name, declaration in properties.items()
        )

        # SQLite and unquoted SQL compare column names case-insensitively
        seen: dict[str, str] = {name: name for name in SYSTEM_COLUMNS}
        for field in fields:
            folded = field.name.lower()
            if folded in seen and seen[folded] != field.name:
                raise UnsupportedSchemaError(
                    f"Field {field.name!r} differs from {seen[folded]!r} only by case."
                )
            seen[folded] = field.name
        return cls(properties=fields)

    @property
    def data_fields(self) -> tuple[FieldSpec, ...]:
        """Declared fields stored as ordinary columns (system columns excluded)."""

        return tuple(field for field in self.properties if field.name not in SYSTEM_COLUMNS)

    @property
    def required_fields(self) -> tuple[str, ...]:
        return tuple(field.name for field in self.data_fields if field.required)

    def get(self, name: str) -> FieldSpec | None:
        for field in self.properties:
            if field.name == name:
                return field
        return None


def _parse_field(name: Any, declaration: Any, *, required: bool) -> FieldSpec:
    if not isinstance(name, str) or not is_identifier(name):
        raise UnsupportedSchemaError(f"Field name {name!r} is not a valid identifier.")

    if name.lower() in HISTORY_COLUMNS:
        raise UnsupportedSchemaError(f"Field name {name!r} is reserved for record history.")

    if not isinstance(declaration, Mapping):
        raise UnsupportedSchemaError(f"Field {name!r} must be declared as a JSON object.")

    type_tag = declaration.get("type")
    if isinstance(type_tag, list):
        candidates = [tag for tag in type_tag if tag != "null"]
        type_tag = candidates[0] if candidates else None

    if not isinstance(type_tag, str) or not type_tag.strip():
        raise UnsupportedSchemaError(f"Field {name!r} is missing a type tag.")

    field_format = declaration.get("format")
    if field_format is not None and not isinstance(field_format, str):
        raise UnsupportedSchemaError(f"Field {name!r} has a non-string format.")

    return FieldSpec(name=name, type=type_tag.strip(), format=field_format, required=required)


def is_identifier(name: str) -> bool:
    return len(name) <= MAX_IDENTIFIER_LENGTH and bool(IDENTIFIER_PATTERN.match(name))


def load_schema(path: str | Path | None = None) -> ComponentSchema:
    """Read a schema document from disk, defaulting to the packaged schema."""

    schema_path = Path(path) if path else DEFAULT_SCHEMA_PATH
    try:
        document = json.loads(schema_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise UnsupportedSchemaError(f"Schema file {schema_path} is not valid JSON: {exc}") from exc
    return ComponentSchema.from_document(document)
