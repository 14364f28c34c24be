"""Pydantic and typed shapes for record payloads and projections."""

from __future__ import annotations

from typing import Any, TypedDict

from pydantic import BaseModel, ConfigDict, Field

StoredRecord = dict[str, Any]


class HistoryEntry(TypedDict):
    id: int
    history: list[StoredRecord]


class RecordPayload(BaseModel):
    """Body of a create or replace call.

    Schema-declared fields arrive as extra keys next to the bookkeeping
    attributes, e.g. ``{"data": {...}, "created_by": 2, "new_column": "x"}``.
    """

    model_config = ConfigDict(extra="allow")

    date_created: Any = Field(default=None, description="ISO-8601 creation timestamp.")
    date_modified: Any = Field(default=None, description="ISO-8601 modification timestamp.")
    created_by: Any = Field(default=None, description="Opaque actor identifier.")
    modified_by: Any = Field(default=None, description="Opaque actor identifier.")

    def as_mapping(self) -> dict[str, Any]:
        """Return only the keys the caller actually sent."""

        values = {
            name: getattr(self, name)
            for name in type(self).model_fields
            if name in self.model_fields_set
        }
        values.update(self.model_extra or {})
        return values
