"""Error taxonomy shared by the storage engine and the HTTP layer."""

from __future__ import annotations

from typing import Any


class ScribeError(Exception):
    """Base class for every error raised by the component engine."""

    status_code = 500

    def __init__(self, message: str, *, component: str | None = None, **details: Any) -> None:
        self.message = message
        self.component = component
        self.details = details
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.component:
            return f"[{self.component}] {self.message}"
        return self.message


class UnsupportedSchemaError(ScribeError):
    """A schema field is structurally invalid (missing type tag, bad name)."""

    status_code = 400


class InvalidComponentError(ScribeError):
    """The component name cannot be used as a table name."""

    status_code = 400


class RecordValidationError(ScribeError):
    """A record payload does not satisfy the schema supplied with the call."""

    status_code = 422


class NotFoundError(ScribeError):
    """The referenced record id does not exist in the component."""

    status_code = 404

    def __init__(self, component: str, record_id: int) -> None:
        super().__init__(f"Record with id={record_id} not found", component=component, record_id=record_id)
        self.record_id = record_id


class MigrationError(ScribeError):
    """Schema synchronization failed; nothing was written."""

    status_code = 503


class StorageError(ScribeError):
    """Generic storage failure while reading or writing records."""

    status_code = 503
