"""Row projection and storage error helpers shared by records and history."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager

from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import SQLAlchemyError

from scribe.core.errors import StorageError
from scribe.core.logging import get_logger
from scribe.models.records import StoredRecord
from scribe.models.tables import ACTOR_COLUMNS, TIMESTAMP_COLUMNS
from scribe.services.types import FieldMapping, TypeMapper

logger = get_logger(__name__)


@contextmanager
def storage_errors(component: str, operation: str) -> Iterator[None]:
    """Re-raise SQLAlchemy failures as ``StorageError``."""

    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("records.storage_failed", component=component, operation=operation, error=str(exc))
        raise StorageError(f"{operation} failed: {exc}", component=component, operation=operation) from exc


def project_record(row: RowMapping, mappings: Mapping[str, FieldMapping]) -> StoredRecord:
    """Decode a stored row into its API shape; NULL fields are left out."""

    record: StoredRecord = {"id": row["id"]}
    for name, mapping in mappings.items():
        value = row.get(name)
        if value is not None:
            record[name] = mapping.decode(value)
    for name in TIMESTAMP_COLUMNS:
        record[name] = TypeMapper.decode_timestamp(row.get(name))
    for name in ACTOR_COLUMNS:
        record[name] = row.get(name)
    return record
