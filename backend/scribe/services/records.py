"""Create, read, update and delete current records of a component."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, insert, select, update
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncConnection

from scribe.core.errors import NotFoundError, RecordValidationError
from scribe.core.logging import get_logger
from scribe.models.records import StoredRecord
from scribe.models.schema import SYSTEM_COLUMNS
from scribe.services.history import HistoryStore
from scribe.services.rows import project_record, storage_errors
from scribe.services.sync import ComponentLayout
from scribe.services.types import TypeMapper

logger = get_logger(__name__)


class RecordRepository:
    """Stateless access to a component's primary table.

    Every mutating or query method returns a list, even for a single record.
    """

    def __init__(self, mapper: TypeMapper, history: HistoryStore) -> None:
        self._mapper = mapper
        self._history = history

    async def insert(
        self,
        connection: AsyncConnection,
        layout: ComponentLayout,
        payload: Mapping[str, Any],
    ) -> list[StoredRecord]:
        values = self._encode(layout, payload, creating=True)

        with storage_errors(layout.component, "insert"):
            result = await connection.execute(insert(layout.table).values(**values))
            record_id = result.inserted_primary_key[0]
            row = await self._fetch_row(connection, layout, record_id)

        logger.info("records.inserted", component=layout.component, record_id=record_id)
        return [project_record(row, layout.mappings)]

    async def select_all(self, connection: AsyncConnection, layout: ComponentLayout) -> list[StoredRecord]:
        stmt = select(layout.table).order_by(layout.table.c.id)
        with storage_errors(layout.component, "select_all"):
            result = await connection.execute(stmt)
            rows = result.mappings().all()
        return [project_record(row, layout.mappings) for row in rows]

    async def select_one(
        self,
        connection: AsyncConnection,
        layout: ComponentLayout,
        record_id: int,
    ) -> list[StoredRecord]:
        with storage_errors(layout.component, "select_one"):
            row = await self._fetch_row(connection, layout, record_id)
        if row is None:
            raise NotFoundError(layout.component, record_id)
        return [project_record(row, layout.mappings)]

    async def update(
        self,
        connection: AsyncConnection,
        layout: ComponentLayout,
        record_id: int,
        payload: Mapping[str, Any],
    ) -> list[StoredRecord]:
        """Archive the current state, then overwrite every declared field.

        Fields missing from ``payload`` become NULL; ``id``, ``created_by``
        and ``date_created`` keep their stored values.
        """

        values = self._encode(layout, payload, creating=False)
        table = layout.table

        with storage_errors(layout.component, "update"):
            prior = await self._fetch_row(connection, layout, record_id, lock=True)
            if prior is None:
                raise NotFoundError(layout.component, record_id)

            await self._history.archive(connection, layout, prior)
            await connection.execute(update(table).where(table.c.id == record_id).values(**values))
            row = await self._fetch_row(connection, layout, record_id)

        logger.info("records.updated", component=layout.component, record_id=record_id)
        return [project_record(row, layout.mappings)]

    async def delete(self, connection: AsyncConnection, layout: ComponentLayout, record_id: int) -> list[StoredRecord]:
        table = layout.table

        with storage_errors(layout.component, "delete"):
            prior = await self._fetch_row(connection, layout, record_id, lock=True)
            if prior is None:
                raise NotFoundError(layout.component, record_id)

            await self._history.archive(connection, layout, prior)
            await connection.execute(delete(table).where(table.c.id == record_id))

        logger.info("records.deleted", component=layout.component, record_id=record_id)
        return []

    async def delete_all(self, connection: AsyncConnection, layout: ComponentLayout) -> list[StoredRecord]:
        """Remove every current record. History is kept."""

        with storage_errors(layout.component, "delete_all"):
            result = await connection.execute(delete(layout.table))

        logger.info("records.reset", component=layout.component, deleted=result.rowcount)
        return []

    async def exists(self, connection: AsyncConnection, layout: ComponentLayout, record_id: int) -> bool:
        table = layout.table
        with storage_errors(layout.component, "exists"):
            result = await connection.execute(select(table.c.id).where(table.c.id == record_id))
            return result.first() is not None

    async def _fetch_row(
        self,
        connection: AsyncConnection,
        layout: ComponentLayout,
        record_id: int,
        *,
        lock: bool = False,
    ) -> RowMapping | None:
        table = layout.table
        stmt = select(table).where(table.c.id == record_id)
        if lock:
            stmt = stmt.with_for_update()
        result = await connection.execute(stmt)
        return result.mappings().first()

    def _encode(self, layout: ComponentLayout, payload: Mapping[str, Any], *, creating: bool) -> dict[str, Any]:
        if not isinstance(payload, Mapping):
            raise RecordValidationError("Record payload must be a JSON object.", component=layout.component)

        missing = [name for name in layout.schema.required_fields if payload.get(name) is None]
        if missing:
            raise RecordValidationError(
                f"Missing required fields: {', '.join(missing)}.",
                component=layout.component,
                fields=missing,
            )

        undeclared = sorted(set(payload) - set(layout.mappings) - set(SYSTEM_COLUMNS))
        if undeclared:
            logger.debug("records.undeclared_fields", component=layout.component, fields=undeclared)

        values = {name: mapping.encode(payload.get(name)) for name, mapping in layout.mappings.items()}
        now = datetime.now(timezone.utc)
        values["date_modified"] = self._mapper.encode_timestamp(payload.get("date_modified") or now)
        values["modified_by"] = payload.get("modified_by")
        if creating:
            values["date_created"] = self._mapper.encode_timestamp(payload.get("date_created") or now)
            values["created_by"] = payload.get("created_by")
        return values
