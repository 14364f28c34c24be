"""Archive superseded record states and read them back newest first."""

from __future__ import annotations

from datetime import datetime, timezone
from itertools import groupby

from sqlalchemy import insert, select
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncConnection

from scribe.core.logging import get_logger
from scribe.models.records import HistoryEntry, StoredRecord
from scribe.models.schema import HISTORY_COLUMNS
from scribe.services.rows import project_record, storage_errors
from scribe.services.sync import ComponentLayout

logger = get_logger(__name__)


class HistoryStore:
    """Append-only store of prior record states.

    Entries are never pruned and never contain the current state of a
    record; that lives in the primary table only.
    """

    async def archive(self, connection: AsyncConnection, layout: ComponentLayout, prior: RowMapping) -> None:
        """Copy ``prior`` (a raw primary-table row) into the history table."""

        values = {
            column.name: prior.get(column.name)
            for column in layout.history.columns
            if column.name not in HISTORY_COLUMNS
        }
        values["archived_at"] = datetime.now(timezone.utc).replace(tzinfo=None)

        with storage_errors(layout.component, "archive"):
            await connection.execute(insert(layout.history).values(**values))

        logger.info("history.archived", component=layout.component, record_id=prior["id"])

    async def all_history(self, connection: AsyncConnection, layout: ComponentLayout) -> list[HistoryEntry]:
        """One entry per updated id, ascending id, each history newest first."""

        history = layout.history
        stmt = select(history).order_by(history.c.id, history.c.history_id.desc())

        with storage_errors(layout.component, "all_history"):
            result = await connection.execute(stmt)
            rows = result.mappings().all()

        return [
            HistoryEntry(id=record_id, history=[project_record(row, layout.history_mappings) for row in group])
            for record_id, group in groupby(rows, key=lambda row: row["id"])
        ]

    async def record_history(
        self,
        connection: AsyncConnection,
        layout: ComponentLayout,
        record_id: int,
    ) -> list[StoredRecord]:
        history = layout.history
        stmt = select(history).where(history.c.id == record_id).order_by(history.c.history_id.desc())

        with storage_errors(layout.component, "record_history"):
            result = await connection.execute(stmt)
            rows = result.mappings().all()

        return [project_record(row, layout.history_mappings) for row in rows]
