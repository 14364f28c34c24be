"""Versioned component engine: the single entry point of the HTTP layer."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from contextlib import asynccontextmanager
from typing import Any, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from scribe.core.errors import MigrationError, NotFoundError, StorageError
from scribe.core.logging import get_logger
from scribe.models.records import HistoryEntry, StoredRecord
from scribe.models.schema import ComponentSchema
from scribe.services.history import HistoryStore
from scribe.services.records import RecordRepository
from scribe.services.sync import ComponentLayout, SchemaSynchronizer
from scribe.services.types import TypeMapper

logger = get_logger(__name__)

T = TypeVar("T")
Operation = Callable[[AsyncConnection, ComponentLayout], Awaitable[T]]


class ComponentEngine:
    """Run every operation as ``ensure`` followed by the data operation.

    Both steps share one transaction, so a failed migration never leaves
    half-added columns and a failed write never commits a migration on its
    own. The schema is taken from the caller on every call and never cached.
    """

    def __init__(self, engine: AsyncEngine, mapper: TypeMapper | None = None) -> None:
        self._engine = engine
        self.mapper = mapper or TypeMapper()
        self.synchronizer = SchemaSynchronizer(self.mapper)
        self.history_store = HistoryStore()
        self.repository = RecordRepository(self.mapper, self.history_store)

    async def reset(self, component: str, schema: ComponentSchema) -> list[StoredRecord]:
        return await self._run(component, schema, self.repository.delete_all)

    async def create(
        self,
        component: str,
        schema: ComponentSchema,
        payload: Mapping[str, Any],
    ) -> list[StoredRecord]:
        async def operation(connection: AsyncConnection, layout: ComponentLayout) -> list[StoredRecord]:
            return await self.repository.insert(connection, layout, payload)

        return await self._run(component, schema, operation)

    async def list_records(self, component: str, schema: ComponentSchema) -> list[StoredRecord]:
        return await self._run(component, schema, self.repository.select_all)

    async def get(self, component: str, schema: ComponentSchema, record_id: int) -> list[StoredRecord]:
        async def operation(connection: AsyncConnection, layout: ComponentLayout) -> list[StoredRecord]:
            return await self.repository.select_one(connection, layout, record_id)

        return await self._run(component, schema, operation)

    async def replace(
        self,
        component: str,
        schema: ComponentSchema,
        record_id: int,
        payload: Mapping[str, Any],
    ) -> list[StoredRecord]:
        async def operation(connection: AsyncConnection, layout: ComponentLayout) -> list[StoredRecord]:
            return await self.repository.update(connection, layout, record_id, payload)

        return await self._run(component, schema, operation)

    async def delete(self, component: str, schema: ComponentSchema, record_id: int) -> list[StoredRecord]:
        async def operation(connection: AsyncConnection, layout: ComponentLayout) -> list[StoredRecord]:
            return await self.repository.delete(connection, layout, record_id)

        return await self._run(component, schema, operation)

    async def history(self, component: str, schema: ComponentSchema) -> list[HistoryEntry]:
        return await self._run(component, schema, self.history_store.all_history)

    async def record_history(self, component: str, schema: ComponentSchema, record_id: int) -> list[StoredRecord]:
        async def operation(connection: AsyncConnection, layout: ComponentLayout) -> list[StoredRecord]:
            entries = await self.history_store.record_history(connection, layout, record_id)
            if not entries and not await self.repository.exists(connection, layout, record_id):
                raise NotFoundError(component, record_id)
            return entries

        return await self._run(component, schema, operation)

    async def sync(self, component: str, schema: ComponentSchema) -> ComponentLayout:
        """Apply schema synchronization on its own."""

        async def operation(connection: AsyncConnection, layout: ComponentLayout) -> ComponentLayout:
            return layout

        return await self._run(component, schema, operation)

    async def ping(self) -> bool:
        try:
            async with self._engine.connect() as connection:
                await connection.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.warning("engine.ping_failed", error=str(exc))
            return False
        return True

    async def _run(self, component: str, schema: ComponentSchema, operation: Operation[T]) -> T:
        async with self._transaction(component) as connection:
            layout = await self.synchronizer.ensure(connection, component, schema)
            return await operation(connection, layout)

    @asynccontextmanager
    async def _transaction(self, component: str) -> AsyncIterator[AsyncConnection]:
        try:
            connection = await self._engine.connect()
        except SQLAlchemyError as exc:
            logger.error("engine.connect_failed", component=component, error=str(exc))
            raise MigrationError(f"Storage unavailable: {exc}", component=component) from exc

        try:
            async with connection.begin():
                yield connection
        except SQLAlchemyError as exc:
            logger.error("engine.commit_failed", component=component, error=str(exc))
            raise StorageError(f"Transaction failed: {exc}", component=component) from exc
        finally:
            await connection.close()
