"""Reconcile a declared component schema with the live database tables."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import Column, MetaData, Table, inspect, text
from sqlalchemy.engine import Connection, Inspector
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection
from sqlalchemy.types import TypeEngine

from scribe.core.errors import InvalidComponentError, MigrationError
from scribe.core.logging import get_logger
from scribe.models.schema import ComponentSchema, is_identifier
from scribe.models.tables import (
    HISTORY_SUFFIX,
    build_component_table,
    build_history_table,
    history_table_name,
)
from scribe.services.types import FieldMapping, TypeMapper

logger = get_logger(__name__)

MAX_COMPONENT_LENGTH = 40


@dataclass(slots=True)
class ComponentLayout:
    """Live tables of one component plus the codecs for its declared fields."""

    component: str
    schema: ComponentSchema
    table: Table
    history: Table
    mappings: dict[str, FieldMapping]
    history_mappings: dict[str, FieldMapping]


def validate_component_name(component: str) -> None:
    if (
        not is_identifier(component)
        or len(component) > MAX_COMPONENT_LENGTH
        or component.endswith(HISTORY_SUFFIX)
    ):
        raise InvalidComponentError(
            f"Component name {component!r} must be an identifier of at most {MAX_COMPONENT_LENGTH} "
            f"characters and must not end with {HISTORY_SUFFIX!r}."
        )


class SchemaSynchronizer:
    """Create or additively migrate the primary and history tables.

    Safe to call before every operation: when the live tables already carry
    every declared field nothing is executed besides reflection. Columns are
    only ever added, never dropped or retyped, and all DDL runs inside the
    caller's transaction.
    """

    def __init__(self, mapper: TypeMapper) -> None:
        self._mapper = mapper

    async def ensure(
        self,
        connection: AsyncConnection,
        component: str,
        schema: ComponentSchema,
    ) -> ComponentLayout:
        validate_component_name(component)
        try:
            return await connection.run_sync(self._ensure_sync, component, schema)
        except SQLAlchemyError as exc:
            logger.error("schema.sync_failed", component=component, error=str(exc))
            raise MigrationError(f"Schema synchronization failed: {exc}", component=component) from exc

    def _ensure_sync(self, connection: Connection, component: str, schema: ComponentSchema) -> ComponentLayout:
        inspector = inspect(connection)
        live_primary = _live_columns(inspector, component)
        live_history = _live_columns(inspector, history_table_name(component))

        mappings = self._resolve_mappings(component, schema, live_primary)
        # History columns follow the primary table unless they already exist.
        history_mappings = {
            name: self._from_live(component, schema, name, live_history[name])
            if live_history is not None and name in live_history
            else mapping
            for name, mapping in mappings.items()
        }

        metadata = MetaData()
        table = build_component_table(metadata, component, [m.column() for m in mappings.values()])
        history = build_history_table(metadata, component, [m.column() for m in history_mappings.values()])

        self._apply(connection, component, table, live_primary)
        self._apply(connection, component, history, live_history)

        return ComponentLayout(
            component=component,
            schema=schema,
            table=table,
            history=history,
            mappings=mappings,
            history_mappings=history_mappings,
        )

    def _resolve_mappings(
        self,
        component: str,
        schema: ComponentSchema,
        live: dict[str, TypeEngine] | None,
    ) -> dict[str, FieldMapping]:
        if live is None:
            return {field.name: self._mapper.map_field(field) for field in schema.data_fields}

        mappings: dict[str, FieldMapping] = {}
        for field in schema.data_fields:
            if field.name in live:
                mappings[field.name] = self._from_live(component, schema, field.name, live[field.name])
            else:
                # The true SQL type of a newly declared field is not inferred.
                mappings[field.name] = self._mapper.fallback(field.name)
        return mappings

    def _from_live(self, component: str, schema: ComponentSchema, name: str, live_type: TypeEngine) -> FieldMapping:
        mapping = self._mapper.from_live(name, live_type)
        field = schema.get(name)
        if field is not None and mapping.native:
            declared = self._mapper.declared_kind(field)
            if declared != mapping.kind:
                logger.warning(
                    "schema.type_mismatch",
                    component=component,
                    column=name,
                    declared=declared,
                    live=mapping.kind,
                )
        return mapping

    def _apply(
        self,
        connection: Connection,
        component: str,
        target: Table,
        live: dict[str, TypeEngine] | None,
    ) -> None:
        if live is None:
            target.create(connection, checkfirst=True)
            logger.info(
                "schema.table_created",
                component=component,
                table=target.name,
                columns=[column.name for column in target.columns],
            )
            return

        missing = [column for column in target.columns if column.name not in live]
        if not missing:
            return

        for column in missing:
            if column.primary_key:
                raise MigrationError(
                    f"Table {target.name!r} has no {column.name!r} primary key column.",
                    component=component,
                )
            _add_column(connection, target, column)

        logger.info(
            "schema.columns_added",
            component=component,
            table=target.name,
            columns=[column.name for column in missing],
        )


def _live_columns(inspector: Inspector, table_name: str) -> dict[str, TypeEngine] | None:
    if not inspector.has_table(table_name):
        return None
    return {column["name"]: column["type"] for column in inspector.get_columns(table_name)}


def _add_column(connection: Connection, table: Table, column: Column) -> None:
    # Added columns are always nullable so existing rows stay valid.
    preparer = connection.dialect.identifier_preparer
    column_type = column.type.compile(dialect=connection.dialect)
    connection.execute(
        text(
            f"ALTER TABLE {preparer.format_table(table)} "
            f"ADD COLUMN {preparer.format_column(column)} {column_type}"
        )
    )
