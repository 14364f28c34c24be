"""SQLAlchemy table definitions for component storage.

Component tables are built at runtime from the schema supplied with each
call, so these helpers return Core ``Table`` objects bound to a throwaway
``MetaData`` instead of declarative classes.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import JSON, Column, DateTime, Integer, MetaData, Table

HISTORY_SUFFIX = "_history"
TIMESTAMP_COLUMNS = ("date_created", "date_modified")
ACTOR_COLUMNS = ("created_by", "modified_by")


def history_table_name(component: str) -> str:
    return f"{component}{HISTORY_SUFFIX}"


def _bookkeeping_columns() -> list[Column]:
    return [
        Column("date_created", DateTime(), nullable=True),
        Column("date_modified", DateTime(), nullable=True),
        Column("created_by", JSON(none_as_null=True), nullable=True),
        Column("modified_by", JSON(none_as_null=True), nullable=True),
    ]


def build_component_table(metadata: MetaData, component: str, field_columns: Iterable[Column]) -> Table:
    """Primary table: one current row per record id."""

    return Table(
        component,
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        *field_columns,
        *_bookkeeping_columns(),
        sqlite_autoincrement=True,
    )


def build_history_table(metadata: MetaData, component: str, field_columns: Iterable[Column]) -> Table:
    """History table: every superseded state, many rows per record id."""

    return Table(
        history_table_name(component),
        metadata,
        Column("history_id", Integer, primary_key=True, autoincrement=True),
        Column("id", Integer, nullable=False, index=True),
        *field_columns,
        *_bookkeeping_columns(),
        Column("archived_at", DateTime(), nullable=False),
        sqlite_autoincrement=True,
    )
