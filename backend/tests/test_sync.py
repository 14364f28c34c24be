"""Schema synchronization against a temporary SQLite database."""

from __future__ import annotations

import pytest
from sqlalchemy import JSON, DateTime, Integer, String, Text, inspect

from scribe.core.errors import InvalidComponentError, UnsupportedSchemaError
from scribe.models.schema import ComponentSchema
from scribe.services.engine import ComponentEngine


async def _live_columns(db_engine, table_name: str) -> dict:
    async with db_engine.connect() as connection:
        return await connection.run_sync(
            lambda sync_conn: {column["name"]: column["type"] for column in inspect(sync_conn).get_columns(table_name)}
        )


async def _table_names(db_engine) -> list[str]:
    async with db_engine.connect() as connection:
        return await connection.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())


@pytest.mark.asyncio
async def test_first_sync_creates_primary_and_history_tables(components: ComponentEngine, db_engine, make_schema) -> None:
    schema = make_schema(title={"type": "string"})

    await components.sync("articles", schema)

    assert {"articles", "articles_history"} <= set(await _table_names(db_engine))

    primary = await _live_columns(db_engine, "articles")
    assert list(primary) == [
        "id",
        "data",
        "title",
        "date_created",
        "date_modified",
        "created_by",
        "modified_by",
    ]
    assert isinstance(primary["id"], Integer)
    assert isinstance(primary["data"], JSON)
    assert isinstance(primary["title"], String) and not isinstance(primary["title"], Text)
    assert isinstance(primary["date_created"], DateTime)

    history = await _live_columns(db_engine, "articles_history")
    assert {"history_id", "id", "data", "title", "archived_at"} <= set(history)


@pytest.mark.asyncio
async def test_sync_is_idempotent(components: ComponentEngine, db_engine, base_schema: ComponentSchema) -> None:
    await components.sync("notes", base_schema)
    before = {name: repr(column_type) for name, column_type in (await _live_columns(db_engine, "notes")).items()}

    layout = await components.sync("notes", base_schema)
    after = {name: repr(column_type) for name, column_type in (await _live_columns(db_engine, "notes")).items()}

    assert before == after
    assert layout.mappings["data"].kind == "json"


@pytest.mark.asyncio
async def test_superset_schema_adds_fallback_columns_only(components: ComponentEngine, db_engine, make_schema) -> None:
    first = make_schema(title={"type": "string"})
    second = make_schema(title={"type": "string"}, new_column={"type": "string"})

    await components.sync("posts", first)
    original = await _live_columns(db_engine, "posts")

    layout = await components.sync("posts", second)
    evolved = await _live_columns(db_engine, "posts")
    evolved_history = await _live_columns(db_engine, "posts_history")

    for name, column_type in original.items():
        assert repr(evolved[name]) == repr(column_type)
    assert isinstance(evolved["new_column"], Text)
    assert isinstance(evolved_history["new_column"], Text)
    assert layout.mappings["title"].native
    assert not layout.mappings["new_column"].native


@pytest.mark.asyncio
async def test_subset_schema_never_drops_columns(components: ComponentEngine, db_engine, make_schema) -> None:
    await components.sync("pages", make_schema(title={"type": "string"}, body={"type": "string"}))

    await components.sync("pages", make_schema(title={"type": "string"}))

    assert "body" in await _live_columns(db_engine, "pages")


@pytest.mark.asyncio
async def test_missing_history_table_is_recreated(components: ComponentEngine, db_engine, base_schema) -> None:
    await components.sync("drafts", base_schema)
    async with db_engine.begin() as connection:
        await connection.exec_driver_sql('DROP TABLE "drafts_history"')

    await components.sync("drafts", base_schema)

    assert "drafts_history" in await _table_names(db_engine)


@pytest.mark.asyncio
@pytest.mark.parametrize("component", ["bad-name", "1st", "drafts_history", "x" * 41])
async def test_invalid_component_names_are_rejected(components: ComponentEngine, base_schema, component: str) -> None:
    with pytest.raises(InvalidComponentError):
        await components.sync(component, base_schema)


def test_structurally_invalid_schema_never_reaches_storage() -> None:
    with pytest.raises(UnsupportedSchemaError):
        ComponentSchema.from_document({"properties": {"title": {}}})
