from __future__ import annotations

from pathlib import Path

import pytest
import pytest_asyncio

from scribe.core.config import AppSettings
from scribe.core.db import create_engine
from scribe.models.schema import ComponentSchema
from scribe.services.engine import ComponentEngine
from scribe.services.types import TypeMapper

BASE_SCHEMA_DOCUMENT = {
    "type": "object",
    "properties": {
        "data": {"type": "object"},
        "date_created": {"type": "string", "format": "date-time"},
        "date_modified": {"type": "string", "format": "date-time"},
        "created_by": {"type": "number"},
        "modified_by": {"type": "number"},
    },
    "required": ["data"],
}


def schema_with(**extra_properties: dict) -> ComponentSchema:
    """Base schema plus extra top-level properties, as a fresh value."""

    document = {
        **BASE_SCHEMA_DOCUMENT,
        "properties": {**BASE_SCHEMA_DOCUMENT["properties"], **extra_properties},
    }
    return ComponentSchema.from_document(document)


@pytest.fixture
def database_path(tmp_path: Path) -> Path:
    return tmp_path / "scribe.db"


@pytest.fixture
def settings(database_path: Path) -> AppSettings:
    return AppSettings(database_url=f"sqlite+aiosqlite:///{database_path}", naive_timezone="UTC")


@pytest.fixture
def base_schema() -> ComponentSchema:
    return ComponentSchema.from_document(BASE_SCHEMA_DOCUMENT)


@pytest_asyncio.fixture
async def db_engine(settings: AppSettings):
    engine = create_engine(settings)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def components(db_engine) -> ComponentEngine:
    return ComponentEngine(db_engine, TypeMapper("UTC"))


@pytest.fixture
def record_payload() -> dict:
    return {
        "data": {"something": "somethingstring"},
        "date_created": "2017-06-22T17:57:32Z",
        "date_modified": "2018-06-22T17:57:32Z",
        "created_by": 2,
        "modified_by": 2,
    }


@pytest.fixture
def make_schema():
    return schema_with
