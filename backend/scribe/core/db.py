"""Database engine utilities for component storage."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from .config import AppSettings, get_settings

_REPO_ROOT = Path(__file__).resolve().parents[3]


def _resolve_database_url(raw_url: str) -> str:
    """Ensure SQLite URLs point at the repository-level data directory."""

    url = make_url(raw_url)
    if "sqlite" not in url.drivername or url.database in (None, "", ":memory:"):
        return raw_url

    db_path = Path(url.database)
    if not db_path.is_absolute():
        db_path = (_REPO_ROOT / db_path).resolve()

    db_path.parent.mkdir(parents=True, exist_ok=True)
    url = url.set(database=str(db_path))
    return url.render_as_string(hide_password=False)


def _enable_sqlite_transactional_ddl(engine: AsyncEngine) -> None:
    """Let SQLite roll back ALTER/CREATE TABLE together with the writes they guard.

    The sqlite3 driver only opens a transaction before DML, so DDL would be
    autocommitted. Taking over BEGIN makes a migration and its write atomic.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(connection) -> None:
        connection.exec_driver_sql("BEGIN")


def create_engine(settings: AppSettings | None = None) -> AsyncEngine:
    """Build the async engine shared by every component of one application."""

    settings = settings or get_settings()
    resolved_url = _resolve_database_url(settings.database_url)
    engine = create_async_engine(resolved_url, echo=settings.echo_sql, future=True)
    if engine.dialect.name == "sqlite":
        _enable_sqlite_transactional_ddl(engine)
    return engine
