"""Async database engine factory."""

from __future__ import annotations

from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from crudkit_core.config.settings import Settings


def create_engine(settings: Settings) -> AsyncEngine:
    """Create an async SQLAlchemy engine based on settings."""
    if settings.db_backend == "sqlite":
        engine = create_async_engine(
            settings.database_url,
            echo=settings.echo_sql,
            connect_args={"check_same_thread": False},
        )
        enable_sqlite_savepoints(engine)
        return engine
    return create_async_engine(
        settings.database_url,
        echo=settings.echo_sql,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_pre_ping=True,
    )


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let SQLAlchemy, not the driver, emit BEGIN so SAVEPOINT nests correctly."""
    event.listen(engine.sync_engine, "connect", _disable_driver_begin)
    event.listen(engine.sync_engine, "begin", _emit_begin)


def _disable_driver_begin(dbapi_connection: Any, connection_record: Any) -> None:
    dbapi_connection.isolation_level = None


def _emit_begin(conn: Connection) -> None:
    conn.exec_driver_sql("BEGIN")
