"""Async session factory, unit-of-work scope and database initialization."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from crudkit_core.logging import unit_of_work_context
from crudkit_infra.db.models import Base

logger = structlog.get_logger()


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the given engine."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables registered on Base.metadata."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async session and ensure it's closed."""
    async with session_factory() as session:
        yield session


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
    unit_of_work_id: str | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """Run one unit of work: commit on success, roll back on error.

    Repositories only flush; this is where their changes become durable.
    Log entries emitted inside the scope carry its ``unit_of_work_id``.
    """
    with unit_of_work_context(unit_of_work_id):
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                logger.debug("unit_of_work_rolled_back")
                await session.rollback()
                raise
