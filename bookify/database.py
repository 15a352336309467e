"""Database engine, sessions and the transaction primitive."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import TypeVar

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from bookify.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

SessionFactory = async_sessionmaker[AsyncSession]


class Base(DeclarativeBase):
    """Declarative base for all models."""


engine = create_async_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
    echo=settings.debug,
)

async_session_maker: SessionFactory = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session that commits on success."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def run_transaction(
    fn: Callable[[AsyncSession], Awaitable[T]],
    session_factory: SessionFactory | None = None,
) -> T:
    """Run ``fn`` inside a single all-or-nothing transaction.

    The body must issue every read before its first write. Row versions and
    unique keys make a concurrent writer fail at flush or commit time; the
    exception propagates after rollback and nothing is retried here.
    """
    factory = session_factory or async_session_maker
    async with factory() as session:
        async with session.begin():
            return await fn(session)


async def init_db() -> None:
    """Create tables directly (development only, Alembic otherwise)."""
    import bookify.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


async def close_db() -> None:
    """Dispose the engine pool."""
    await engine.dispose()
