# clinic/db/sql.py
from __future__ import annotations

import logging
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from clinic.core.config import settings

logger = logging.getLogger(__name__)


def build_engine(dsn: str) -> AsyncEngine:
    """
    Create the async engine. Pool sizing only applies to server databases;
    SQLite (used by the test-suite) runs on its default pool.
    """
    kwargs: dict = {"echo": settings.DB_ECHO}
    if not dsn.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_pre_ping=True,
            pool_timeout=settings.DB_POOL_TIMEOUT,
        )
    return create_async_engine(dsn, **kwargs)


engine = build_engine(settings.SQL_DSN)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autoflush=False,
    class_=AsyncSession,
)


async def get_session() -> AsyncIterator[AsyncSession]:
    """
    Provide a DB session for each request.
    Commits when the handler returns, rolls back if it raises.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ping_db(session: AsyncSession) -> bool:
    """Round-trip a SELECT 1; raises SQLAlchemyError when the database is unreachable."""
    await session.execute(text("SELECT 1"))
    return True


async def init_db(*, drop: bool = False) -> None:
    """
    Create (optionally drop first) all tables registered on Base.metadata.
    """
    from clinic.db.base import Base
    import clinic.models  # noqa: F401  registers every table

    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready (drop=%s)", drop)
