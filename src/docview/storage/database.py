"""Async engine and session scope for the viewer's PostgreSQL store."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from docview.config import Settings, settings

logger = logging.getLogger(__name__)


# Constraint names must match the Alembic revisions
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Base class for the documents, lines, profiles and suggestion tables."""

    metadata = MetaData(naming_convention=convention)


def build_engine(config: Optional[Settings] = None) -> AsyncEngine:
    """Create the async engine with the configured pool.

    The viewer holds connections only for short reads and single-row
    writes, so a small pool with pre-ping is enough. Stale connections
    after a database restart are replaced instead of failing a request.
    """
    config = config or settings
    return create_async_engine(
        config.database_url,
        echo=config.db_echo or config.log_level == "DEBUG",
        pool_size=config.db_pool_size,
        max_overflow=config.db_max_overflow,
        pool_timeout=config.db_pool_timeout,
        pool_pre_ping=True,
    )


engine = build_engine()

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """One unit of work: commit on success, roll everything back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.debug("Rolling back session after %s", type(e).__name__)
            await session.rollback()
            raise


async def init_db() -> None:
    """Create all tables directly, bypassing Alembic (local development)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of pooled connections before the event loop closes."""
    await engine.dispose()
