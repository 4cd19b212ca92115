"""Database engine and session utilities."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from invest_tracker.db.base import Base

# Import models so that SQLAlchemy is aware of all tables before create_all runs.
import invest_tracker.models  # noqa: F401  # pylint: disable=unused-import

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url, echo=False, future=True)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


async def init_database(engine: AsyncEngine) -> None:
    """Ensure all local tables exist."""

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except SQLAlchemyError:
        logger.exception("Failed to initialise local database schema")
        raise


__all__ = ["build_engine", "build_session_factory", "init_database"]
