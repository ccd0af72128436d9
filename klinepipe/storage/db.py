"""Async database engine and session management."""
import logging

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from klinepipe.storage.models import Base

logger = logging.getLogger(__name__)


def make_engine(database_url: str) -> AsyncEngine:
    """Create the async engine; pool sizing only applies to server databases."""
    if database_url.startswith("postgresql"):
        return create_async_engine(
            database_url,
            echo=False,
            pool_pre_ping=True,
            pool_size=10,
            max_overflow=20,
        )
    return create_async_engine(database_url, echo=False)


def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Create the kline payload schema if it does not exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema initialized")


async def close_db(engine: AsyncEngine) -> None:
    """Close database connection pool."""
    await engine.dispose()
    logger.info("Database connections closed")
