"""
Async engine lifecycle and session scope for the stakeflow store.

The engine is created once per process by init_database(); every gateway
call opens its own session through get_async_session().
"""

from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
    AsyncEngine
)

from .config import settings, DatabaseConfig
from .exceptions import DatabaseError
from .logging import get_logger

logger = get_logger(__name__)

async_engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


async def init_database() -> None:
    """Create the async engine and session maker. Safe to call twice."""
    global async_engine, async_session_maker

    if async_engine is not None:
        return

    url = DatabaseConfig.get_database_url(async_driver=True)
    logger.info("Opening stakeflow database engine", pool_size=settings.database_pool_size)

    async_engine = create_async_engine(url, **DatabaseConfig.get_engine_config(), echo=settings.debug)
    async_session_maker = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


async def close_database() -> None:
    """Dispose of the engine; a later init_database() reopens it."""
    global async_engine, async_session_maker

    if async_engine is not None:
        await async_engine.dispose()
        logger.info("Stakeflow database engine disposed")

    async_engine = None
    async_session_maker = None


def require_engine() -> AsyncEngine:
    if async_engine is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return async_engine


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    One unit of work: commits on success, rolls back on any exception.

        async with get_async_session() as session:
            await session.execute(stmt)
    """
    if async_session_maker is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")

    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_schema() -> None:
    """Create the protocol, stake, reward, statistics and snapshot tables."""
    from stakeflow.models import BaseModel

    async with require_engine().begin() as conn:
        await conn.run_sync(BaseModel.metadata.create_all)
    logger.info("Stakeflow schema created", tables=sorted(BaseModel.metadata.tables))


async def drop_schema() -> None:
    """Drop every stakeflow table."""
    from stakeflow.models import BaseModel

    logger.warning("Dropping stakeflow schema")
    async with require_engine().begin() as conn:
        await conn.run_sync(BaseModel.metadata.drop_all)


async def check_connection() -> bool:
    """True when a trivial query round-trips."""
    try:
        async with get_async_session() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        return False
