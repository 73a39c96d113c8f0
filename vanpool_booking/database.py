"""
Engine, session factory and the request-scoped session dependency.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import get_settings
from .models.base import Base

logger = logging.getLogger(__name__)

# Set up by init_database() during the application lifespan
engine: AsyncEngine | None = None
async_session_factory: async_sessionmaker[AsyncSession] | None = None


def create_database_engine(database_url: str | None = None) -> AsyncEngine:
    """Build an async engine; pool tuning applies to PostgreSQL only."""
    settings = get_settings()
    url = database_url or settings.database_url
    options: dict[str, Any] = {"echo": settings.database_echo}

    if url.startswith("postgresql"):
        options |= {
            "pool_size": settings.database_pool_size,
            "max_overflow": settings.database_max_overflow,
            "pool_pre_ping": True,
            "pool_recycle": 3600,
            "connect_args": {"server_settings": {"application_name": "vanpool_booking"}},
        }

    return create_async_engine(url, **options)


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Objects stay readable after commit so responses can be built from them
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False, autoflush=True)


async def create_schema(bind: AsyncEngine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_database() -> None:
    """Connect, build the session factory and make sure every table exists."""
    global engine, async_session_factory

    engine = create_database_engine()
    async_session_factory = create_session_factory(engine)
    await create_schema(engine)
    logger.info("Database ready", extra={"dialect": engine.dialect.name})


async def close_database() -> None:
    global engine, async_session_factory

    if engine is None:
        return
    await engine.dispose()
    engine = None
    async_session_factory = None
    logger.info("Database connections closed")


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a session outside of a request, e.g. from a script.

    Services commit their own unit of work. Whatever is still pending when
    the block exits is committed, or rolled back if the block raised.
    """
    if async_session_factory is None:
        raise RuntimeError("Database not initialized; call init_database() first")

    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    async with get_db_session() as session:
        yield session
