"""
Database Module

Async SQLAlchemy engine, session factory and declarative Base.

Usage in FastAPI endpoints:
    @router.get("/")
    async def my_endpoint(db: AsyncSession = Depends(get_db)):
        ...

Usage in workers (no request scope):
    async with AsyncSessionLocal() as session:
        ...
"""

import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from docvault.core.config import settings

logger = logging.getLogger(__name__)


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.SQLALCHEMY_ECHO,
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that yields a database session per request.

    The session is always closed, even if the endpoint raises.
    """
    async with AsyncSessionLocal() as session:
        yield session


async def init_models() -> None:
    """
    Create tables that don't exist yet.

    Alembic owns the schema in production; this is for local
    development with SQLite.
    """
    # Import models so they register on Base.metadata
    from docvault.models import File, Folder  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def check_db_connection() -> bool:
    """
    Check if the database is reachable.

    Returns:
        True if a trivial query succeeds, False otherwise
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


async def dispose_engine() -> None:
    """Close pooled connections during shutdown."""
    await engine.dispose()
    logger.info("Database engine disposed")
