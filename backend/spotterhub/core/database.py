"""
Database engine and session management.

Async SQLAlchemy engine shared by the application, with one
session per request provided through the ``get_db`` dependency.
"""

from typing import AsyncGenerator

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from spotterhub.core.config import settings


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


def _engine_options(url: str) -> dict:
    # SQLite (tests, local dev) has no connection pool sizing
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": settings.database_pool_size,
        "max_overflow": settings.database_max_overflow,
        "pool_pre_ping": True,
    }


engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_engine_options(settings.database_url),
)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)


async def init_db() -> None:
    """Create database schema if it doesn't exist."""
    # Import models so they register on Base.metadata
    from spotterhub.models import forum, moderation  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine connection pool."""
    await engine.dispose()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a database session for one request.

    The session commits when the request handler returns and
    rolls back if it raises, so a failed operation leaves no
    partial writes behind.
    """
    async with SessionLocal() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Database error, rolling back: {e}")
            await session.rollback()
            raise
        except Exception:
            await session.rollback()
            raise
