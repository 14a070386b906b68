"""
Async SQLAlchemy database setup and session management.

Provides async engine, session factory, and database dependency for FastAPI.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from modelrisk.config import Settings, get_settings


def create_engine(settings: Settings) -> AsyncEngine:
    """
    Create an async SQLAlchemy engine.

    When PgBouncer is enabled, we use NullPool to let PgBouncer handle
    all connection pooling. Statement caching is disabled because PgBouncer
    in transaction mode doesn't support persistent prepared statements.

    Args:
        settings: Application settings containing database URL.

    Returns:
        AsyncEngine: Configured async database engine.
    """
    if settings.is_sqlite:
        return create_async_engine(
            settings.async_database_url,
            echo=settings.debug,
            poolclass=NullPool,
        )

    if settings.pgbouncer_enabled:
        return create_async_engine(
            settings.async_database_url,
            echo=settings.debug,
            poolclass=NullPool,
            connect_args={
                "statement_cache_size": 0,
                "prepared_statement_cache_size": 0,
                "server_settings": {
                    "application_name": "modelrisk-api",
                },
            },
        )

    return create_async_engine(
        settings.async_database_url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Create an async session factory.

    Args:
        engine: The async SQLAlchemy engine.

    Returns:
        async_sessionmaker: Factory for creating async database sessions.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


_engine = create_engine(get_settings())
AsyncSessionLocal = create_session_factory(_engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides an async database session.

    Services own their transaction boundaries and commit explicitly; this
    dependency only guarantees that anything left uncommitted after a
    failure is rolled back and the session is closed.

    Yields:
        AsyncSession: An async database session.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# Type alias for dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db)]
