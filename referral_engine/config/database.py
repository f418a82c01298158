"""
Database engine and session factory.

Provides the async engine, the session maker and a session context manager.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from referral_engine.config.settings import settings


def build_engine(
    database_url: str | None = None,
    echo: bool | None = None,
    **engine_kwargs: Any,
) -> AsyncEngine:
    """
    Create async engine.

    Args:
        database_url: Override for settings.database_url
        echo: Override for settings.database_echo
        **engine_kwargs: Extra create_async_engine options (poolclass, connect_args)

    Returns:
        Async SQLAlchemy engine
    """
    return create_async_engine(
        database_url or settings.database_url,
        echo=settings.database_echo if echo is None else echo,
        pool_pre_ping=True,
        **engine_kwargs,
    )


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create session maker bound to engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine()
async_session_maker = build_session_maker(engine)


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """
    Yield a session that is rolled back if the caller leaves it dirty.

    Services commit their own units of work.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
