"""Database access for background jobs."""
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from earnhub.config.database import create_engine, create_session_maker


def create_task_engine(database_url: str | None = None) -> AsyncEngine:
    """Create an engine without pooling, safe to use from any worker thread."""
    return create_engine(database_url, echo=False, poolclass=NullPool)


def create_task_session_maker(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create session maker for jobs."""
    if engine is None:
        engine = create_task_engine()
    return create_session_maker(engine)


@asynccontextmanager
async def task_session(database_url: str | None = None) -> AsyncIterator[AsyncSession]:
    """
    Open a session on a short-lived engine bound to the current event loop.

    Usage:
        async with task_session() as session:
            service = TierTransitionService(session)
    """
    engine = create_task_engine(database_url)
    try:
        async with create_task_session_maker(engine)() as session:
            yield session
    finally:
        await engine.dispose()
