"""
Async engine and sessions.

One engine per process. Request handlers get a session through
``get_session``; the card cache opens its own short sessions from
``get_session_factory`` so its writes never share the request's transaction.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from proxyforge.config import settings
from proxyforge.models.db import Base


def make_engine(url: str) -> AsyncEngine:
    """Create an engine; SQLite URLs skip the connection liveness ping."""
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.debug)
    return create_async_engine(url, echo=settings.debug, pool_pre_ping=True)


engine = make_engine(settings.database_url)

session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session.

    Commits once the endpoint returns. If anything escapes the endpoint the
    transaction is never committed, so a failed generation leaves no
    half-built deck behind.
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return session_factory


async def init_db() -> None:
    """Create any missing tables. Called once at startup."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_db() -> None:
    """Close pooled connections. Called once at shutdown."""
    await engine.dispose()
