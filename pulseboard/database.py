"""
Pulseboard - Database Configuration

Async SQLModel database setup with connection pooling.
Supports PostgreSQL via asyncpg (production) and SQLite via aiosqlite (development).

Every store call is awaited, so a slow query never blocks other requests
or the real-time connections served by the same event loop.

Usage:
    from pulseboard.database import get_engine, init_db, get_session_factory

    engine = get_engine("sqlite+aiosqlite:///./pulseboard.db")
    await init_db(engine)  # Creates tables
    session_factory = get_session_factory(engine)
"""

from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession


def get_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async SQLAlchemy engine with appropriate configuration.

    Args:
        database_url: Async database URL
        echo: Log SQL statements

    Returns:
        AsyncEngine
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.endswith("sqlite+aiosqlite://"):
            # One shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
        return create_async_engine(database_url, echo=echo, **kwargs)

    # PostgreSQL configuration with connection pooling
    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=1800,
    )


async def init_db(engine: AsyncEngine) -> None:
    """
    Initialize database tables.

    Creates all tables defined in SQLModel models.
    Safe to call multiple times (uses CREATE IF NOT EXISTS).
    """
    # Import models to register them with SQLModel
    from pulseboard.auth.models import User, Session  # noqa: F401
    from pulseboard.audit.models import AuditLog  # noqa: F401
    from pulseboard.metrics.models import Metric  # noqa: F401
    from pulseboard.admin.models import ConfigEntry  # noqa: F401
    from pulseboard.registry.models import AIModel  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """
    Create a session factory bound to engine.

    Objects stay usable after commit so handlers can serialize rows
    after the write has been flushed.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency yielding a database session from app state.

    The session is closed once the response has been produced.
    """
    async with request.app.state.db_session_factory() as session:
        yield session
