"""
Hackathon Hub - Database Configuration

Async SQLAlchemy engine and session factory. PostgreSQL (asyncpg) in
deployments; SQLite (aiosqlite) is accepted for tests and local runs, which
is why foreign keys and upserts are handled per dialect here.
"""

from typing import Any, AsyncGenerator

from sqlalchemy import event
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import get_settings
from app.models.base import Base

settings = get_settings()


def enable_sqlite_foreign_keys(async_engine: AsyncEngine) -> None:
    """SQLite ignores ON DELETE CASCADE unless every connection turns foreign keys on."""

    @event.listens_for(async_engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(url: str, echo: bool = False, **pool_options: Any) -> AsyncEngine:
    """Create an async engine; pool sizing only applies to server databases."""
    if url.startswith("sqlite"):
        async_engine = create_async_engine(url, echo=echo)
        enable_sqlite_foreign_keys(async_engine)
        return async_engine
    return create_async_engine(url, echo=echo, pool_pre_ping=True, **pool_options)


engine = build_engine(
    str(settings.database_url),
    echo=settings.database_echo,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session. Commits when the handler returns, rolls back on
    any exception.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def upsert(session: AsyncSession, model: Any):
    """
    Build a dialect-native INSERT that supports ON CONFLICT for the session's engine.

    Both PostgreSQL and SQLite expose ``on_conflict_do_update`` on their own
    insert constructs, so callers only pick the conflict target.
    """
    dialect = session.bind.dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upsert is not supported for dialect {dialect!r}")


async def init_db() -> None:
    """Create every table on startup."""
    import app.models  # noqa: F401  registers every mapped table on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
