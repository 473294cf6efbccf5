"""
Async engine and session factory.

Both are created lazily on first use so importing the models never needs a
reachable database. ``DATABASE_URL`` may point at Postgres (asyncpg) or, for
local runs, SQLite (aiosqlite).
"""

import logging
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from osintdesk.config import settings

logger = logging.getLogger(__name__)

_engine = None
_AsyncSessionLocal = None


def is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def enable_sqlite_foreign_keys(engine) -> None:
    """SQLite ignores ON DELETE clauses unless the pragma is set per connection."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _engine_options(url: str) -> dict[str, Any]:
    if is_sqlite(url):
        return {
            "connect_args": {"check_same_thread": False},
            "pool_pre_ping": True,
            "echo": settings.debug,
        }
    return {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "pool_use_lifo": True,
        "pool_reset_on_return": "rollback",
        "echo": settings.debug,
    }


def get_engine():
    global _engine
    if _engine is None:
        url = settings.database_url
        _engine = create_async_engine(url, **_engine_options(url))
        if is_sqlite(url):
            enable_sqlite_foreign_keys(_engine)
        logger.info(f"Database engine ready ({_engine.dialect.name})")
    return _engine


def get_session_local():
    global _AsyncSessionLocal
    if _AsyncSessionLocal is None:
        _AsyncSessionLocal = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )
    return _AsyncSessionLocal


async def get_db():
    """Request-scoped session, the main FastAPI dependency."""
    AsyncSessionLocal = get_session_local()
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def dispose_engine():
    global _engine, _AsyncSessionLocal
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _AsyncSessionLocal = None
        logger.info("Database connections closed")


def get_engine_instance():
    """Engine for alembic migrations."""
    return get_engine()
