"""
Database Engine Configuration.

SQLite (aiosqlite) is the default backend:
- WAL mode so readers are not blocked by the admin's writes
- busy_timeout instead of immediate "database is locked" failures
- Foreign key enforcement
PostgreSQL URLs (asyncpg) are used as-is.
"""

import logging

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from catalog_admin.core.config import config as settings

logger = logging.getLogger(__name__)


def _get_engine_options(database_url: str) -> dict:
    """
    Get engine options based on database type.
    SQLite requires special handling for async and concurrency.
    """
    is_sqlite = database_url.startswith("sqlite")

    options = {
        "echo": False,
    }

    if is_sqlite:
        # In-memory databases must share a single connection
        if ":memory:" in database_url or database_url.rstrip("/").endswith("sqlite+aiosqlite:"):
            options["poolclass"] = StaticPool
            options["connect_args"] = {"check_same_thread": False}
        else:
            options["poolclass"] = NullPool
    elif not settings.is_production:
        options["poolclass"] = NullPool

    return options


def _configure_sqlite_connection(dbapi_connection, connection_record):
    """
    Configure SQLite connection. Called on every new connection.

    - WAL mode: concurrent reads during writes
    - busy_timeout: wait up to 30s for locks
    - foreign_keys: images -> variations -> products integrity
    - synchronous=NORMAL: safe with WAL and faster than FULL
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=30000")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def create_engine_for_url(database_url: str) -> AsyncEngine:
    """Create an async engine, registering SQLite pragmas where relevant."""
    async_engine = create_async_engine(database_url, **_get_engine_options(database_url))

    if database_url.startswith("sqlite"):
        # For aiosqlite, the pragmas go through the sync_engine's pool events
        @event.listens_for(async_engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            _configure_sqlite_connection(dbapi_connection, connection_record)

    return async_engine


def create_session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,  # Manual control over flushing
    )


database_url = settings.database_url

engine = create_engine_for_url(database_url)

AsyncSessionLocal = create_session_factory(engine)


async def check_database_connection() -> bool:
    """
    Verify database connection is working.
    Useful for health checks and startup validation.
    """
    try:
        async with AsyncSessionLocal() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
