"""
Alembic environment for the catalog database.

Uses the application's settings (DB_URL, .env supported) and engine factory,
so migrations run with the same SQLite pragmas as the API. Batch mode is
enabled on SQLite, which cannot ALTER most table properties.
"""

import asyncio
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy.engine import Connection

from catalog_admin.core.config import config as settings

# Importing the db package registers every model on Base.metadata
from catalog_admin.core.db import Base
from catalog_admin.core.db.engine import create_engine_for_url

alembic_config = context.config

if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name)

database_url = settings.database_url
is_sqlite = database_url.startswith("sqlite")
target_metadata = Base.metadata


def _ensure_sqlite_directory(url: str) -> None:
    # sqlite+aiosqlite:////abs/path/catalog.db -> /abs/path
    _, _, path = url.partition(":///")
    if path and path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)


def run_migrations_offline() -> None:
    """Emit the migration SQL instead of executing it."""
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        render_as_batch=is_sqlite,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=is_sqlite,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    if is_sqlite:
        _ensure_sqlite_directory(database_url)

    connectable = create_engine_for_url(database_url)
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
