"""
Alembic environment for the osintdesk schema.

The database URL comes from ``osintdesk.config.settings`` unless one is given
on the command line with ``alembic -x url=... upgrade head``.
"""

import asyncio
import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from osintdesk.config import settings  # noqa: E402
from osintdesk.db.base import Base  # noqa: E402
from osintdesk.db.session import get_engine_instance, is_sqlite  # noqa: E402
import osintdesk.models  # noqa: E402,F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata
database_url = context.get_x_argument(as_dictionary=True).get(
    "url", settings.database_url
)


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=is_sqlite(database_url),
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(
        url=database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    if database_url == settings.database_url:
        connectable = get_engine_instance()
    else:
        connectable = create_async_engine(database_url)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
