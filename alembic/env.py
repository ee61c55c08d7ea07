"""
Alembic environment for zeroeval_core.

Imports every model so the metadata covers workspaces, telemetry, signals,
A/B tests, datasets and experiments.
"""

from logging.config import fileConfig
from sqlalchemy.engine import Connection
from alembic import context
import asyncio
import os
import sys

sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from zeroeval_core.db.base import Base
import zeroeval_core.models  # noqa: F401

from zeroeval_core.config import settings
from zeroeval_core.db.session import get_engine_instance

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=settings.database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = get_engine_instance()

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
