"""Alembic environment configuration for async SQLAlchemy.

The service reads its DB URL from AUDIODROP_DATABASE_URL while Alembic
defaults to alembic.ini. The env var wins here too so migrations always
target the database the service uses.
"""

import asyncio
import os
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Import models so metadata is populated for autogenerate
from audiodrop.database import Base, normalize_database_url
from audiodrop.models.orm import JobModel  # noqa: F401

target_metadata = Base.metadata


def _maybe_override_alembic_url_from_env() -> None:
    raw = os.environ.get("AUDIODROP_DATABASE_URL") or os.environ.get("DATABASE_URL")
    if not raw:
        return
    config.set_main_option("sqlalchemy.url", normalize_database_url(raw.strip()))


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode, emitting SQL without a DBAPI."""
    _maybe_override_alembic_url_from_env()
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
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
    """Run migrations in 'online' mode with an async engine."""
    _maybe_override_alembic_url_from_env()
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
