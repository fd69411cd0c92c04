"""Async SQLAlchemy database setup for the job store."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Seconds a SQLite writer waits on a locked database
SQLITE_BUSY_TIMEOUT = 30


def normalize_database_url(url: str) -> str:
    """Use the aiosqlite driver for plain sqlite:/// URLs."""
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return url


def _enable_sqlite_wal(dbapi_connection, _record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT * 1000}")
    finally:
        cursor.close()


class Database:
    """Async database connection manager.

    All DAO operations go through the session() context manager.
    """

    def __init__(self, database_url: str):
        database_url = normalize_database_url(database_url)
        is_sqlite = database_url.startswith("sqlite")

        # Every job worker writes status rows
        connect_args = {"timeout": SQLITE_BUSY_TIMEOUT} if is_sqlite else {}

        self._engine: AsyncEngine = create_async_engine(
            database_url,
            echo=False,
            connect_args=connect_args,
        )
        if is_sqlite:
            event.listen(self._engine.sync_engine, "connect", _enable_sqlite_wal)

        self._sessions: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Transactional scope: commits on success, rolls back on exception."""
        async with self._sessions() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def init_db(self) -> None:
        """Create missing tables.

        Deployments that manage the schema with Alembic skip this.
        """
        # Registers JobModel on Base.metadata
        from audiodrop.models import orm  # noqa: F401

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        await self._engine.dispose()
