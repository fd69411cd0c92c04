"""Shared plumbing for DAOs."""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from audiodrop.database import Base, Database

# Pydantic domain model returned by a DAO
T = TypeVar("T")


class BaseDAO(ABC, Generic[T]):
    """Base for DAOs bound to one ORM model.

    Subclasses set `model` and implement `_to_domain`; public methods return
    domain models only, so ORM rows never leave the DAO.
    """

    model: ClassVar[type[Base]]

    def __init__(self, database: Database):
        self._db = database

    @staticmethod
    def _utcnow() -> datetime:
        # Naive UTC, matching the DateTime columns
        return datetime.now(UTC).replace(tzinfo=None)

    async def _fetch(self, session: AsyncSession, pk: Any):
        """Load one row by primary key within an open session."""
        result = await session.execute(select(self.model).where(self.model.id == pk))
        return result.scalar_one_or_none()

    @abstractmethod
    def _to_domain(self, row: Any) -> T:
        """Convert an ORM row into its domain model."""

    async def get_by_id(self, pk: Any) -> T | None:
        """Get a record by primary key, or None if it does not exist."""
        async with self._db.session() as session:
            row = await self._fetch(session, pk)
            return None if row is None else self._to_domain(row)
