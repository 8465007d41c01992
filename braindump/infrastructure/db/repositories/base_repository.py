"""
Base Repository for BrainDump

Generic async repository over one SQLModel table. Every table in this
app is owned by a user, so reads that come from a request go through
``_owned`` and never return another user's rows.
"""

from typing import Generic, List, Type, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select
from sqlmodel import SQLModel


ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Async repository with the operations shared by all tables.

    Args:
        model: The SQLModel class to operate on
        session: Async database session
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self._model = model
        self._session = session

    @property
    def session(self) -> AsyncSession:
        """Get the current session."""
        return self._session

    def _owned(self, user_id: UUID) -> Select:
        """SELECT restricted to rows owned by ``user_id``."""
        return select(self._model).where(self._model.user_id == user_id)

    async def add(self, obj: ModelType) -> ModelType:
        """Stage a new record and load server-side values."""
        self._session.add(obj)
        await self._session.flush()
        await self._session.refresh(obj)
        return obj

    async def add_all(self, objects: List[ModelType]) -> List[ModelType]:
        """Stage several records in one flush."""
        self._session.add_all(objects)
        await self._session.flush()
        for obj in objects:
            await self._session.refresh(obj)
        return objects

    async def commit(self) -> None:
        """Commit the unit of work so other sessions can see it."""
        await self._session.commit()

    async def release(self) -> None:
        """End a read-only transaction and hand its connection back to the pool."""
        await self._session.commit()
