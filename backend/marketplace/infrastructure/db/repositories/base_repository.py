"""
Base Repository for the Marketplace Backend

Generic async repository over a caller-owned AsyncSession. Repositories never
commit: the surrounding unit of work (DatabaseManager.session) decides that.
"""

from typing import Generic, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel


ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic async repository with the operations every table needs.

    Args:
        model: The SQLModel class to operate on
        session: Async database session
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self._model = model
        self._session = session

    async def get_by_id(self, id: str, for_update: bool = False) -> Optional[ModelType]:
        """
        Get a single record by its primary key.

        Args:
            id: Primary key
            for_update: Lock the row until the unit of work ends

        Returns:
            Model instance or None if not found
        """
        if not for_update:
            return await self._session.get(self._model, id)
        stmt = select(self._model).where(self._model.id == id).with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def add(self, db_obj: ModelType) -> ModelType:
        """
        Stage a new or modified record and flush it.

        Flushing surfaces constraint violations inside the unit of work.
        """
        self._session.add(db_obj)
        await self._session.flush()
        return db_obj
