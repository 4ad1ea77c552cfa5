"""
Base Data Access Object.

Services never build queries themselves; they go through a DAO bound to
the request's AsyncSession. Writes are flushed by the session, never
committed here: the ``get_db`` dependency (or the webhook, before it
notifies browsers) owns the commit.
"""

from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from renewal.models.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseDAO(Generic[ModelType]):
    """
    Lookups and single-row updates for one model.

    Example:
        >>> plans = BaseDAO(Plan, session)
        >>> plan = await plans.get_by_id(company.plan_id)
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    async def get_by_id(self, id: int) -> Optional[ModelType]:
        result = await self.session.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def update(self, id: int, **values: Any) -> Optional[ModelType]:
        """
        Write ``values`` to the row with primary key ``id``.

        Returns:
            The refreshed instance, or None if no such row exists
        """
        result = await self.session.execute(
            update(self.model).where(self.model.id == id).values(**values).returning(self.model)
        )
        instance = result.scalar_one_or_none()
        if instance is not None:
            await self.session.refresh(instance)
        return instance
