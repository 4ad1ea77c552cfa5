"""User Data Access Object."""

from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from renewal.dao.base import BaseDAO
from renewal.models.user import User


class UserDAO(BaseDAO[User]):
    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    async def get_active(self, user_id: int) -> Optional[User]:
        """Return the user if it exists and is active."""
        result = await self.session.execute(
            select(User).where(User.id == user_id, User.is_active.is_(True))
        )
        return result.scalar_one_or_none()
