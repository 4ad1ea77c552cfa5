"""Company Data Access Object."""

from datetime import date
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from renewal.dao.base import BaseDAO
from renewal.models.company import Company


class CompanyDAO(BaseDAO[Company]):
    """Data Access Object for Company operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Company, session)

    async def extend_due_date(self, company_id: int, new_due_date: date) -> Optional[Company]:
        """
        Persist a new subscription due date.

        The caller computes the date; this only writes it.
        """
        return await self.update(company_id, due_date=new_due_date)
