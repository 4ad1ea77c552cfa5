"""
Data Access Object package.

WHY: DAOs keep query code out of services and routes.
"""

from renewal.dao.base import BaseDAO
from renewal.dao.company import CompanyDAO
from renewal.dao.invoice import InvoiceDAO
from renewal.dao.user import UserDAO

__all__ = ["BaseDAO", "CompanyDAO", "InvoiceDAO", "UserDAO"]
