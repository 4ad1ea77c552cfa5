"""
SQLAlchemy models.

Importing this package registers every table on Base.metadata.
"""

from renewal.models.base import Base
from renewal.models.plan import Plan
from renewal.models.company import Company
from renewal.models.user import User
from renewal.models.invoice import Invoice, InvoiceStatus

__all__ = ["Base", "Plan", "Company", "User", "Invoice", "InvoiceStatus"]
