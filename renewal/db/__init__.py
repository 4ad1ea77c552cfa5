"""Database package"""

from renewal.db.session import AsyncSessionLocal, engine, get_db
from renewal.models.base import Base

__all__ = ["Base", "AsyncSessionLocal", "engine", "get_db"]
