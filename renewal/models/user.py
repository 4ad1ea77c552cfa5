"""
User model.

WHAT: The authenticated principal. Only its company_id matters to the
renewal flow: it scopes which invoices the caller may pay.
"""

from sqlalchemy import Column, Integer, String, ForeignKey, Boolean
from sqlalchemy.orm import relationship

from renewal.models.base import Base, TimestampMixin, PrimaryKeyMixin


class User(Base, PrimaryKeyMixin, TimestampMixin):
    __tablename__ = "users"

    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    company = relationship("Company", back_populates="users", lazy="noload")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, company_id={self.company_id})>"
