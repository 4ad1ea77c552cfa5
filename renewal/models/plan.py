"""
Plan model.

WHAT: The subscription plan a company is on. Read-only for the renewal
flow, which only uses the name in the payment description and response.
"""

from sqlalchemy import Column, String, Numeric
from sqlalchemy.orm import relationship

from renewal.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Plan(Base, PrimaryKeyMixin, TimestampMixin):
    __tablename__ = "plans"

    name = Column(String(255), nullable=False)
    amount = Column(Numeric(10, 2), nullable=True, comment="Monthly list price")

    companies = relationship("Company", back_populates="plan", lazy="noload")

    def __repr__(self) -> str:
        return f"<Plan(id={self.id}, name={self.name})>"
