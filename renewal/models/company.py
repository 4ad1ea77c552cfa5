"""
Company model.

WHAT: The tenant account. Holds the contact data sent to the payment
gateway as payer and the subscription due date the renewal extends.

Invariant: due_date only moves forward, and only through
services.subscription_extension.compute_new_due_date.
"""

from sqlalchemy import Column, String, Date, Boolean, Integer, ForeignKey
from sqlalchemy.orm import relationship

from renewal.models.base import Base, TimestampMixin, PrimaryKeyMixin


class Company(Base, PrimaryKeyMixin, TimestampMixin):
    """
    Company model representing a tenant in the multi-tenant system.

    Attributes:
        name: Display name, also sent as payer first_name
        email: Billing contact, sent as payer email
        document: CPF (11 digits) or CNPJ, sent as payer identification
        due_date: Date through which the subscription is active
        plan_id: Active plan
    """

    __tablename__ = "companies"

    name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    document = Column(String(32), nullable=True, comment="CPF or CNPJ, digits only")
    due_date = Column(Date, nullable=True, comment="Subscription active through this date")
    plan_id = Column(Integer, ForeignKey("plans.id"), nullable=True, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    plan = relationship("Plan", back_populates="companies", lazy="noload")
    users = relationship("User", back_populates="company", lazy="noload")
    invoices = relationship("Invoice", back_populates="company", lazy="noload")

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, name={self.name}, due_date={self.due_date})>"
