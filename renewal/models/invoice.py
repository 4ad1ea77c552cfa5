"""
Invoice model for subscription billing.

WHAT: SQLAlchemy model representing a subscription invoice a company
pays through Pix.

HOW: ``status`` is a plain string column. The renewal flow only writes
``pending`` -> ``paid``, but invoices imported from the billing
scheduler may carry other values (``open``, ``cancelled``) that must be
preserved untouched.

Invariant: ``pending`` -> ``paid`` happens at most once per invoice
(enforced by InvoiceDAO.mark_paid's conditional update).
"""

from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional, TYPE_CHECKING
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Date,
    ForeignKey,
    Numeric,
)
from sqlalchemy.orm import relationship, Mapped

from renewal.models.base import Base

if TYPE_CHECKING:
    from renewal.models.company import Company


class InvoiceStatus(str, Enum):
    """
    Known invoice status values.

    - PENDING: Awaiting payment
    - PAID: Payment confirmed by the gateway
    - OPEN: Issued by the billing scheduler, not yet presented for payment
    - CANCELLED: Voided
    """

    PENDING = "pending"
    PAID = "paid"
    OPEN = "open"
    CANCELLED = "cancelled"


class Invoice(Base):
    """
    Invoice model.

    Attributes:
        id: Primary key, also the gateway external reference
        company_id: Owning company
        detail: Free-text description shown to the tenant
        value: Amount due in BRL
        status: See InvoiceStatus
        due_date: Invoice due date
        payment_date: When the gateway payment was confirmed
        last_status: Last gateway status string seen on confirmation
        payment_id: Last gateway payment ID issued for this invoice
    """

    __tablename__ = "invoices"

    id: Mapped[int] = Column(Integer, primary_key=True, index=True)

    company_id: Mapped[int] = Column(
        Integer,
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning company (for access control)",
    )

    detail: Mapped[Optional[str]] = Column(Text, nullable=True)

    value: Mapped[Decimal] = Column(
        Numeric(10, 2),
        nullable=False,
        default=0,
        comment="Amount due in BRL",
    )

    status: Mapped[str] = Column(
        String(32),
        nullable=False,
        default=InvoiceStatus.PENDING.value,
        index=True,
    )

    due_date: Mapped[Optional[date]] = Column(Date, nullable=True)

    payment_date: Mapped[Optional[datetime]] = Column(
        DateTime,
        nullable=True,
        comment="When the gateway confirmed payment",
    )
    last_status: Mapped[Optional[str]] = Column(
        String(64),
        nullable=True,
        comment="Gateway status string at confirmation",
    )
    payment_id: Mapped[Optional[str]] = Column(
        String(64),
        nullable=True,
        index=True,
        comment="Last gateway payment ID issued for this invoice",
    )

    created_at: Mapped[datetime] = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
    )
    updated_at: Mapped[datetime] = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )

    company: Mapped["Company"] = relationship(
        "Company",
        back_populates="invoices",
        lazy="noload",
    )

    def __repr__(self) -> str:
        return f"<Invoice(id={self.id}, company_id={self.company_id}, status={self.status})>"

    @property
    def is_paid(self) -> bool:
        return self.status == InvoiceStatus.PAID.value
