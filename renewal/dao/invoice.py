"""
Invoice Data Access Object.

WHAT: Invoice lookups by gateway external reference and the guarded
``paid`` transition used by payment confirmation.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from renewal.dao.base import BaseDAO
from renewal.models.invoice import Invoice, InvoiceStatus

# Upper bound of the Integer primary key
MAX_INVOICE_ID = 2**31 - 1


class InvoiceDAO(BaseDAO[Invoice]):
    """Data Access Object for Invoice operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Invoice, session)

    async def get_by_id(self, id: int) -> Optional[Invoice]:
        """Fetch an invoice; ids outside the key range resolve to None."""
        if not 0 < id <= MAX_INVOICE_ID:
            return None
        return await super().get_by_id(id)

    async def get_by_external_reference(self, reference: Optional[str]) -> Optional[Invoice]:
        """
        Resolve the invoice a gateway payment refers to.

        The gateway echoes back whatever string was sent as
        ``external_reference``; payments created outside this service can
        carry anything, so non-numeric references resolve to None.

        Args:
            reference: External reference from the payment intent

        Returns:
            Invoice if found, None otherwise
        """
        if reference is None:
            return None
        try:
            invoice_id = int(str(reference).strip())
        except ValueError:
            return None
        return await self.get_by_id(invoice_id)

    async def record_payment_attempt(self, invoice_id: int, payment_id: str) -> None:
        """Remember the latest gateway payment issued for an invoice."""
        await self.session.execute(
            update(Invoice)
            .where(Invoice.id == invoice_id)
            .values(payment_id=payment_id, updated_at=datetime.utcnow())
        )

    async def mark_paid(
        self,
        invoice_id: int,
        last_status: str,
        payment_id: Optional[str] = None,
        paid_at: Optional[datetime] = None,
    ) -> bool:
        """
        Move an invoice to ``paid`` unless it already is.

        WHAT: Conditional UPDATE ... WHERE status <> 'paid'. The row count
        tells the caller whether this call performed the transition, so of
        two concurrent confirmations (poll and webhook) only one goes on
        to extend the subscription.

        Args:
            invoice_id: Invoice to settle
            last_status: Gateway status string to record
            payment_id: Gateway payment ID that settled it
            paid_at: Payment timestamp (defaults to now)

        Returns:
            True if this call changed the status, False if it was already paid
            or the invoice does not exist
        """
        values = {
            "status": InvoiceStatus.PAID.value,
            "payment_date": paid_at or datetime.utcnow(),
            "last_status": last_status,
            "updated_at": datetime.utcnow(),
        }
        if payment_id is not None:
            values["payment_id"] = payment_id

        result = await self.session.execute(
            update(Invoice)
            .where(
                Invoice.id == invoice_id,
                Invoice.status != InvoiceStatus.PAID.value,
            )
            .values(**values)
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount == 1
