"""
Subscription payment service.

WHAT: Business logic for renewing a company's subscription through Pix:
1. create_pix_payment: validate an invoice and issue a Pix charge for it
2. confirm_payment: settle an approved gateway payment exactly once and
   extend the company's due date

HOW: Integrates with:
- InvoiceDAO / CompanyDAO for database operations
- A PaymentGateway (MercadoPagoClient in production) for the charge
- PaymentLog for the per-step diagnostic trail

Both the browser poll and the gateway webhook call confirm_payment; the
conditional ``pending -> paid`` update in InvoiceDAO.mark_paid decides
which one performs the extension when they race.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from renewal.core.config import settings
from renewal.core.exceptions import (
    AuthenticationError,
    CompanyNotFoundError,
    InvoiceAccessDenied,
    InvoiceNotFoundError,
    PaymentGatewayError,
    PlanNotFoundError,
    ValidationError,
)
from renewal.core.logging_config import SUBSCRIPTION_LOGGER, PaymentLog
from renewal.dao.base import BaseDAO
from renewal.dao.company import CompanyDAO
from renewal.dao.invoice import InvoiceDAO
from renewal.models.company import Company
from renewal.models.plan import Plan
from renewal.services.mercadopago_client import (
    PaymentGateway,
    PaymentIntent,
    PixPaymentRequest,
)
from renewal.services.subscription_extension import compute_new_due_date


MESSAGE_APPROVED = "Pagamento aprovado com sucesso!"
MESSAGE_ALREADY_PROCESSED = "Pagamento já foi processado anteriormente!"

CREATE_ERROR_PREFIX = "Erro ao gerar QR code PIX"
CHECK_ERROR_MESSAGE = "Erro ao verificar status do pagamento"

PAYMENT_TYPE_PIX = "pix"


# ============================================================================
# Data Classes
# ============================================================================


@dataclass
class PixPaymentResult:
    """Everything the creation endpoint returns about a new Pix charge."""

    payment_id: str
    status: str
    qr_code: Optional[str]
    qr_code_base64: Optional[str]
    amount: Decimal
    plan_name: str
    company_name: str
    external_reference: str
    payment_type: str = PAYMENT_TYPE_PIX


@dataclass
class ConfirmationResult:
    """
    Outcome of one confirmation attempt.

    ``newly_confirmed`` is True only for the call that actually moved the
    invoice to paid and extended the subscription; callers use it to
    decide whether to push a realtime notification.
    """

    status: str
    success: bool
    payment_id: Optional[str] = None
    company: Optional[Company] = None
    message: Optional[str] = None
    already_processed: bool = False
    newly_confirmed: bool = False
    reason: Optional[str] = None


# ============================================================================
# Service
# ============================================================================


class SubscriptionPaymentService:
    """
    Service for Pix subscription payments.

    Example:
        >>> service = SubscriptionPaymentService(db, gateway)
        >>> result = await service.create_pix_payment(company_id=1, invoice_id=7)
        >>> result.qr_code
        '00020126...'
    """

    def __init__(
        self,
        session: AsyncSession,
        gateway: PaymentGateway,
        log: Optional[PaymentLog] = None,
        now: Optional[Callable[[], datetime]] = None,
        extension_days: Optional[int] = None,
    ):
        """
        Initialize service.

        Args:
            session: Database session
            gateway: Payment gateway client
            log: Diagnostic log (defaults to the subscription log)
            now: Clock, injectable for tests
            extension_days: Days added per renewal
        """
        self.session = session
        self.gateway = gateway
        self.log = log or PaymentLog(SUBSCRIPTION_LOGGER)
        self._now = now or datetime.utcnow
        self.extension_days = (
            extension_days if extension_days is not None else settings.SUBSCRIPTION_EXTENSION_DAYS
        )
        self.invoice_dao = InvoiceDAO(session)
        self.company_dao = CompanyDAO(session)
        self.plan_dao = BaseDAO(Plan, session)

    # =========================================================================
    # Payment creation
    # =========================================================================

    async def create_pix_payment(
        self,
        company_id: Optional[int],
        invoice_id: Optional[int],
    ) -> PixPaymentResult:
        """
        Issue a Pix charge for an invoice of the caller's company.

        Checks run in this order and stop at the first failure:
        company present (401), invoice id present (400), invoice exists
        (404), invoice belongs to company (403), company exists (404),
        plan exists (404), invoice value positive (400).

        Args:
            company_id: Company of the authenticated user
            invoice_id: Invoice to pay

        Returns:
            PixPaymentResult with QR code text and image

        Raises:
            AuthenticationError, ValidationError, InvoiceNotFoundError,
            InvoiceAccessDenied, CompanyNotFoundError, PlanNotFoundError,
            PaymentGatewayError
        """
        self.log.info("Pix payment requested", company_id=company_id, invoice_id=invoice_id)

        if not company_id:
            self.log.warning("Pix payment rejected: no authenticated company")
            raise AuthenticationError(message="Usuário não autenticado")

        if not invoice_id or invoice_id <= 0:
            self.log.warning("Pix payment rejected: missing invoice id", company_id=company_id)
            raise ValidationError(message="invoiceId é obrigatório")

        invoice = await self.invoice_dao.get_by_id(invoice_id)
        if not invoice:
            self.log.warning("Invoice not found", invoice_id=invoice_id)
            raise InvoiceNotFoundError(invoice_id=invoice_id)
        self.log.info(
            "Invoice found",
            invoice_id=invoice.id,
            invoice_company_id=invoice.company_id,
            value=invoice.value,
            status=invoice.status,
        )

        if invoice.company_id != company_id:
            self.log.warning(
                "Invoice belongs to another company",
                invoice_id=invoice.id,
                company_id=company_id,
                invoice_company_id=invoice.company_id,
            )
            raise InvoiceAccessDenied(invoice_id=invoice.id)

        company = await self.company_dao.get_by_id(company_id)
        if not company:
            self.log.warning("Company not found", company_id=company_id)
            raise CompanyNotFoundError(company_id=company_id)

        plan = await self.plan_dao.get_by_id(company.plan_id) if company.plan_id else None
        if not plan:
            self.log.warning("Plan not found", company_id=company.id, plan_id=company.plan_id)
            raise PlanNotFoundError(plan_id=company.plan_id)

        amount = self._parse_amount(invoice.value)
        if amount is None or amount <= 0:
            self.log.warning("Invalid invoice value", invoice_id=invoice.id, value=invoice.value)
            raise ValidationError(message="Valor da fatura inválido", invoice_id=invoice.id)

        request = PixPaymentRequest(
            amount=amount,
            description=f"Fatura #{invoice.id} - {plan.name}",
            payer_email=company.email,
            payer_first_name=company.name,
            payer_document=company.document,
            external_reference=str(invoice.id),
        )
        self.log.info(
            "Sending Pix payment to gateway",
            invoice_id=invoice.id,
            amount=amount,
            description=request.description,
        )

        try:
            intent = await self.gateway.create_pix_payment(request)
        except PaymentGatewayError as e:
            gateway_message = e.context.get("gateway_message") or e.message
            self.log.error(
                "Gateway rejected Pix payment",
                invoice_id=invoice.id,
                status_code=e.status_code,
                gateway_message=gateway_message,
            )
            raise PaymentGatewayError(
                message=f"{CREATE_ERROR_PREFIX}: {gateway_message}",
                status_code=e.status_code,
                invoice_id=invoice.id,
            )

        await self.invoice_dao.record_payment_attempt(invoice.id, intent.id)
        self.log.info(
            "Pix payment created",
            invoice_id=invoice.id,
            payment_id=intent.id,
            status=intent.status,
        )

        return PixPaymentResult(
            payment_id=intent.id,
            status=intent.status or "pending",
            qr_code=intent.qr_code,
            qr_code_base64=intent.qr_code_base64,
            amount=amount,
            plan_name=plan.name,
            company_name=company.name,
            external_reference=str(invoice.id),
        )

    @staticmethod
    def _parse_amount(value) -> Optional[Decimal]:
        if value is None:
            return None
        try:
            return Decimal(str(value))
        except (InvalidOperation, ValueError):
            return None

    # =========================================================================
    # Payment confirmation
    # =========================================================================

    async def fetch_intent(self, payment_id: str) -> PaymentIntent:
        """
        Read a payment from the gateway.

        Raises:
            PaymentGatewayError: "Erro ao verificar status do pagamento",
                with the gateway status when it gave one
        """
        try:
            return await self.gateway.get_payment(payment_id)
        except PaymentGatewayError as e:
            self.log.error(
                "Failed to read payment from gateway",
                payment_id=payment_id,
                status_code=e.status_code,
                gateway_message=e.context.get("gateway_message") or e.message,
            )
            raise PaymentGatewayError(
                message=CHECK_ERROR_MESSAGE,
                status_code=e.status_code,
                payment_id=payment_id,
            )

    async def confirm_payment(
        self,
        payment_id: Optional[str] = None,
        intent: Optional[PaymentIntent] = None,
    ) -> ConfirmationResult:
        """
        Settle an approved payment and extend the subscription.

        Safe to call any number of times for the same payment: only the
        first call that moves the invoice to paid extends the due date.

        Args:
            payment_id: Gateway payment ID to fetch
            intent: Already fetched payment (skips the gateway read)

        Returns:
            ConfirmationResult

        Raises:
            PaymentGatewayError: If the payment cannot be read
        """
        if intent is None:
            if not payment_id:
                raise ValidationError(message="paymentId é obrigatório")
            intent = await self.fetch_intent(payment_id)

        self.log.info(
            "Payment status read",
            payment_id=intent.id,
            status=intent.status,
            external_reference=intent.external_reference,
        )

        if not intent.is_approved:
            return ConfirmationResult(status=intent.status, success=False, payment_id=intent.id)

        invoice = await self.invoice_dao.get_by_external_reference(intent.external_reference)
        if not invoice:
            self.log.warning(
                "Approved payment without matching invoice",
                payment_id=intent.id,
                external_reference=intent.external_reference,
            )
            return ConfirmationResult(
                status=intent.status,
                success=False,
                payment_id=intent.id,
                reason="invoice_not_found",
            )

        if invoice.is_paid:
            return await self._already_processed(intent, invoice.company_id)

        company = await self.company_dao.get_by_id(invoice.company_id)
        if not company:
            self.log.warning(
                "Approved payment for missing company",
                payment_id=intent.id,
                invoice_id=invoice.id,
                company_id=invoice.company_id,
            )
            return ConfirmationResult(
                status=intent.status,
                success=False,
                payment_id=intent.id,
                reason="company_not_found",
            )

        now = self._now()
        settled = await self.invoice_dao.mark_paid(
            invoice.id,
            last_status=intent.status,
            payment_id=intent.id,
            paid_at=now,
        )
        if not settled:
            # Lost the race to a concurrent confirmation of the same invoice
            return await self._already_processed(intent, invoice.company_id)

        previous_due_date = company.due_date
        new_due_date = compute_new_due_date(previous_due_date, now, days=self.extension_days)
        company = await self.company_dao.extend_due_date(company.id, new_due_date) or company

        self.log.info(
            "Subscription extended",
            payment_id=intent.id,
            invoice_id=invoice.id,
            company_id=company.id,
            previous_due_date=previous_due_date,
            new_due_date=new_due_date,
        )

        return ConfirmationResult(
            status=intent.status,
            success=True,
            payment_id=intent.id,
            company=company,
            message=MESSAGE_APPROVED,
            newly_confirmed=True,
        )

    async def _already_processed(self, intent: PaymentIntent, company_id: int) -> ConfirmationResult:
        self.log.info("Payment already processed", payment_id=intent.id, company_id=company_id)
        company = await self.company_dao.get_by_id(company_id)
        return ConfirmationResult(
            status=intent.status,
            success=True,
            payment_id=intent.id,
            company=company,
            message=MESSAGE_ALREADY_PROCESSED,
            already_processed=True,
        )
