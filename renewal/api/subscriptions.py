"""
Subscription renewal API endpoints.

WHAT: REST endpoints for paying a subscription invoice through Pix:
1. POST /subscription - Create a Pix charge for an invoice
2. GET /subscription/check/{payment_id} - Poll a charge and confirm it
3. POST /subscription/webhook/{type} - Gateway payment notifications

Polling and the webhook share SubscriptionPaymentService.confirm_payment;
only the webhook pushes a realtime event, because the polling browser
already has the answer in its response.

SECURITY:
- Company-scoped invoice access (403 on another company's invoice)
- Authenticated endpoints only (except webhook)
- The webhook always answers 200 {"ok": true} so the gateway does not
  retry; failures go to the webhook diagnostic log
"""

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from renewal.core.config import settings
from renewal.core.deps import (
    get_clock,
    get_current_user,
    get_gateway,
    get_realtime_hub,
    get_subscription_log,
    get_webhook_log,
)
from renewal.core.logging_config import PaymentLog
from renewal.db.session import get_db
from renewal.models.user import User
from renewal.schemas.subscription import (
    CompanyResponse,
    PaymentStatusResponse,
    RealtimePaymentEvent,
    SubscriptionCreateRequest,
    SubscriptionPaymentResponse,
    WebhookAck,
    WebhookNotification,
)
from renewal.services.mercadopago_client import PaymentGateway
from renewal.services.realtime import RealtimeHub, company_payment_event
from renewal.services.subscription_payment_service import SubscriptionPaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscription", tags=["Subscription"])

PAYMENT_ACTIONS = {"payment.created", "payment.updated"}


def get_subscription_payment_service(
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
    log: PaymentLog = Depends(get_subscription_log),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> SubscriptionPaymentService:
    return SubscriptionPaymentService(db, gateway, log=log, now=clock)


# ============================================================================
# Payment creation
# ============================================================================


@router.post(
    "",
    response_model=SubscriptionPaymentResponse,
    summary="Create Pix payment",
    description="Creates a Pix charge for an invoice of the current company.",
)
async def create_subscription_payment(
    payload: Optional[SubscriptionCreateRequest] = None,
    current_user: User = Depends(get_current_user),
    service: SubscriptionPaymentService = Depends(get_subscription_payment_service),
):
    """
    Create a Pix payment for an invoice.

    Returns:
        QR code text and image, amount, plan and company names

    Raises:
        ValidationError (400): invoiceId missing or invoice value not positive
        InvoiceAccessDenied (403): Invoice belongs to another company
        ResourceNotFoundError (404): Invoice, company or plan not found
        PaymentGatewayError: Gateway rejected the charge
    """
    invoice_id = payload.invoice_id if payload else None
    result = await service.create_pix_payment(
        company_id=current_user.company_id,
        invoice_id=invoice_id,
    )
    return SubscriptionPaymentResponse.from_result(result)


# ============================================================================
# Payment status polling
# ============================================================================


@router.get(
    "/check/{payment_id}",
    response_model=PaymentStatusResponse,
    response_model_exclude_none=True,
    summary="Check Pix payment status",
    description="Reads the payment from the gateway and settles it when approved.",
)
async def check_payment_status(
    payment_id: str,
    current_user: User = Depends(get_current_user),
    service: SubscriptionPaymentService = Depends(get_subscription_payment_service),
):
    """
    Poll a payment.

    Returns:
        {status, success} plus company and message once approved

    Raises:
        PaymentGatewayError: "Erro ao verificar status do pagamento"
    """
    result = await service.confirm_payment(payment_id=payment_id)

    company = None
    if result.company is not None and result.company.id == current_user.company_id:
        company = CompanyResponse.model_validate(result.company)

    return PaymentStatusResponse(
        status=result.status,
        success=result.success,
        company=company,
        message=result.message,
    )


# ============================================================================
# Gateway webhook
# ============================================================================


async def _read_json(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return None


async def process_payment_webhook(
    webhook_type: Optional[str],
    body: Any,
    db: AsyncSession,
    gateway: PaymentGateway,
    hub: RealtimeHub,
    log: PaymentLog,
    clock: Callable[[], datetime],
) -> WebhookAck:
    """
    Handle one gateway notification.

    Never raises: every failure is logged, the transaction is rolled
    back, and the gateway still gets an acknowledgement.
    """
    try:
        notification = (
            WebhookNotification.model_validate(body)
            if isinstance(body, dict)
            else WebhookNotification()
        )
        log.info(
            "Webhook received",
            type=webhook_type,
            action=notification.action,
            data=notification.data.model_dump() if notification.data else None,
        )

        if webhook_type != settings.MERCADOPAGO_WEBHOOK_TYPE:
            log.info("Ignoring webhook of unknown type", type=webhook_type)
            return WebhookAck()

        if notification.action not in PAYMENT_ACTIONS:
            log.info("Unsupported webhook action", action=notification.action)
            return WebhookAck()

        payment_id = notification.payment_id
        if not payment_id:
            log.warning("Webhook without payment id", action=notification.action)
            return WebhookAck()

        service = SubscriptionPaymentService(db, gateway, log=log, now=clock)
        result = await service.confirm_payment(payment_id=payment_id)

        if not result.success:
            log.info(
                "Webhook payment not settled",
                payment_id=payment_id,
                status=result.status,
                reason=result.reason,
            )
            return WebhookAck()

        if result.newly_confirmed and result.company is not None:
            # Browsers must never see a renewal that could still roll back
            await db.commit()
            event = company_payment_event(result.company.id)
            delivered = await hub.emit(
                event,
                RealtimePaymentEvent(
                    company=CompanyResponse.model_validate(result.company)
                ).to_payload(),
            )
            log.info(
                "Payment processed",
                payment_id=payment_id,
                company_id=result.company.id,
                event=event,
                delivered=delivered,
            )

    except Exception as e:
        log.error("Webhook processing failed", error=str(e), error_type=type(e).__name__)
        logger.error(f"Error processing payment webhook: {e}")
        await db.rollback()

    return WebhookAck()


@router.post(
    "/webhook",
    response_model=WebhookAck,
    summary="Payment webhook (no type)",
    include_in_schema=False,
)
@router.post("/webhook/", response_model=WebhookAck, include_in_schema=False)
async def payment_webhook_untyped(
    request: Request,
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
    hub: RealtimeHub = Depends(get_realtime_hub),
    log: PaymentLog = Depends(get_webhook_log),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    body = await _read_json(request)
    return await process_payment_webhook(None, body, db, gateway, hub, log, clock)


@router.post(
    "/webhook/{webhook_type}",
    response_model=WebhookAck,
    summary="Payment webhook",
    description="Receives payment notifications from the gateway.",
)
async def payment_webhook(
    webhook_type: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
    hub: RealtimeHub = Depends(get_realtime_hub),
    log: PaymentLog = Depends(get_webhook_log),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Handle a gateway payment notification.

    Only ``type == "mercadopago"`` with action ``payment.created`` or
    ``payment.updated`` and a ``data.id`` is processed; everything else is
    logged and acknowledged.

    Returns:
        {"ok": true}, always with HTTP 200
    """
    body = await _read_json(request)
    return await process_payment_webhook(webhook_type, body, db, gateway, hub, log, clock)
