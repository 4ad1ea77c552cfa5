"""
Subscription payment schemas for API request/response validation.

WHAT: Pydantic schemas for the Pix renewal endpoints.

HOW: Uses Pydantic v2 with Field aliases and model_config. The wire
format is fixed by the existing web client:
- creation request/response keys are Portuguese (``qrcode``, ``valor``,
  ``plano``, ``cliente``) plus ``invoiceId``
- companies are rendered in camelCase (``dueDate``, ``planId``)
"""

from datetime import date
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ============================================================================
# Company
# ============================================================================


class CompanyResponse(BaseModel):
    """Company as pushed to the browser after a renewal."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: int
    name: str
    email: Optional[str] = None
    document: Optional[str] = None
    due_date: Optional[date] = None
    plan_id: Optional[int] = None
    is_active: bool = True


# ============================================================================
# Payment creation
# ============================================================================


class SubscriptionCreateRequest(BaseModel):
    """
    Body of ``POST /subscription``.

    ``invoiceId`` is optional at the schema level so that a missing value
    gets the service's own 400 message instead of a generic one.
    """

    model_config = ConfigDict(populate_by_name=True)

    invoice_id: Optional[int] = Field(None, alias="invoiceId")


class QRCodePayload(BaseModel):
    qrcode: Optional[str] = Field(None, description="Pix copy-and-paste code")
    imagemQrcode: Optional[str] = Field(None, description="Base64 PNG of the QR code")
    imagemQrcodePix: Optional[str] = Field(None, description="Same image, legacy key")


class PixValue(BaseModel):
    original: float


class SubscriptionPaymentResponse(BaseModel):
    """Pix charge returned to the checkout page."""

    id: str
    qrcode: QRCodePayload
    valor: PixValue
    plano: str
    cliente: str
    status: str = "pending"
    payment_type: str = "pix"
    external_reference: str

    @classmethod
    def from_result(cls, result) -> "SubscriptionPaymentResponse":
        """Build from a service PixPaymentResult."""
        return cls(
            id=result.payment_id,
            qrcode=QRCodePayload(
                qrcode=result.qr_code,
                imagemQrcode=result.qr_code_base64,
                imagemQrcodePix=result.qr_code_base64,
            ),
            valor=PixValue(original=float(result.amount)),
            plano=result.plan_name,
            cliente=result.company_name,
            status="pending",
            payment_type=result.payment_type,
            external_reference=result.external_reference,
        )


# ============================================================================
# Payment confirmation
# ============================================================================


class PaymentStatusResponse(BaseModel):
    """
    Result of ``GET /subscription/check/{paymentId}``.

    ``company`` and ``message`` are only present on success.
    """

    status: str
    success: bool
    company: Optional[CompanyResponse] = None
    message: Optional[str] = None


class WebhookData(BaseModel):
    id: Optional[Union[str, int]] = None


class WebhookNotification(BaseModel):
    """
    Gateway payment notification body.

    Only ``action`` and ``data.id`` are read; the rest is kept for the log.
    """

    model_config = ConfigDict(extra="allow")

    action: Optional[str] = None
    type: Optional[str] = None
    data: Optional[WebhookData] = None

    @property
    def payment_id(self) -> Optional[str]:
        if self.data is None or self.data.id in (None, ""):
            return None
        return str(self.data.id)


class WebhookAck(BaseModel):
    ok: bool = True


class RealtimePaymentEvent(BaseModel):
    """Payload of ``company-{id}-payment``."""

    action: str = "CONCLUIDA"
    company: CompanyResponse

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
