"""
MercadoPago payment gateway client.

WHAT: Async HTTP client for the two MercadoPago operations the renewal
flow needs:
1. Create a Pix payment for an invoice (QR code text + image)
2. Read a payment's current status by ID

HOW: Uses httpx against the REST API (``/v1/payments``) with:
- Bearer token authentication
- A fixed request timeout (5 s by default)
- A fresh X-Idempotency-Key per payment creation
- Every failure wrapped in PaymentGatewayError

The client is built once by application startup (build_gateway_client),
kept on ``app.state.gateway`` and closed on shutdown. Routes receive it
through the ``get_gateway`` dependency, so tests can inject a fake that
satisfies the PaymentGateway protocol.
"""

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional, Protocol

import httpx

from renewal.core.config import Settings
from renewal.core.exceptions import ConfigurationError, PaymentGatewayError

logger = logging.getLogger(__name__)


# ============================================================================
# Constants
# ============================================================================

DEFAULT_BASE_URL = "https://api.mercadopago.com"

DEFAULT_TIMEOUT = 5.0

PIX_PAYMENT_METHOD = "pix"

# Gateway status that settles an invoice
STATUS_APPROVED = "approved"

# Individuals (CPF) have 11-digit documents; anything else is sent as CNPJ
CPF_LENGTH = 11


def identification_type(document: Optional[str]) -> str:
    """
    Payer identification type for a company document.

    Returns:
        "CPF" when the document is exactly 11 characters, else "CNPJ"
    """
    if document is not None and len(document) == CPF_LENGTH:
        return "CPF"
    return "CNPJ"


# ============================================================================
# Data Classes
# ============================================================================


@dataclass
class PixPaymentRequest:
    """
    Input for a Pix payment creation.

    ``external_reference`` is echoed back by the gateway on every status
    read; it carries the invoice ID.
    """

    amount: Decimal
    description: str
    payer_email: Optional[str]
    payer_first_name: Optional[str]
    payer_document: Optional[str]
    external_reference: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "transaction_amount": float(self.amount),
            "description": self.description,
            "payment_method_id": PIX_PAYMENT_METHOD,
            "payer": {
                "email": self.payer_email,
                "first_name": self.payer_first_name,
                "identification": {
                    "type": identification_type(self.payer_document),
                    "number": self.payer_document or "",
                },
            },
            "external_reference": self.external_reference,
        }


@dataclass
class PaymentIntent:
    """
    A gateway payment as seen by this service.

    Not persisted; rebuilt from the gateway on every status check.
    """

    id: str
    status: str
    status_detail: Optional[str] = None
    external_reference: Optional[str] = None
    transaction_amount: Optional[Decimal] = None
    qr_code: Optional[str] = None
    qr_code_base64: Optional[str] = None
    ticket_url: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_approved(self) -> bool:
        return self.status == STATUS_APPROVED

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "PaymentIntent":
        """
        Build from a ``/v1/payments`` response body.

        Raises:
            PaymentGatewayError: If the body has no payment ID
        """
        if not payload.get("id"):
            raise PaymentGatewayError(
                message="Resposta inválida do Mercado Pago",
                gateway_message="payment response without id",
            )

        transaction_data = (payload.get("point_of_interaction") or {}).get("transaction_data") or {}
        amount = payload.get("transaction_amount")

        return cls(
            id=str(payload["id"]),
            status=payload.get("status") or "",
            status_detail=payload.get("status_detail"),
            external_reference=payload.get("external_reference"),
            transaction_amount=Decimal(str(amount)) if amount is not None else None,
            qr_code=transaction_data.get("qr_code"),
            qr_code_base64=transaction_data.get("qr_code_base64"),
            ticket_url=transaction_data.get("ticket_url"),
            raw=payload,
        )


class PaymentGateway(Protocol):
    """Operations the payment service needs from a gateway."""

    async def create_pix_payment(self, request: PixPaymentRequest) -> PaymentIntent:
        ...

    async def get_payment(self, payment_id: str) -> PaymentIntent:
        ...


# ============================================================================
# MercadoPago Client
# ============================================================================


class MercadoPagoClient:
    """
    Async HTTP client for the MercadoPago payments API.

    Example:
        >>> client = MercadoPagoClient(access_token="APP_USR-...")
        >>> intent = await client.get_payment("123456789")
        >>> intent.status
        'approved'
        >>> await client.aclose()
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the client.

        Args:
            access_token: MercadoPago access token
            base_url: API root
            timeout: Per-request timeout in seconds
            http_client: Pre-built httpx client (tests pass one with a
                MockTransport); when omitted the client owns its own

        Raises:
            ConfigurationError: If the access token is empty
        """
        if not access_token:
            raise ConfigurationError(message="MERCADOPAGO_ACCESS_TOKEN não configurado")

        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    def _get_headers(self, idempotency_key: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if idempotency_key:
            headers["X-Idempotency-Key"] = idempotency_key
        return headers

    @staticmethod
    def _parse_error_response(response: httpx.Response) -> str:
        """
        Extract the gateway's error message from an error response.

        MercadoPago errors look like
        ``{"message": "...", "error": "bad_request", "status": 400, "cause": [...]}``.
        """
        try:
            body = response.json()
        except ValueError:
            return response.text[:200] or f"HTTP {response.status_code}"

        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
            if message:
                return str(message)
        return f"HTTP {response.status_code}"

    async def _request(
        self,
        method: str,
        path: str,
        data: Optional[Dict[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Make an authenticated request to the payments API.

        Raises:
            PaymentGatewayError: On transport errors, timeouts, 4xx/5xx
                responses (status passed through) or non-JSON bodies
        """
        url = f"{self._base_url}{path}"

        try:
            response = await self._client.request(
                method=method,
                url=url,
                headers=self._get_headers(idempotency_key),
                json=data,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as e:
            logger.error(f"MercadoPago timeout on {method} {path}: {e}")
            raise PaymentGatewayError(
                message="Mercado Pago não respondeu a tempo",
                gateway_message="timeout",
                path=path,
            )
        except httpx.HTTPError as e:
            logger.error(f"MercadoPago transport error on {method} {path}: {e}")
            raise PaymentGatewayError(
                message=f"Falha de comunicação com o Mercado Pago: {e}",
                gateway_message=str(e),
                path=path,
            )

        if response.status_code >= 400:
            detail = self._parse_error_response(response)
            logger.warning(
                f"MercadoPago error {response.status_code} on {method} {path}: {detail}",
                extra={"status_code": response.status_code, "path": path},
            )
            raise PaymentGatewayError(
                message=detail,
                status_code=response.status_code,
                gateway_message=detail,
                path=path,
            )

        try:
            body = response.json()
        except ValueError:
            raise PaymentGatewayError(
                message="Resposta inválida do Mercado Pago",
                gateway_message="response body is not JSON",
                path=path,
            )

        if not isinstance(body, dict):
            raise PaymentGatewayError(
                message="Resposta inválida do Mercado Pago",
                gateway_message="response body is not an object",
                path=path,
            )
        return body

    async def create_pix_payment(self, request: PixPaymentRequest) -> PaymentIntent:
        """
        Create a Pix payment.

        Returns:
            PaymentIntent with the QR code text and base64 image

        Raises:
            PaymentGatewayError: If the call fails or the response has no ID
        """
        body = await self._request(
            "POST",
            "/v1/payments",
            data=request.to_payload(),
            idempotency_key=str(uuid.uuid4()),
        )
        intent = PaymentIntent.from_api(body)

        logger.info(
            f"Created Pix payment {intent.id} for reference {request.external_reference}",
            extra={"payment_id": intent.id, "external_reference": request.external_reference},
        )
        return intent

    async def get_payment(self, payment_id: str) -> PaymentIntent:
        """
        Read a payment by ID.

        Raises:
            PaymentGatewayError: If the call fails
        """
        body = await self._request("GET", f"/v1/payments/{payment_id}")
        return PaymentIntent.from_api(body)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()


def build_gateway_client(config: Settings) -> MercadoPagoClient:
    """
    Build the process-wide gateway client from settings.

    Raises:
        ConfigurationError: If MERCADOPAGO_ACCESS_TOKEN is not set
    """
    return MercadoPagoClient(
        access_token=config.MERCADOPAGO_ACCESS_TOKEN or "",
        base_url=config.MERCADOPAGO_BASE_URL,
        timeout=config.MERCADOPAGO_TIMEOUT_SECONDS,
    )
