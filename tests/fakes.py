"""
Test doubles for the payment gateway, WebSockets and the UI notifier.
"""

import base64
from typing import Any, Dict, List, Optional

from renewal.core.exceptions import PaymentGatewayError
from renewal.services.mercadopago_client import PaymentIntent, PixPaymentRequest

FAKE_QR_CODE = "00020126580014br.gov.bcb.pix0136fake-pix-key5204000053039865406"
FAKE_QR_IMAGE = base64.b64encode(b"\x89PNG fake image").decode()


class FakeGateway:
    """
    In-memory PaymentGateway.

    Payments start ``pending``; tests flip them with ``approve()``.
    Set ``create_error`` / ``get_error`` to make the next calls fail.
    """

    def __init__(self) -> None:
        self.payments: Dict[str, PaymentIntent] = {}
        self.created: List[PixPaymentRequest] = []
        self.fetched: List[str] = []
        self.create_error: Optional[Exception] = None
        self.get_error: Optional[Exception] = None
        self._next_id = 1000

    async def create_pix_payment(self, request: PixPaymentRequest) -> PaymentIntent:
        if self.create_error is not None:
            raise self.create_error
        self.created.append(request)
        self._next_id += 1
        intent = PaymentIntent(
            id=str(self._next_id),
            status="pending",
            external_reference=request.external_reference,
            transaction_amount=request.amount,
            qr_code=FAKE_QR_CODE,
            qr_code_base64=FAKE_QR_IMAGE,
        )
        self.payments[intent.id] = intent
        return intent

    async def get_payment(self, payment_id: str) -> PaymentIntent:
        self.fetched.append(payment_id)
        if self.get_error is not None:
            raise self.get_error
        if payment_id not in self.payments:
            raise PaymentGatewayError(
                message="Payment not found",
                status_code=404,
                gateway_message="Payment not found",
            )
        return self.payments[payment_id]

    def add_payment(
        self,
        payment_id: str,
        status: str = "approved",
        external_reference: Optional[str] = None,
    ) -> PaymentIntent:
        intent = PaymentIntent(
            id=payment_id,
            status=status,
            external_reference=external_reference,
        )
        self.payments[payment_id] = intent
        return intent

    def approve(self, payment_id: str) -> None:
        self.payments[payment_id].status = "approved"


class FakeWebSocket:
    """Records what the hub sends; ``fail=True`` makes sends raise."""

    def __init__(self, fail: bool = False) -> None:
        self.sent: List[Dict[str, Any]] = []
        self.fail = fail

    async def send_json(self, data: Dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("WebSocket is not connected")
        self.sent.append(data)


class RecordingNotifier:
    def __init__(self) -> None:
        self.successes: List[str] = []
        self.infos: List[str] = []
        self.errors: List[str] = []
        self.redirects: List[str] = []

    def success(self, message: str) -> None:
        self.successes.append(message)

    def info(self, message: str) -> None:
        self.infos.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)

    def redirect(self, path: str) -> None:
        self.redirects.append(path)
