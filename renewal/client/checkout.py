"""
Checkout page view models.

PixCheckout turns the ``POST /subscription`` response into what the page
renders; CopyButton is the "copy Pix code" control with its short-lived
confirmation label.
"""

import asyncio
import base64
import binascii
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, Optional

COPY_LABEL = "Copiar código QR"
COPIED_LABEL = "Copiado"


def format_brl(amount: Decimal) -> str:
    """
    Format an amount the way pt-BR prices are shown.

    Example:
        >>> format_brl(Decimal("49.9"))
        'R$49,90'
        >>> format_brl(Decimal("1234.5"))
        'R$1.234,50'
    """
    quantized = Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    text = f"{quantized:,.2f}"
    # 1,234.50 -> 1.234,50
    return "R$" + text.replace(",", "_").replace(".", ",").replace("_", ".")


@dataclass
class PixCheckout:
    """What the checkout page shows for a pending Pix charge."""

    payment_id: str
    qr_code: str
    qr_image: Optional[bytes]
    amount: Decimal
    plan: Optional[str] = None
    customer: Optional[str] = None
    status: str = "pending"

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "PixCheckout":
        """
        Build from a creation response.

        Raises:
            ValueError: If the payment id, QR code or amount is missing
        """
        qrcode = payload.get("qrcode") or {}
        valor = payload.get("valor") or {}

        payment_id = payload.get("id")
        qr_code = qrcode.get("qrcode")
        original = valor.get("original")
        if not payment_id or not qr_code or original is None:
            raise ValueError("Incomplete Pix payment response")

        image = qrcode.get("imagemQrcodePix") or qrcode.get("imagemQrcode")
        qr_image = None
        if image:
            try:
                qr_image = base64.b64decode(image, validate=True)
            except (binascii.Error, ValueError):
                qr_image = None

        return cls(
            payment_id=str(payment_id),
            qr_code=qr_code,
            qr_image=qr_image,
            amount=Decimal(str(original)),
            plan=payload.get("plano"),
            customer=payload.get("cliente"),
            status=payload.get("status") or "pending",
        )

    @property
    def total_label(self) -> str:
        return format_brl(self.amount)


class CopyButton:
    """
    "Copy Pix code" button state.

    ``copy()`` must be called from inside a running event loop; the label
    flips back after ``reset_delay`` seconds.
    """

    def __init__(self, text: str, reset_delay: float = 1.0):
        self.text = text
        self.reset_delay = reset_delay
        self.copied = False
        self._reset_handle: Optional[asyncio.TimerHandle] = None

    @property
    def label(self) -> str:
        return COPIED_LABEL if self.copied else COPY_LABEL

    def copy(self, clipboard: Callable[[str], Any]) -> None:
        clipboard(self.text)
        self.copied = True

        if self._reset_handle is not None:
            self._reset_handle.cancel()
        loop = asyncio.get_running_loop()
        self._reset_handle = loop.call_later(self.reset_delay, self._reset)

    def close(self) -> None:
        """Cancel a pending label reset."""
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None

    def _reset(self) -> None:
        self.copied = False
        self._reset_handle = None
