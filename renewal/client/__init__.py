"""
Checkout page logic: payment status poller and Pix view models.
"""

from renewal.client.checkout import CopyButton, PixCheckout, format_brl
from renewal.client.poller import Notifier, PaymentStatusPoller, PollerState

__all__ = [
    "CopyButton",
    "Notifier",
    "PaymentStatusPoller",
    "PixCheckout",
    "PollerState",
    "format_brl",
]
