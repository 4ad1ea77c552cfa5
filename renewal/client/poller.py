"""
Payment status poller for the checkout page.

WHAT: After a Pix charge is shown, polls ``GET /subscription/check/{id}``
until the payment is confirmed, the session is rejected, or the attempt
budget runs out, and tells the user what happened.

HOW: One asyncio task runs the loop (an immediate check, then one every
interval on a fixed schedule). Redirects are scheduled as separate tasks
so they can be cancelled when the page goes away. ``stop()`` cancels
both; nothing keeps running after it returns.

The realtime ``company-{id}-payment`` event and this poller race; either
one is enough for the user to see the renewal.
"""

import asyncio
import logging
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Protocol

import httpx

logger = logging.getLogger(__name__)


DEFAULT_INTERVAL = 5.0
DEFAULT_MAX_ATTEMPTS = 120
SUCCESS_REDIRECT_DELAY = 4.0
AUTH_REDIRECT_DELAY = 3.0

HOME_PATH = "/"
LOGIN_PATH = "/login"

MESSAGE_RENEWED = "Sua licença foi renovada até {due_date}!"
MESSAGE_RENEWED_NO_DATE = "Sua licença foi renovada!"
MESSAGE_EXPIRED = (
    "Tempo de verificação expirado. Se você já pagou, a confirmação ocorrerá em breve."
)
MESSAGE_SESSION_EXPIRED = "Sua sessão expirou. Por favor, faça login novamente."

AUTH_FAILURE_STATUSES = {401, 403}


class PollerState(str, Enum):
    """
    Poller lifecycle.

    CHECKING is the only non-terminal state.
    """

    CHECKING = "checking"
    CONFIRMED = "confirmed"
    EXPIRED = "expired"
    AUTH_FAILED = "auth_failed"


class Notifier(Protocol):
    """User-facing side effects: toasts and navigation."""

    def success(self, message: str) -> None:
        ...

    def info(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...

    def redirect(self, path: str) -> None:
        ...


def format_due_date(value: Optional[str]) -> Optional[str]:
    """ISO date (or datetime) string -> ``dd/mm/YYYY``; None if unparseable."""
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10]).strftime("%d/%m/%Y")
    except ValueError:
        return None


class PaymentStatusPoller:
    """
    Polls one payment until it settles.

    Example:
        >>> poller = PaymentStatusPoller(api, payment_id="123", notifier=toasts)
        >>> poller.start()
        >>> ...
        >>> await poller.stop()
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        payment_id: str,
        notifier: Notifier,
        interval: float = DEFAULT_INTERVAL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        success_redirect_delay: float = SUCCESS_REDIRECT_DELAY,
        auth_redirect_delay: float = AUTH_REDIRECT_DELAY,
    ):
        """
        Args:
            http: Client with the API base URL and Authorization header set
            payment_id: Gateway payment ID returned by the creation call
            notifier: Toast/navigation sink
            interval: Seconds between checks
            max_attempts: Checks before giving up
            success_redirect_delay: Seconds before navigating home on success
            auth_redirect_delay: Seconds before navigating to login on 401/403
        """
        self.http = http
        self.payment_id = payment_id
        self.notifier = notifier
        self.interval = interval
        self.max_attempts = max_attempts
        self.success_redirect_delay = success_redirect_delay
        self.auth_redirect_delay = auth_redirect_delay

        self.state = PollerState.CHECKING
        self.attempts = 0
        self.company: Optional[Dict[str, Any]] = None

        self._task: Optional[asyncio.Task] = None
        self._redirect_task: Optional[asyncio.Task] = None

    @property
    def is_checking(self) -> bool:
        return self.state == PollerState.CHECKING

    @property
    def check_path(self) -> str:
        return f"/subscription/check/{self.payment_id}"

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> asyncio.Task:
        """Start polling in the background. Calling it again is a no-op."""
        if self._task is None:
            self._task = asyncio.create_task(self.run())
        return self._task

    async def run(self) -> PollerState:
        """
        Poll until a terminal state is reached.

        Checks start at a fixed rate measured on the loop clock, so a slow
        request shortens the following wait instead of pushing every later
        check back.
        """
        loop = asyncio.get_running_loop()
        next_at = loop.time()
        while self.is_checking:
            await self.check_once()
            if self.is_checking:
                next_at += self.interval
                await asyncio.sleep(max(0.0, next_at - loop.time()))
        return self.state

    async def wait(self) -> PollerState:
        """Wait for the loop and any scheduled redirect to finish."""
        if self._task is not None:
            await self._task
        if self._redirect_task is not None:
            await self._redirect_task
        return self.state

    async def stop(self) -> None:
        """Cancel polling and any pending redirect (page unmounted)."""
        for task in (self._task, self._redirect_task):
            if task is not None and not task.done():
                task.cancel()
        for task in (self._task, self._redirect_task):
            if task is None:
                continue
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._redirect_task = None

    # =========================================================================
    # One cycle
    # =========================================================================

    async def check_once(self) -> PollerState:
        """
        Run a single check and update the state.

        Every call counts as an attempt, failed requests included.
        """
        if not self.is_checking:
            return self.state

        self.attempts += 1

        try:
            response = await self.http.get(self.check_path)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code in AUTH_FAILURE_STATUSES:
                self._on_auth_failed()
                return self.state
            logger.warning(f"Payment check {self.payment_id} failed: {e}")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Payment check {self.payment_id} failed: {e}")
        else:
            if isinstance(data, dict) and data.get("success"):
                self._on_confirmed(data)
                return self.state

        if self.attempts >= self.max_attempts:
            self._on_expired()
        return self.state

    def _on_confirmed(self, data: Dict[str, Any]) -> None:
        self.state = PollerState.CONFIRMED
        self.company = data.get("company") or None

        due_date = format_due_date((self.company or {}).get("dueDate"))
        if due_date:
            self.notifier.success(MESSAGE_RENEWED.format(due_date=due_date))
        else:
            self.notifier.success(MESSAGE_RENEWED_NO_DATE)
        self._schedule_redirect(HOME_PATH, self.success_redirect_delay)

    def _on_expired(self) -> None:
        self.state = PollerState.EXPIRED
        logger.info(f"Stopped checking payment {self.payment_id} after {self.attempts} attempts")
        self.notifier.info(MESSAGE_EXPIRED)

    def _on_auth_failed(self) -> None:
        self.state = PollerState.AUTH_FAILED
        self.notifier.error(MESSAGE_SESSION_EXPIRED)
        self._schedule_redirect(LOGIN_PATH, self.auth_redirect_delay)

    def _schedule_redirect(self, path: str, delay: float) -> None:
        async def redirect_later() -> None:
            await asyncio.sleep(delay)
            self.notifier.redirect(path)

        self._redirect_task = asyncio.create_task(redirect_later())
