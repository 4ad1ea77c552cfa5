"""
In-process realtime event hub.

WHAT: Keeps the WebSocket subscribers of each event name and pushes
JSON messages to them:

    {"event": "company-7-payment", "data": {"action": "CONCLUIDA", ...}}

HOW: One hub per process, created on startup and kept on
``app.state.realtime``. The ``/ws`` endpoint registers sockets; the
payment webhook emits ``company-{id}-payment`` after a confirmation.
Sockets that fail on send are dropped from the registry.

Multi-process deployments would need a broker behind this; the browser
poller covers missed pushes.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, Set

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

logger = logging.getLogger(__name__)

# Close code sent to sockets that fail authentication
WS_CLOSE_UNAUTHORIZED = 4001


def company_payment_event(company_id: int) -> str:
    """Event name a company's browser listens on for payment results."""
    return f"company-{company_id}-payment"


class RealtimeHub:
    """
    Registry of WebSocket subscribers keyed by event name.

    Example:
        >>> hub = RealtimeHub()
        >>> await hub.connect("company-7-payment", websocket)
        >>> await hub.emit("company-7-payment", {"action": "CONCLUIDA"})
        1
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, Set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, event: str, websocket: WebSocket) -> None:
        """Subscribe an already accepted socket to an event."""
        async with self._lock:
            self._subscribers[event].add(websocket)
        logger.debug(f"WebSocket subscribed to {event}")

    async def disconnect(self, event: str, websocket: WebSocket) -> None:
        async with self._lock:
            sockets = self._subscribers.get(event)
            if sockets is None:
                return
            sockets.discard(websocket)
            if not sockets:
                del self._subscribers[event]
        logger.debug(f"WebSocket unsubscribed from {event}")

    def subscriber_count(self, event: str) -> int:
        return len(self._subscribers.get(event, ()))

    async def emit(self, event: str, payload: Dict[str, Any]) -> int:
        """
        Send an event to every subscriber.

        Args:
            event: Event name
            payload: JSON-serializable data

        Returns:
            Number of sockets the message was delivered to
        """
        async with self._lock:
            targets = list(self._subscribers.get(event, ()))

        message = {"event": event, "data": payload}
        delivered = 0
        dead = []

        for websocket in targets:
            try:
                await websocket.send_json(message)
                delivered += 1
            except (WebSocketDisconnect, RuntimeError, OSError) as e:
                logger.info(f"Dropping dead WebSocket on {event}: {e!r}")
                dead.append(websocket)

        for websocket in dead:
            await self.disconnect(event, websocket)

        logger.info(
            f"Emitted {event} to {delivered} subscriber(s)",
            extra={"event": event, "delivered": delivered},
        )
        return delivered
