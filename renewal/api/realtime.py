"""
Realtime WebSocket endpoint.

WHAT: ``/ws?token=<jwt>`` subscribes the browser of an authenticated
user to ``company-{companyId}-payment``. The server only pushes; any
text the client sends is ignored.

Sockets with a missing or rejected token are closed with code 4001
before being accepted.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from renewal.core.deps import authenticate_token, get_realtime_hub
from renewal.core.exceptions import AuthenticationError
from renewal.db.session import get_db
from renewal.services.realtime import (
    WS_CLOSE_UNAUTHORIZED,
    RealtimeHub,
    company_payment_event,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    hub: RealtimeHub = Depends(get_realtime_hub),
):
    try:
        user = await authenticate_token(token, db)
        company_id = user.company_id
    except AuthenticationError as e:
        logger.info(f"Rejected WebSocket connection: {e.message}")
        await websocket.close(code=WS_CLOSE_UNAUTHORIZED)
        return
    finally:
        # Release the connection; the socket may stay open for hours.
        # Loaded rows are expired after this.
        await db.rollback()

    event = company_payment_event(company_id)
    await websocket.accept()
    await hub.connect(event, websocket)

    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect as e:
        logger.debug(f"WebSocket for {event} closed with code {e.code}")
    finally:
        await hub.disconnect(event, websocket)
