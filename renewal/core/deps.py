"""
FastAPI dependencies.

WHAT: Authentication of the caller plus access to the process-wide
objects that startup builds (payment gateway, realtime hub) and the
diagnostic logs.

Routes never reach into ``app.state`` themselves; tests replace these
dependencies through ``app.dependency_overrides``.
"""

from datetime import datetime
from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.requests import HTTPConnection
from sqlalchemy.ext.asyncio import AsyncSession

from renewal.core.auth import verify_token
from renewal.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    TokenExpiredError,
    TokenInvalidError,
)
from renewal.core.logging_config import SUBSCRIPTION_LOGGER, WEBHOOK_LOGGER, PaymentLog
from renewal.dao.user import UserDAO
from renewal.db.session import get_db
from renewal.models.user import User
from renewal.services.mercadopago_client import PaymentGateway
from renewal.services.realtime import RealtimeHub

# auto_error=False: a missing header must be a 401 from AuthenticationError,
# not HTTPBearer's own 403
security = HTTPBearer(auto_error=False)


async def authenticate_token(token: Optional[str], db: AsyncSession) -> User:
    """
    Resolve a bearer token to an active user.

    Shared by the HTTP dependency and the WebSocket endpoint.

    Raises:
        AuthenticationError: If the token is missing, invalid, expired, or
            the user is gone or inactive
    """
    if not token:
        raise AuthenticationError(message="Usuário não autenticado")

    try:
        payload = verify_token(token)
    except (TokenExpiredError, TokenInvalidError) as e:
        raise AuthenticationError(message=str(e), status_code=e.status_code)

    user_id = payload.get("user_id")
    if not user_id:
        raise AuthenticationError(message="Invalid token: missing user_id")

    user = await UserDAO(db).get_active(user_id)
    if not user:
        raise AuthenticationError(message="User not found or inactive", user_id=user_id)

    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get current authenticated user from the Authorization header.

    Usage:
        @router.get("/protected")
        async def protected_route(user: User = Depends(get_current_user)):
            return {"company_id": user.company_id}

    Raises:
        AuthenticationError: If the header is missing or the token is rejected
    """
    token = credentials.credentials if credentials else None
    return await authenticate_token(token, db)


def get_gateway(connection: HTTPConnection) -> PaymentGateway:
    """Payment gateway client built on startup."""
    gateway = getattr(connection.app.state, "gateway", None)
    if gateway is None:
        raise ConfigurationError(message="Payment gateway is not configured")
    return gateway


def get_realtime_hub(connection: HTTPConnection) -> RealtimeHub:
    hub = getattr(connection.app.state, "realtime", None)
    if hub is None:
        raise ConfigurationError(message="Realtime hub is not configured")
    return hub


def get_clock() -> Callable[[], datetime]:
    """Clock used for payment dates and due-date extension."""
    return datetime.utcnow


def get_subscription_log() -> PaymentLog:
    return PaymentLog(SUBSCRIPTION_LOGGER)


def get_webhook_log() -> PaymentLog:
    return PaymentLog(WEBHOOK_LOGGER)
