"""
Bearer tokens.

The renewal API does not log users in; it accepts the HS256 tokens the
platform already issues. A token carries ``user_id`` (and, informally,
``company_id``), but the company is always taken from the user row, see
deps.authenticate_token. ``create_access_token`` exists for tests and
for tooling that needs a token for a known user.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from renewal.core.config import settings
from renewal.core.exceptions import TokenExpiredError, TokenInvalidError


def create_access_token(claims: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign ``claims`` with ``exp``, ``iat`` and ``nbf`` added.

    Example:
        >>> token = create_access_token({"user_id": 1, "company_id": 1})
    """
    issued_at = datetime.utcnow()
    lifetime = expires_delta or timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)
    payload = {**claims, "iat": issued_at, "nbf": issued_at, "exp": issued_at + lifetime}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token: str) -> Dict[str, Any]:
    """
    Decode a token and check its signature and lifetime.

    Raises:
        TokenExpiredError: Past ``exp``
        TokenInvalidError: Malformed, or signed with another key
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise TokenExpiredError(message="Token has expired")
    except JWTError as e:
        raise TokenInvalidError(message="Invalid token", error=str(e))
