"""
Tests for JWT token handling.
"""

import pytest
from datetime import timedelta
from jose import jwt

from renewal.core.auth import create_access_token, verify_token
from renewal.core.config import settings
from renewal.core.exceptions import TokenExpiredError, TokenInvalidError


class TestCreateAccessToken:
    def test_token_carries_claims(self):
        token = create_access_token({"user_id": 5, "company_id": 3})

        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        assert payload["user_id"] == 5
        assert payload["company_id"] == 3
        assert {"exp", "iat", "nbf"} <= set(payload)

    def test_does_not_mutate_input(self):
        data = {"user_id": 1}
        create_access_token(data)
        assert data == {"user_id": 1}


class TestVerifyToken:
    def test_round_trip(self):
        token = create_access_token({"user_id": 9, "company_id": 2})
        assert verify_token(token)["company_id"] == 2

    def test_expired_token_rejected(self):
        token = create_access_token({"user_id": 1}, expires_delta=timedelta(seconds=-10))

        with pytest.raises(TokenExpiredError):
            verify_token(token)

    def test_wrong_signature_rejected(self):
        token = jwt.encode({"user_id": 1}, "another-secret", algorithm="HS256")

        with pytest.raises(TokenInvalidError):
            verify_token(token)

    def test_garbage_rejected(self):
        with pytest.raises(TokenInvalidError) as exc_info:
            verify_token("not-a-jwt")

        assert exc_info.value.status_code == 401
