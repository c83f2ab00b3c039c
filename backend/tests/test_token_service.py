"""
Bearer token tests.

Tokens carry id, email and role, last seven days, and any unusable token
verifies to None.
"""

from datetime import timedelta

import jwt
import pytest
from minierp.services import token_service
from minierp.services.token_service import Identity, TOKEN_LIFETIME
from minierp.time_utils import utcnow


IDENTITY = Identity(user_id=42, email="ann@example.com", role="manager")


class TestIssueAndVerify:
    def test_round_trip_returns_identity(self, app):
        token = token_service.issue(IDENTITY)
        assert token_service.verify(token) == IDENTITY

    def test_lifetime_is_seven_days(self, app):
        token = token_service.issue(IDENTITY)
        claims = jwt.decode(token, options={"verify_signature": False})
        assert claims["exp"] - claims["iat"] == int(TOKEN_LIFETIME.total_seconds())
        assert claims["sub"] == "42"
        assert claims["role"] == "manager"

    def test_expired_token_is_rejected(self, app):
        token = token_service.issue(IDENTITY, now=utcnow() - timedelta(days=8))
        assert token_service.verify(token) is None

    def test_token_near_end_of_lifetime_is_still_valid(self, app):
        token = token_service.issue(IDENTITY, now=utcnow() - timedelta(days=6))
        assert token_service.verify(token) == IDENTITY

    def test_wrong_secret_is_rejected(self, app):
        token = token_service.issue(IDENTITY, secret="someone-else")
        assert token_service.verify(token) is None

    def test_tampered_token_is_rejected(self, app):
        token = token_service.issue(IDENTITY)
        header, payload, signature = token.split(".")
        forged = token_service.issue(Identity(user_id=1, email="x@example.com", role="admin"))
        _, forged_payload, _ = forged.split(".")
        assert token_service.verify(f"{header}.{forged_payload}.{signature}") is None

    @pytest.mark.parametrize("token", [None, "", "garbage", "a.b.c"])
    def test_malformed_tokens_are_rejected(self, app, token):
        assert token_service.verify(token) is None


class TestHeaderParsing:
    @pytest.mark.parametrize("header,expected", [
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("Bearer   abc  ", "abc"),
        ("Bearer ", None),
        ("Basic abc", None),
        ("bearer abc", None),
        ("", None),
        (None, None),
    ])
    def test_token_from_header(self, header, expected):
        assert token_service.token_from_header(header) == expected
