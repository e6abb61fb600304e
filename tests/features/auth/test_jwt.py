"""Tests for token issuing and verification."""

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from src.config.settings import settings
from src.features.auth.exceptions import InvalidTokenException, InvalidTokenTypeException, TokenExpiredException
from src.features.auth.jwt_utils import TokenKind, decode_token, issue_token, token_lifetime, verify_token


class TestTokenLifetimes:
    def test_access_token_lives_fifteen_minutes(self):
        assert token_lifetime(TokenKind.ACCESS) == timedelta(minutes=15)

    def test_refresh_token_lives_seven_days(self):
        assert token_lifetime(TokenKind.REFRESH) == timedelta(days=7)

    def test_reset_token_lives_one_hour(self):
        assert token_lifetime(TokenKind.RESET) == timedelta(hours=1)


class TestIssueAndVerify:
    def test_round_trip_returns_subject(self):
        token = issue_token(TokenKind.ACCESS, 42)
        claims = verify_token(TokenKind.ACCESS, token)
        assert claims.user_id == 42

    def test_payload_carries_kind_and_identifier(self):
        payload = decode_token(TokenKind.REFRESH, issue_token(TokenKind.REFRESH, 7))
        assert payload["sub"] == "7"
        assert payload["type"] == "refresh"
        assert payload["jti"]

    def test_tokens_issued_in_the_same_second_differ(self):
        now = datetime.now(UTC)
        first = issue_token(TokenKind.REFRESH, 1, now=now)
        second = issue_token(TokenKind.REFRESH, 1, now=now)
        assert first != second

    def test_still_valid_just_before_expiry(self):
        issued = datetime.now(UTC) - timedelta(minutes=14)
        token = issue_token(TokenKind.ACCESS, 3, now=issued)
        assert verify_token(TokenKind.ACCESS, token).user_id == 3

    def test_expired_access_token_is_rejected(self):
        issued = datetime.now(UTC) - timedelta(minutes=16)
        token = issue_token(TokenKind.ACCESS, 3, now=issued)
        with pytest.raises(TokenExpiredException):
            verify_token(TokenKind.ACCESS, token)

    def test_expired_reset_token_is_rejected(self):
        issued = datetime.now(UTC) - timedelta(minutes=61)
        token = issue_token(TokenKind.RESET, 3, now=issued)
        with pytest.raises(TokenExpiredException):
            verify_token(TokenKind.RESET, token)


class TestTokenKindSeparation:
    def test_access_token_is_not_a_refresh_token(self):
        token = issue_token(TokenKind.ACCESS, 1)
        with pytest.raises(InvalidTokenException):
            verify_token(TokenKind.REFRESH, token)

    def test_refresh_token_is_not_an_access_token(self):
        token = issue_token(TokenKind.REFRESH, 1)
        with pytest.raises(InvalidTokenException):
            verify_token(TokenKind.ACCESS, token)

    def test_type_claim_is_checked(self):
        now = datetime.now(UTC)
        payload = {"sub": "1", "type": "refresh", "jti": "x", "iat": now, "exp": now + timedelta(minutes=5)}
        token = jwt.encode(payload, settings.access_token_secret, algorithm=settings.jwt_algorithm)
        with pytest.raises(InvalidTokenTypeException):
            verify_token(TokenKind.ACCESS, token)


class TestMalformedTokens:
    def test_tampered_signature_is_rejected(self):
        token = issue_token(TokenKind.ACCESS, 1)
        tampered = token[:-2] + ("AA" if not token.endswith("AA") else "BB")
        with pytest.raises(InvalidTokenException):
            verify_token(TokenKind.ACCESS, tampered)

    def test_garbage_is_rejected(self):
        with pytest.raises(InvalidTokenException):
            verify_token(TokenKind.ACCESS, "not-a-token")

    def test_missing_subject_is_rejected(self):
        now = datetime.now(UTC)
        payload = {"type": "access", "jti": "x", "iat": now, "exp": now + timedelta(minutes=5)}
        token = jwt.encode(payload, settings.access_token_secret, algorithm=settings.jwt_algorithm)
        with pytest.raises(InvalidTokenException):
            verify_token(TokenKind.ACCESS, token)

    def test_non_numeric_subject_is_rejected(self):
        now = datetime.now(UTC)
        payload = {"sub": "alice", "type": "access", "jti": "x", "iat": now, "exp": now + timedelta(minutes=5)}
        token = jwt.encode(payload, settings.access_token_secret, algorithm=settings.jwt_algorithm)
        with pytest.raises(InvalidTokenException) as exc_info:
            verify_token(TokenKind.ACCESS, token)
        assert exc_info.value.detail == "Invalid token payload"
