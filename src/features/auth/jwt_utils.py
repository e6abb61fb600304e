"""JWT utilities for authentication.

Three token kinds are signed with three different secrets, so a token of
one kind can never be replayed as another even though the claims look
alike. Verification is stateless; revocation is enforced by the device
store.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any
from uuid import uuid4

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from src.config.settings import settings

from .exceptions import InvalidTokenException, InvalidTokenTypeException, TokenExpiredException


class TokenKind(StrEnum):
    """Kinds of signed claims issued by the service."""

    ACCESS = "access"
    REFRESH = "refresh"
    RESET = "reset"


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims of a token."""

    user_id: int
    jti: str
    expires_at: datetime


def _secret_for(kind: TokenKind) -> str:
    if kind is TokenKind.ACCESS:
        return settings.access_token_secret
    if kind is TokenKind.REFRESH:
        return settings.refresh_token_secret
    return settings.reset_password_secret


def token_lifetime(kind: TokenKind) -> timedelta:
    """Return how long a token of the given kind stays valid."""
    if kind is TokenKind.ACCESS:
        return timedelta(minutes=settings.access_token_expire_minutes)
    if kind is TokenKind.REFRESH:
        return timedelta(days=settings.refresh_token_expire_days)
    return timedelta(minutes=settings.reset_token_expire_minutes)


def issue_token(kind: TokenKind, user_id: int, now: datetime | None = None, jti: str | None = None) -> str:
    """Create a signed token for a user.

    Args:
        kind: Token kind, selects secret and lifetime
        user_id: Subject of the token
        now: Issue time (defaults to the current time)
        jti: Token identifier (random when omitted)

    Returns:
        Encoded JWT token string

    """
    issued_at = now or datetime.now(UTC)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "type": kind.value,
        "jti": jti or uuid4().hex,
        "iat": issued_at,
        "exp": issued_at + token_lifetime(kind),
    }
    return jwt.encode(payload, _secret_for(kind), algorithm=settings.jwt_algorithm)


def decode_token(kind: TokenKind, token: str) -> dict[str, Any]:
    """Decode and verify a token's signature and expiry.

    Raises:
        InvalidTokenError: If token is invalid or expired

    """
    return jwt.decode(
        token,
        _secret_for(kind),
        algorithms=[settings.jwt_algorithm],
        options={"require": ["exp", "sub", "type", "jti"]},
    )


def verify_token(kind: TokenKind, token: str) -> TokenClaims:
    """Verify a token of the given kind.

    Raises:
        TokenExpiredException: If the token is past its expiry
        InvalidTokenException: If the signature, payload or kind is invalid

    """
    try:
        payload = decode_token(kind, token)
    except ExpiredSignatureError as err:
        raise TokenExpiredException() from err
    except InvalidTokenError as err:
        raise InvalidTokenException() from err

    if payload.get("type") != kind.value:
        raise InvalidTokenTypeException(expected=kind.value)

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError) as err:
        raise InvalidTokenException(detail="Invalid token payload") from err

    return TokenClaims(
        user_id=user_id,
        jti=str(payload["jti"]),
        expires_at=datetime.fromtimestamp(payload["exp"], UTC),
    )
