"""Authentication and authorization exceptions.

UNAUTHORIZED (no identity) and FORBIDDEN (identity without permission) are
kept apart: the first is the AuthenticationException family (401), the
second the InsufficientPermissionsException family (403).
"""

from fastapi import HTTPException, status


class AuthenticationException(HTTPException):
    """Base authentication exception."""

    def __init__(self, detail: str = "Authentication failed"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class NotAuthenticatedException(AuthenticationException):
    """Raised when an operation needs an identity and the caller has none."""

    def __init__(self):
        super().__init__(detail="Not authenticated")


class InvalidCredentialsException(AuthenticationException):
    """Raised when the password does not match."""

    def __init__(self):
        super().__init__(detail="Invalid credentials")


class InvalidTokenException(AuthenticationException):
    """Raised when a token is invalid or expired."""

    def __init__(self, detail: str = "Invalid or expired token"):
        super().__init__(detail=detail)


class TokenExpiredException(InvalidTokenException):
    """Raised when a token has expired."""

    def __init__(self):
        super().__init__(detail="Token has expired")


class InvalidTokenTypeException(InvalidTokenException):
    """Raised when a token of another kind is presented."""

    def __init__(self, expected: str = "access"):
        super().__init__(detail=f"Invalid token type, expected {expected}")


class RefreshTokenMissingException(InvalidTokenException):
    """Raised when no refresh token was sent."""

    def __init__(self):
        super().__init__(detail="Missing refresh token")


class RefreshTokenInvalidException(InvalidTokenException):
    """Raised when the refresh token is unknown, revoked or already rotated.

    Clients should treat this as "please log in again", never retry.
    """

    def __init__(self):
        super().__init__(detail="Invalid refresh token")


class RefreshTokenExpiredOrTamperedException(InvalidTokenException):
    """Raised when a known refresh token fails signature verification."""

    def __init__(self):
        super().__init__(detail="Refresh token expired or invalid")


class RefreshTokenCollisionException(InvalidTokenException):
    """Raised when a freshly minted refresh token value is already on record."""

    def __init__(self):
        super().__init__(detail="Refresh token already issued")


class InsufficientPermissionsException(HTTPException):
    """Raised when an authenticated user lacks permission on a resource."""

    def __init__(self, detail: str = "Insufficient permissions"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
