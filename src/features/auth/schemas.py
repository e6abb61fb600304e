"""Authentication schemas (DTOs)."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from src.features.user.schemas import UserResponse


# Request schemas
class RegisterRequest(BaseModel):
    """Registration request."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72, description="bcrypt only uses the first 72 bytes")


class LoginRequest(BaseModel):
    """Login request."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    """Refresh/logout body for clients that cannot rely on the cookie."""

    refresh_token: str | None = None


class PasswordResetRequest(BaseModel):
    """Ask for a password reset link."""

    email: EmailStr


class PasswordResetConfirm(BaseModel):
    """Set a new password with a reset token."""

    token: str
    new_password: str = Field(..., min_length=1, max_length=72)


# Service-level result
class TokenPair(BaseModel):
    """Freshly issued access/refresh pair."""

    access_token: str
    refresh_token: str
    expires_in: int  # access token lifetime, seconds


# Response schemas
class AccessTokenResponse(BaseModel):
    """Access token response; the refresh token travels in the cookie."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class AuthResponse(AccessTokenResponse):
    """Register/login response."""

    user: UserResponse


class DeviceResponse(BaseModel):
    """Active session of the current user."""

    id: int
    ip_address: str | None = None
    user_agent: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ResultResponse(BaseModel):
    """Boolean outcome of an operation that never reports why it failed."""

    success: bool
