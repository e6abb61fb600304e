"""Authentication router (registration, login and refresh-token endpoints).

These endpoints read the refresh cookie themselves and never go through
get_request_context, which would otherwise rotate the same token first.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import settings
from src.database.dependencies import get_db_session
from src.features.user.schemas import UserResponse
from src.shared.context import RequestContext
from src.shared.mail.mailer import Mailer, get_mailer
from src.shared.middlewares.rate_limit import limiter

from .cookies import clear_refresh_cookie, read_refresh_cookie, set_refresh_cookie
from .dependencies import get_client_info, get_current_context
from .schemas import (
    AccessTokenResponse,
    AuthResponse,
    DeviceResponse,
    LoginRequest,
    PasswordResetConfirm,
    PasswordResetRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResultResponse,
)
from .service import AuthService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_auth)
async def register(
    request: Request,
    response: Response,
    data: RegisterRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Create an account.

    Returns the access token and the user; the refresh token is set as an
    httpOnly cookie.
    """
    ip_address, user_agent = get_client_info(request)
    user, tokens = await AuthService.register(session, data.name, data.email, data.password, ip_address, user_agent)
    await session.commit()

    set_refresh_cookie(response, tokens.refresh_token)
    return AuthResponse(
        access_token=tokens.access_token,
        expires_in=tokens.expires_in,
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.rate_limit_auth)
async def login(
    request: Request,
    response: Response,
    data: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Login with email and password."""
    ip_address, user_agent = get_client_info(request)
    user, tokens = await AuthService.login(session, data.email, data.password, ip_address, user_agent)
    await session.commit()

    set_refresh_cookie(response, tokens.refresh_token)
    return AuthResponse(
        access_token=tokens.access_token,
        expires_in=tokens.expires_in,
        user=UserResponse.model_validate(user),
    )


@router.post("/refresh", response_model=AccessTokenResponse)
@limiter.limit(settings.rate_limit_auth)
async def refresh_token(
    request: Request,
    response: Response,
    data: RefreshTokenRequest | None = None,
    session: AsyncSession = Depends(get_db_session),
):
    """Rotate the refresh token and return a new access token.

    The token is read from the cookie, or from the body when no cookie is
    sent. Each refresh token works once; a repeated call with the same token
    fails and the client has to log in again.
    """
    token = read_refresh_cookie(request) or (data.refresh_token if data else None)
    ip_address, user_agent = get_client_info(request)

    _, tokens = await AuthService.refresh(session, token, ip_address, user_agent)
    await session.commit()

    set_refresh_cookie(response, tokens.refresh_token)
    return AccessTokenResponse(access_token=tokens.access_token, expires_in=tokens.expires_in)


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    data: RefreshTokenRequest | None = None,
    session: AsyncSession = Depends(get_db_session),
):
    """Revoke the refresh token and clear the cookie.

    Logging out without a token, or with one that is already revoked,
    succeeds without side effects.
    """
    token = read_refresh_cookie(request) or (data.refresh_token if data else None)
    revoked = await AuthService.logout(session, token)
    await session.commit()

    clear_refresh_cookie(response)
    if revoked:
        return {"message": "Successfully logged out"}
    return {"message": "Already logged out"}


@router.get("/devices", response_model=list[DeviceResponse])
async def list_devices(ctx: RequestContext = Depends(get_current_context)):
    """List the current user's active sessions."""
    devices = await AuthService.list_devices(ctx.session, ctx.user_id)
    return [DeviceResponse.model_validate(d) for d in devices]


@router.post("/password-reset/request", response_model=ResultResponse)
@limiter.limit(settings.rate_limit_auth)
async def request_password_reset(
    request: Request,
    data: PasswordResetRequest,
    session: AsyncSession = Depends(get_db_session),
    mailer: Mailer = Depends(get_mailer),
):
    """Send a password reset link to the given email."""
    success = await AuthService.request_password_reset(session, mailer, data.email)
    await session.commit()
    return ResultResponse(success=success)


@router.post("/password-reset/confirm", response_model=ResultResponse)
async def confirm_password_reset(data: PasswordResetConfirm, session: AsyncSession = Depends(get_db_session)):
    """Set a new password with a reset token. Each token works once."""
    success = await AuthService.confirm_password_reset(session, data.token, data.new_password)
    await session.commit()
    return ResultResponse(success=success)
