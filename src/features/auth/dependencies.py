"""Authentication dependencies for FastAPI."""

import logging

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import HTTPConnection

from src.database.dependencies import get_db_session
from src.features.user.models import User
from src.shared.context import RequestContext

from .cookies import read_refresh_cookie
from .exceptions import InvalidTokenException, NotAuthenticatedException
from .jwt_utils import TokenKind, verify_token
from .service import AuthService

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_client_info(connection: HTTPConnection) -> tuple[str | None, str | None]:
    """Return (ip_address, user_agent) of the caller."""
    ip_address = connection.client.host if connection.client else None
    return ip_address, connection.headers.get("user-agent")


async def resolve_user_id(
    request: Request,
    session: AsyncSession,
    credentials: HTTPAuthorizationCredentials | None,
) -> int | None:
    """Resolve the caller's identity.

    The bearer access token is tried first. When it is absent or fails
    verification, the refresh cookie is rotated once and the rotation is
    committed. The new pair is left on ``request.state.rotated_tokens``;
    ``SilentRefreshMiddleware`` writes it to the response, error responses
    included. Any failure leaves the caller anonymous.
    """
    if credentials is not None:
        try:
            return verify_token(TokenKind.ACCESS, credentials.credentials).user_id
        except InvalidTokenException as err:
            logger.debug(f"Bearer token rejected: {err.detail}")

    refresh_token = read_refresh_cookie(request)
    if not refresh_token:
        return None

    ip_address, user_agent = get_client_info(request)
    try:
        user, tokens = await AuthService.refresh(session, refresh_token, ip_address, user_agent)
    except InvalidTokenException as err:
        logger.info(f"Silent refresh rejected: {err.detail}")
        return None

    await session.commit()
    request.state.rotated_tokens = tokens
    return user.id


async def get_request_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    session: AsyncSession = Depends(get_db_session),
) -> RequestContext:
    """Build the request context once per request; the identity may be anonymous."""
    ip_address, user_agent = get_client_info(request)
    user_id = await resolve_user_id(request, session, credentials)
    return RequestContext(session=session, user_id=user_id, ip_address=ip_address, user_agent=user_agent)


async def get_current_context(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
    """Require an authenticated identity.

    Raises:
        NotAuthenticatedException: If the caller is anonymous

    """
    if ctx.user_id is None:
        raise NotAuthenticatedException()
    return ctx


async def get_current_user(ctx: RequestContext = Depends(get_current_context)) -> User:
    """Load the authenticated user.

    Raises:
        InvalidTokenException: If the token's user no longer exists

    """
    user = await ctx.session.get(User, ctx.user_id)
    if user is None:
        raise InvalidTokenException(detail="User not found")
    return user
