"""Refresh token cookie handling.

Setting and clearing use the same name and path; a delete with a different
path than the set leaves the cookie alive in the browser.
"""

from fastapi import Request, Response

from src.config.settings import settings

from .jwt_utils import TokenKind, token_lifetime

# Header carrying the access token minted by a silent refresh
ACCESS_TOKEN_HEADER = "X-Access-Token"


def set_refresh_cookie(response: Response, refresh_token: str) -> None:
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=refresh_token,
        max_age=int(token_lifetime(TokenKind.REFRESH).total_seconds()),
        path=settings.cookie_path,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.refresh_cookie_name,
        path=settings.cookie_path,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def read_refresh_cookie(request: Request) -> str | None:
    return request.cookies.get(settings.refresh_cookie_name)
