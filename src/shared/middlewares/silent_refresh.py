"""Middleware delivering the tokens of a silent refresh.

``get_request_context`` rotates the refresh cookie before the endpoint runs
and commits the rotation. The old cookie is dead from that point on, so the
successor pair must reach the client on every outcome, including error
responses built by exception handlers. FastAPI discards a dependency's
``Response`` when the endpoint raises, so the pair is written here instead.
"""

from collections.abc import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from src.features.auth.cookies import ACCESS_TOKEN_HEADER, set_refresh_cookie


class SilentRefreshMiddleware(BaseHTTPMiddleware):
    """Attach a rotated refresh cookie and access token to the response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response: Response = await call_next(request)

        tokens = getattr(request.state, "rotated_tokens", None)
        if tokens is not None:
            set_refresh_cookie(response, tokens.refresh_token)
            response.headers[ACCESS_TOKEN_HEADER] = tokens.access_token
        return response
