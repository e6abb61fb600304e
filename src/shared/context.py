"""Per-request context passed explicitly through the service layer."""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession


@dataclass
class RequestContext:
    """Identity, request metadata and persistence handle for one request.

    Built once per request by ``get_request_context`` and handed to services
    by reference. ``user_id`` is None for anonymous callers.
    """

    session: AsyncSession
    user_id: int | None = None
    ip_address: str | None = None
    user_agent: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None
