"""Database dependencies."""

from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager

from sqlalchemy.ext.asyncio import AsyncSession

from src.database.client import get_session

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


async def get_db_session() -> AsyncGenerator[AsyncSession]:
    """Get a request-scoped database session.

    Every authorization check reads through this session, so permissions are
    always evaluated against current state.
    """
    async with get_session() as session:
        yield session


def get_session_scope() -> SessionScope:
    """Get a factory of short-lived sessions.

    Long-lived connections such as websockets open one session per unit of
    work instead of holding a request-scoped session open.
    """
    return get_session
