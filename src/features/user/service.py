"""User service layer."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.shared.pagination.pagination import PaginationParams, paginate

from .exceptions import UserNotFound
from .models import User

logger = logging.getLogger(__name__)


class UserService:
    """Service for user lookups."""

    @staticmethod
    async def get_user(session: AsyncSession, user_id: int) -> User | None:
        """Get user by ID."""
        stmt = select(User).where(User.id == user_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_user_or_404(session: AsyncSession, user_id: int) -> User:
        """Get user by ID.

        Raises:
            UserNotFound: If no user has this ID

        """
        user = await UserService.get_user(session, user_id)
        if user is None:
            raise UserNotFound()
        return user

    @staticmethod
    async def get_users(session: AsyncSession, pagination: PaginationParams) -> tuple[list[User], int]:
        """Get paginated users list, oldest accounts first.

        Args:
            session: Database session
            pagination: PaginationParams with page and page_size

        Returns:
            Tuple of (users, total_count)

        """
        stmt = select(User).order_by(User.id)
        return await paginate(session, stmt, pagination)
