"""Notification service layer."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.features.auth.permissions import require_notification_recipient
from src.shared.pagination.pagination import PaginationParams, paginate

from .models import Notification, NotificationStatus

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for creating and reading user notifications."""

    @staticmethod
    async def notify(
        session: AsyncSession, recipient_id: int, title: str, body: str, related_task_id: int | None = None
    ) -> Notification:
        """Queue a notification in the current transaction."""
        notification = Notification(
            title=title,
            body=body,
            status=NotificationStatus.UNSEEN.value,
            recipient_id=recipient_id,
            related_task_id=related_task_id,
        )
        session.add(notification)
        await session.flush()
        logger.debug(f"Notification {notification.id} created for user {recipient_id}")
        return notification

    @staticmethod
    async def list_for_user(
        session: AsyncSession, user_id: int, pagination: PaginationParams
    ) -> tuple[list[Notification], int]:
        """List a user's notifications, newest first."""
        stmt = (
            select(Notification)
            .where(Notification.recipient_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        return await paginate(session, stmt, pagination)

    @staticmethod
    async def mark_seen(session: AsyncSession, notification_id: int, user_id: int) -> Notification:
        """Mark a notification as seen (recipient only).

        Raises:
            NotificationNotFound: If the notification does not exist
            InsufficientPermissionsException: If the user is not the recipient

        """
        notification = await require_notification_recipient(session, notification_id, user_id)
        notification.status = NotificationStatus.SEEN.value
        await session.flush()
        return notification
