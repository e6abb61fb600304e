"""Notification router (API endpoints)."""

import logging

from fastapi import APIRouter, Depends

from src.features.auth.dependencies import get_current_context
from src.shared.context import RequestContext
from src.shared.pagination.pagination import PaginationParams

from .schemas import NotificationListResponse, NotificationResponse
from .service import NotificationService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    pagination: PaginationParams = Depends(),
    ctx: RequestContext = Depends(get_current_context),
):
    """List the current user's notifications, newest first."""
    notifications, total = await NotificationService.list_for_user(ctx.session, ctx.user_id, pagination)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        total=total,
        page=pagination.page or 1,
        page_size=pagination.page_size or 50,
    )


@router.post("/{notification_id}/seen", response_model=NotificationResponse)
async def mark_notification_seen(notification_id: int, ctx: RequestContext = Depends(get_current_context)):
    """Mark a notification as seen (recipient only)."""
    notification = await NotificationService.mark_seen(ctx.session, notification_id, ctx.user_id)
    await ctx.session.commit()
    return NotificationResponse.model_validate(notification)
