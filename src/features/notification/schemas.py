"""Notification schemas (DTOs)."""

from datetime import datetime

from pydantic import BaseModel

from .models import NotificationStatus


class NotificationResponse(BaseModel):
    id: int
    title: str
    body: str
    status: NotificationStatus
    recipient_id: int
    related_task_id: int | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int
    page: int | None = None
    page_size: int | None = None
