"""Notification-related exceptions."""

from fastapi import HTTPException, status


class NotificationNotFound(HTTPException):
    def __init__(self):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
