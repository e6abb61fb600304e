"""User schemas (DTOs)."""

from datetime import datetime

from pydantic import BaseModel, EmailStr

from .models import UserRole


# Response schemas
class UserSummary(BaseModel):
    """Compact user representation embedded in other resources."""

    id: int
    name: str
    email: EmailStr

    model_config = {"from_attributes": True}


class UserResponse(UserSummary):
    """User response. The password hash is never part of it."""

    role: UserRole
    created_at: datetime


class UserListResponse(BaseModel):
    """User list response."""

    users: list[UserResponse]
    total: int
    page: int | None = None
    page_size: int | None = None
