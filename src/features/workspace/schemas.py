"""Workspace schemas (DTOs)."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from src.features.user.schemas import UserSummary

from .models import WorkspaceRole


def _reject_owner_role(role: WorkspaceRole) -> WorkspaceRole:
    if role == WorkspaceRole.OWNER:
        raise ValueError("The OWNER role cannot be assigned")
    return role


# Request schemas
class WorkspaceCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=2000)


class WorkspaceMemberAddRequest(BaseModel):
    """Add a user to a workspace. OWNER is never assignable."""

    user_id: int
    role: WorkspaceRole = WorkspaceRole.MEMBER

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: WorkspaceRole) -> WorkspaceRole:
        return _reject_owner_role(v)


class WorkspaceMemberRoleUpdate(BaseModel):
    role: WorkspaceRole

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: WorkspaceRole) -> WorkspaceRole:
        return _reject_owner_role(v)


# Response schemas
class WorkspaceMemberResponse(BaseModel):
    id: int
    workspace_id: int
    user_id: int
    role: WorkspaceRole
    created_at: datetime
    user: UserSummary

    model_config = {"from_attributes": True}


class WorkspaceResponse(BaseModel):
    id: int
    name: str
    description: str | None
    owner_id: int
    owner: UserSummary
    members: list[WorkspaceMemberResponse]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
