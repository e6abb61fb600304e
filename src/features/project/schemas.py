"""Project schemas (DTOs)."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.features.user.schemas import UserSummary

from .models import ProjectRole, ProjectStatus


# Request schemas
class ProjectCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=2000)
    status: ProjectStatus = ProjectStatus.ACTIVE


class ProjectMemberAddRequest(BaseModel):
    user_id: int
    role: ProjectRole = ProjectRole.MEMBER


# Response schemas
class ProjectMemberResponse(BaseModel):
    id: int
    project_id: int
    user_id: int
    role: ProjectRole
    created_at: datetime
    user: UserSummary

    model_config = {"from_attributes": True}


class ProjectResponse(BaseModel):
    id: int
    name: str
    description: str | None
    status: ProjectStatus
    workspace_id: int
    members: list[ProjectMemberResponse]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
