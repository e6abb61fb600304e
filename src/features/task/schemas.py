"""Task schemas (DTOs)."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.features.user.schemas import UserSummary

from .models import TaskPriority, TaskStatus


# Request schemas
class TaskCreateRequest(BaseModel):
    """Create a task in a project.

    When ``assignee_id`` is given, that project member is assigned and notified.
    """

    project_id: int
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime | None = None
    assignee_id: int | None = None


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskAssignRequest(BaseModel):
    user_id: int


# Response schemas
class TaskAssigneeResponse(BaseModel):
    id: int
    task_id: int
    user_id: int
    created_at: datetime
    user: UserSummary

    model_config = {"from_attributes": True}


class TaskResponse(BaseModel):
    id: int
    title: str
    description: str | None
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime | None
    project_id: int
    assignees: list[TaskAssigneeResponse]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
