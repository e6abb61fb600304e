"""Resource-level authorization checks.

Every check reads current rows through the request session, so a membership
granted or revoked by another request is seen immediately. Checks run in the
order exists (404) then authorized (403) and return the loaded resource.
"""

import logging
from typing import TypeVar

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.base import Base
from src.features.notification.exceptions import NotificationNotFound
from src.features.notification.models import Notification
from src.features.project.exceptions import ProjectNotFound
from src.features.project.models import Project, ProjectMembership
from src.features.task.exceptions import TaskNotFound
from src.features.task.models import Task
from src.features.workspace.exceptions import WorkspaceNotFound
from src.features.workspace.models import Workspace, WorkspaceMember

from .exceptions import InsufficientPermissionsException

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


async def _fetch(session: AsyncSession, model: type[ModelT], resource_id: int) -> ModelT | None:
    stmt = select(model).where(model.id == resource_id).execution_options(populate_existing=True)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


def _deny(user_id: int, detail: str) -> InsufficientPermissionsException:
    logger.info(f"Permission denied for user {user_id}: {detail}")
    return InsufficientPermissionsException(detail=detail)


async def is_workspace_member(session: AsyncSession, workspace: Workspace, user_id: int) -> bool:
    if workspace.owner_id == user_id:
        return True
    stmt = select(
        exists().where(WorkspaceMember.workspace_id == workspace.id, WorkspaceMember.user_id == user_id)
    )
    return bool((await session.execute(stmt)).scalar())


async def is_project_member(session: AsyncSession, project_id: int, user_id: int) -> bool:
    stmt = select(
        exists().where(ProjectMembership.project_id == project_id, ProjectMembership.user_id == user_id)
    )
    return bool((await session.execute(stmt)).scalar())


async def require_workspace_owner(session: AsyncSession, workspace_id: int, user_id: int) -> Workspace:
    """Workspace-level mutations: add/remove member, update role, create project."""
    workspace = await _fetch(session, Workspace, workspace_id)
    if workspace is None:
        raise WorkspaceNotFound()
    if workspace.owner_id != user_id:
        raise _deny(user_id, "Only the workspace owner can perform this action")
    return workspace


async def require_workspace_member(session: AsyncSession, workspace_id: int, user_id: int) -> Workspace:
    workspace = await _fetch(session, Workspace, workspace_id)
    if workspace is None:
        raise WorkspaceNotFound()
    if not await is_workspace_member(session, workspace, user_id):
        raise _deny(user_id, "Not a member of this workspace")
    return workspace


async def require_project_owner(session: AsyncSession, project_id: int, user_id: int) -> Project:
    """Project membership changes are reserved to the owner of the project's workspace."""
    project = await _fetch(session, Project, project_id)
    if project is None:
        raise ProjectNotFound()
    owner_id = (await session.execute(select(Workspace.owner_id).where(Workspace.id == project.workspace_id))).scalar()
    if owner_id != user_id:
        raise _deny(user_id, "Only the workspace owner can manage project members")
    return project


async def require_project_member(session: AsyncSession, project_id: int, user_id: int) -> Project:
    project = await _fetch(session, Project, project_id)
    if project is None:
        raise ProjectNotFound()
    if not await is_project_member(session, project.id, user_id):
        raise _deny(user_id, "Not a member of this project")
    return project


async def require_task_member(session: AsyncSession, task_id: int, user_id: int) -> Task:
    """Task reads and every task mutation require membership on the task's project."""
    task = await _fetch(session, Task, task_id)
    if task is None:
        raise TaskNotFound()
    if not await is_project_member(session, task.project_id, user_id):
        raise _deny(user_id, "Not a member of this task's project")
    return task


async def require_notification_recipient(session: AsyncSession, notification_id: int, user_id: int) -> Notification:
    notification = await _fetch(session, Notification, notification_id)
    if notification is None:
        raise NotificationNotFound()
    if notification.recipient_id != user_id:
        raise _deny(user_id, "Not the recipient of this notification")
    return notification
