"""Project service layer."""

import logging

from sqlalchemy import Select, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.features.auth.permissions import (
    is_workspace_member,
    require_project_member,
    require_project_owner,
    require_workspace_member,
    require_workspace_owner,
)
from src.features.task.models import Task, TaskAssignee
from src.features.user.service import UserService
from src.features.workspace.models import Workspace

from .exceptions import NotAWorkspaceMember, ProjectMemberAlreadyExists, ProjectMemberNotFound
from .models import Project, ProjectMembership, ProjectRole, ProjectStatus

logger = logging.getLogger(__name__)


def _with_members(stmt):
    return stmt.options(selectinload(Project.members).selectinload(ProjectMembership.user)).execution_options(
        populate_existing=True
    )


class ProjectService:
    """Service for projects and project memberships."""

    @staticmethod
    async def load_project(session: AsyncSession, project_id: int) -> Project:
        stmt = _with_members(select(Project).where(Project.id == project_id))
        result = await session.execute(stmt)
        return result.scalar_one()

    @staticmethod
    async def _load_member(session: AsyncSession, membership_id: int) -> ProjectMembership:
        stmt = (
            select(ProjectMembership)
            .where(ProjectMembership.id == membership_id)
            .options(selectinload(ProjectMembership.user))
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one()

    @staticmethod
    async def revoke_project_access(session: AsyncSession, user_id: int, project_ids: Select) -> None:
        """Delete a user's memberships and task assignments on the given projects."""
        project_tasks = select(Task.id).where(Task.project_id.in_(project_ids))
        await session.execute(
            delete(TaskAssignee)
            .where(TaskAssignee.user_id == user_id, TaskAssignee.task_id.in_(project_tasks))
            .execution_options(synchronize_session=False)
        )
        await session.execute(
            delete(ProjectMembership)
            .where(ProjectMembership.user_id == user_id, ProjectMembership.project_id.in_(project_ids))
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    async def create_project(
        session: AsyncSession,
        workspace_id: int,
        actor_id: int,
        name: str,
        description: str | None = None,
        status: ProjectStatus = ProjectStatus.ACTIVE,
    ) -> Project:
        """Create a project in a workspace (workspace owner only).

        The creator is added as the project's LEAD.

        Raises:
            WorkspaceNotFound: If the workspace does not exist
            InsufficientPermissionsException: If the actor is not the workspace owner

        """
        await require_workspace_owner(session, workspace_id, actor_id)

        project = Project(name=name, description=description, status=status.value, workspace_id=workspace_id)
        session.add(project)
        await session.flush()

        session.add(ProjectMembership(project_id=project.id, user_id=actor_id, role=ProjectRole.LEAD.value))
        await session.flush()

        logger.info(f"Project {project.id} created in workspace {workspace_id} by user {actor_id}")
        return await ProjectService.load_project(session, project.id)

    @staticmethod
    async def list_for_workspace(session: AsyncSession, workspace_id: int, user_id: int) -> list[Project]:
        """List a workspace's projects (workspace members only)."""
        await require_workspace_member(session, workspace_id, user_id)
        stmt = _with_members(select(Project).where(Project.workspace_id == workspace_id).order_by(Project.id))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_project(session: AsyncSession, project_id: int, user_id: int) -> Project:
        """Get a project (project members only)."""
        await require_project_member(session, project_id, user_id)
        return await ProjectService.load_project(session, project_id)

    @staticmethod
    async def add_member(
        session: AsyncSession, project_id: int, actor_id: int, user_id: int, role: ProjectRole
    ) -> ProjectMembership:
        """Add a workspace member to a project (workspace owner only).

        Raises:
            ProjectNotFound: If the project does not exist
            InsufficientPermissionsException: If the actor is not the workspace owner
            UserNotFound: If the target user does not exist
            NotAWorkspaceMember: If the target does not belong to the workspace
            ProjectMemberAlreadyExists: If the target is already a member

        """
        project = await require_project_owner(session, project_id, actor_id)
        await UserService.get_user_or_404(session, user_id)

        workspace = await session.get(Workspace, project.workspace_id)
        if not await is_workspace_member(session, workspace, user_id):
            raise NotAWorkspaceMember()

        stmt = select(ProjectMembership.id).where(
            ProjectMembership.project_id == project_id, ProjectMembership.user_id == user_id
        )
        if (await session.execute(stmt)).scalar_one_or_none() is not None:
            raise ProjectMemberAlreadyExists()

        membership = ProjectMembership(project_id=project_id, user_id=user_id, role=role.value)
        session.add(membership)
        try:
            await session.flush()
        except IntegrityError as err:
            raise ProjectMemberAlreadyExists() from err

        logger.info(f"User {user_id} added to project {project_id} as {role} by user {actor_id}")
        return await ProjectService._load_member(session, membership.id)

    @staticmethod
    async def remove_member(session: AsyncSession, project_id: int, actor_id: int, user_id: int) -> bool:
        """Remove a project member (workspace owner only), unassigning them from the project's tasks."""
        await require_project_owner(session, project_id, actor_id)

        stmt = select(ProjectMembership.id).where(
            ProjectMembership.project_id == project_id, ProjectMembership.user_id == user_id
        )
        if (await session.execute(stmt)).scalar_one_or_none() is None:
            raise ProjectMemberNotFound()

        await ProjectService.revoke_project_access(session, user_id, select(Project.id).where(Project.id == project_id))

        logger.info(f"User {user_id} removed from project {project_id} by user {actor_id}")
        return True
