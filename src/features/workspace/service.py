"""Workspace service layer."""

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.features.auth.permissions import require_workspace_member, require_workspace_owner
from src.features.project.models import Project
from src.features.project.service import ProjectService
from src.features.user.service import UserService

from .exceptions import CannotModifyWorkspaceOwner, WorkspaceMemberAlreadyExists, WorkspaceMemberNotFound
from .models import Workspace, WorkspaceMember, WorkspaceRole

logger = logging.getLogger(__name__)


def _with_relations(stmt):
    return stmt.options(
        selectinload(Workspace.owner),
        selectinload(Workspace.members).selectinload(WorkspaceMember.user),
    ).execution_options(populate_existing=True)


class WorkspaceService:
    """Service for workspace and workspace membership operations."""

    @staticmethod
    async def load_workspace(session: AsyncSession, workspace_id: int) -> Workspace:
        """Fetch a workspace with owner and members for serialization."""
        stmt = _with_relations(select(Workspace).where(Workspace.id == workspace_id))
        result = await session.execute(stmt)
        return result.scalar_one()

    @staticmethod
    async def _load_member(session: AsyncSession, member_id: int) -> WorkspaceMember:
        stmt = (
            select(WorkspaceMember)
            .where(WorkspaceMember.id == member_id)
            .options(selectinload(WorkspaceMember.user))
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one()

    @staticmethod
    async def _find_member(session: AsyncSession, workspace_id: int, user_id: int) -> WorkspaceMember:
        stmt = select(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace_id, WorkspaceMember.user_id == user_id
        )
        member = (await session.execute(stmt)).scalar_one_or_none()
        if member is None:
            raise WorkspaceMemberNotFound()
        return member

    @staticmethod
    async def create_workspace(
        session: AsyncSession, owner_id: int, name: str, description: str | None = None
    ) -> Workspace:
        """Create a workspace. The creator becomes its owner and OWNER member."""
        workspace = Workspace(name=name, description=description, owner_id=owner_id)
        session.add(workspace)
        await session.flush()

        session.add(WorkspaceMember(workspace_id=workspace.id, user_id=owner_id, role=WorkspaceRole.OWNER.value))
        await session.flush()

        logger.info(f"Workspace {workspace.id} created by user {owner_id}")
        return await WorkspaceService.load_workspace(session, workspace.id)

    @staticmethod
    async def list_for_user(session: AsyncSession, user_id: int) -> list[Workspace]:
        """List the workspaces the user belongs to."""
        member_of = select(WorkspaceMember.workspace_id).where(WorkspaceMember.user_id == user_id)
        stmt = _with_relations(select(Workspace).where(Workspace.id.in_(member_of)).order_by(Workspace.id))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_workspace(session: AsyncSession, workspace_id: int, user_id: int) -> Workspace:
        """Get a workspace the user belongs to.

        Raises:
            WorkspaceNotFound: If the workspace does not exist
            InsufficientPermissionsException: If the user is not a member

        """
        await require_workspace_member(session, workspace_id, user_id)
        return await WorkspaceService.load_workspace(session, workspace_id)

    @staticmethod
    async def add_member(
        session: AsyncSession, workspace_id: int, actor_id: int, user_id: int, role: WorkspaceRole
    ) -> WorkspaceMember:
        """Add a user to a workspace (owner only).

        Raises:
            WorkspaceNotFound: If the workspace does not exist
            InsufficientPermissionsException: If the actor is not the owner
            UserNotFound: If the target user does not exist
            WorkspaceMemberAlreadyExists: If the user is already a member

        """
        await require_workspace_owner(session, workspace_id, actor_id)
        await UserService.get_user_or_404(session, user_id)

        stmt = select(WorkspaceMember.id).where(
            WorkspaceMember.workspace_id == workspace_id, WorkspaceMember.user_id == user_id
        )
        if (await session.execute(stmt)).scalar_one_or_none() is not None:
            raise WorkspaceMemberAlreadyExists()

        member = WorkspaceMember(workspace_id=workspace_id, user_id=user_id, role=role.value)
        session.add(member)
        try:
            await session.flush()
        except IntegrityError as err:
            raise WorkspaceMemberAlreadyExists() from err

        logger.info(f"User {user_id} added to workspace {workspace_id} as {role} by user {actor_id}")
        return await WorkspaceService._load_member(session, member.id)

    @staticmethod
    async def update_member_role(
        session: AsyncSession, workspace_id: int, actor_id: int, user_id: int, role: WorkspaceRole
    ) -> WorkspaceMember:
        """Change a member's role (owner only). The owner's own membership is fixed."""
        workspace = await require_workspace_owner(session, workspace_id, actor_id)
        member = await WorkspaceService._find_member(session, workspace_id, user_id)
        if member.user_id == workspace.owner_id:
            raise CannotModifyWorkspaceOwner()

        member.role = role.value
        await session.flush()

        logger.info(f"User {user_id} role in workspace {workspace_id} set to {role} by user {actor_id}")
        return await WorkspaceService._load_member(session, member.id)

    @staticmethod
    async def remove_member(session: AsyncSession, workspace_id: int, actor_id: int, user_id: int) -> bool:
        """Remove a member (owner only) together with their access to the workspace's projects."""
        workspace = await require_workspace_owner(session, workspace_id, actor_id)
        member = await WorkspaceService._find_member(session, workspace_id, user_id)
        if member.user_id == workspace.owner_id:
            raise CannotModifyWorkspaceOwner()

        workspace_projects = select(Project.id).where(Project.workspace_id == workspace_id)
        await ProjectService.revoke_project_access(session, user_id, workspace_projects)
        await session.execute(
            delete(WorkspaceMember)
            .where(WorkspaceMember.id == member.id)
            .execution_options(synchronize_session=False)
        )

        logger.info(f"User {user_id} removed from workspace {workspace_id} by user {actor_id}")
        return True
