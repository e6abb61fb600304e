"""Workspace router (API endpoints)."""

import logging

from fastapi import APIRouter, Depends, status

from src.features.auth.dependencies import get_current_context
from src.shared.context import RequestContext

from .schemas import (
    WorkspaceCreateRequest,
    WorkspaceMemberAddRequest,
    WorkspaceMemberResponse,
    WorkspaceMemberRoleUpdate,
    WorkspaceResponse,
)
from .service import WorkspaceService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/workspaces", tags=["Workspaces"])


@router.post("", response_model=WorkspaceResponse, status_code=status.HTTP_201_CREATED)
async def create_workspace(data: WorkspaceCreateRequest, ctx: RequestContext = Depends(get_current_context)):
    """Create a workspace owned by the current user."""
    workspace = await WorkspaceService.create_workspace(ctx.session, ctx.user_id, data.name, data.description)
    await ctx.session.commit()
    return WorkspaceResponse.model_validate(workspace)


@router.get("", response_model=list[WorkspaceResponse])
async def my_workspaces(ctx: RequestContext = Depends(get_current_context)):
    """List the workspaces the current user belongs to."""
    workspaces = await WorkspaceService.list_for_user(ctx.session, ctx.user_id)
    return [WorkspaceResponse.model_validate(w) for w in workspaces]


@router.get("/{workspace_id}", response_model=WorkspaceResponse)
async def get_workspace(workspace_id: int, ctx: RequestContext = Depends(get_current_context)):
    """Get a workspace (members only)."""
    workspace = await WorkspaceService.get_workspace(ctx.session, workspace_id, ctx.user_id)
    return WorkspaceResponse.model_validate(workspace)


@router.post("/{workspace_id}/members", response_model=WorkspaceMemberResponse, status_code=status.HTTP_201_CREATED)
async def add_member(
    workspace_id: int,
    data: WorkspaceMemberAddRequest,
    ctx: RequestContext = Depends(get_current_context),
):
    """Add a member to a workspace (owner only)."""
    member = await WorkspaceService.add_member(ctx.session, workspace_id, ctx.user_id, data.user_id, data.role)
    await ctx.session.commit()
    return WorkspaceMemberResponse.model_validate(member)


@router.patch("/{workspace_id}/members/{user_id}", response_model=WorkspaceMemberResponse)
async def update_member_role(
    workspace_id: int,
    user_id: int,
    data: WorkspaceMemberRoleUpdate,
    ctx: RequestContext = Depends(get_current_context),
):
    """Change a member's role (owner only)."""
    member = await WorkspaceService.update_member_role(ctx.session, workspace_id, ctx.user_id, user_id, data.role)
    await ctx.session.commit()
    return WorkspaceMemberResponse.model_validate(member)


@router.delete("/{workspace_id}/members/{user_id}")
async def remove_member(workspace_id: int, user_id: int, ctx: RequestContext = Depends(get_current_context)):
    """Remove a member from a workspace (owner only)."""
    await WorkspaceService.remove_member(ctx.session, workspace_id, ctx.user_id, user_id)
    await ctx.session.commit()
    return {"message": "Member removed successfully"}
