"""Project router (API endpoints)."""

import logging

from fastapi import APIRouter, Depends, status

from src.features.auth.dependencies import get_current_context
from src.shared.context import RequestContext

from .schemas import ProjectCreateRequest, ProjectMemberAddRequest, ProjectMemberResponse, ProjectResponse
from .service import ProjectService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Projects"])


@router.post(
    "/workspaces/{workspace_id}/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED
)
async def create_project(
    workspace_id: int,
    data: ProjectCreateRequest,
    ctx: RequestContext = Depends(get_current_context),
):
    """Create a project (workspace owner only)."""
    project = await ProjectService.create_project(
        ctx.session, workspace_id, ctx.user_id, data.name, data.description, data.status
    )
    await ctx.session.commit()
    return ProjectResponse.model_validate(project)


@router.get("/workspaces/{workspace_id}/projects", response_model=list[ProjectResponse])
async def workspace_projects(workspace_id: int, ctx: RequestContext = Depends(get_current_context)):
    """List a workspace's projects (workspace members only)."""
    projects = await ProjectService.list_for_workspace(ctx.session, workspace_id, ctx.user_id)
    return [ProjectResponse.model_validate(p) for p in projects]


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(project_id: int, ctx: RequestContext = Depends(get_current_context)):
    """Get a project (project members only)."""
    project = await ProjectService.get_project(ctx.session, project_id, ctx.user_id)
    return ProjectResponse.model_validate(project)


@router.post("/projects/{project_id}/members", response_model=ProjectMemberResponse, status_code=status.HTTP_201_CREATED)
async def add_project_member(
    project_id: int,
    data: ProjectMemberAddRequest,
    ctx: RequestContext = Depends(get_current_context),
):
    """Add a workspace member to a project (workspace owner only)."""
    membership = await ProjectService.add_member(ctx.session, project_id, ctx.user_id, data.user_id, data.role)
    await ctx.session.commit()
    return ProjectMemberResponse.model_validate(membership)


@router.delete("/projects/{project_id}/members/{user_id}")
async def remove_project_member(project_id: int, user_id: int, ctx: RequestContext = Depends(get_current_context)):
    """Remove a project member (workspace owner only)."""
    await ProjectService.remove_member(ctx.session, project_id, ctx.user_id, user_id)
    await ctx.session.commit()
    return {"message": "Member removed successfully"}
