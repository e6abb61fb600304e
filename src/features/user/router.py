"""User router (API endpoints)."""

import logging

from fastapi import APIRouter, Depends

from src.features.auth.dependencies import get_current_context, get_current_user
from src.shared.context import RequestContext
from src.shared.pagination.pagination import PaginationParams

from .models import User
from .schemas import UserListResponse, UserResponse
from .service import UserService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current user information."""
    return UserResponse.model_validate(current_user)


@router.get("", response_model=UserListResponse)
async def list_users(
    pagination: PaginationParams = Depends(),
    ctx: RequestContext = Depends(get_current_context),
):
    """List users (authenticated).

    Pagination is enabled by default:
    - `page`: Page number (1-indexed, default: 1)
    - `page_size`: Items per page (default: 50, max: 1000)
    """
    users, total = await UserService.get_users(ctx.session, pagination)
    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        total=total,
        page=pagination.page or 1,
        page_size=pagination.page_size or 50,
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: int, ctx: RequestContext = Depends(get_current_context)):
    """Get user by ID."""
    user = await UserService.get_user_or_404(ctx.session, user_id)
    return UserResponse.model_validate(user)
