"""
User Administration Endpoints
Approval queue and role management for leaders and admins
"""

from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from youthhub.core.database import get_db
from youthhub.core.deps import require_permission, require_role
from youthhub.core.identity import Identity
from youthhub.core.permissions import ActionType, ResourceType
from youthhub.core.roles import Role
from youthhub.schemas.base import PaginatedResponse
from youthhub.schemas.user_management import (
    ApproveUserRequest,
    RejectUserRequest,
    RoleUpdateRequest,
    UserFilters,
    UserProfileResponse,
)
from youthhub.services.user import user_service

logger = structlog.get_logger()
router = APIRouter(dependencies=[Depends(require_role(Role.LEADER))])


@router.get("/", response_model=PaginatedResponse)
async def list_users(
    filters: UserFilters = Depends(),
    identity: Identity = Depends(require_permission(ResourceType.USER, ActionType.READ)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """List user profiles with search, role and approval filters."""
    return await user_service.list_users(db, filters)


@router.get("/pending", response_model=List[UserProfileResponse])
async def list_pending_users(
    identity: Identity = Depends(require_permission(ResourceType.USER, ActionType.APPROVE)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await user_service.list_pending(db)


@router.post("/approve", response_model=UserProfileResponse)
async def approve_user(
    request: ApproveUserRequest,
    identity: Identity = Depends(require_permission(ResourceType.USER, ActionType.APPROVE)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await user_service.approve(db, identity, request.user_id)


@router.post("/reject", response_model=UserProfileResponse)
async def reject_user(
    request: RejectUserRequest,
    identity: Identity = Depends(require_permission(ResourceType.USER, ActionType.APPROVE)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await user_service.reject(db, identity, request.user_id, request.reason)


@router.patch("/{user_id}/role", response_model=UserProfileResponse)
async def change_user_role(
    user_id: UUID,
    request: RoleUpdateRequest,
    identity: Identity = Depends(require_permission(ResourceType.USER, ActionType.MANAGE)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Change a user's role

    Admins cannot demote themselves and the last admin cannot be demoted.
    """
    return await user_service.change_role(db, identity, user_id, request.role)
