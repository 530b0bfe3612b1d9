"""
Like Endpoints
"""

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from youthhub.core.database import get_db
from youthhub.core.deps import get_optional_identity, require_approved
from youthhub.core.identity import Identity
from youthhub.schemas.board import LikeStatus, LikeTargetType, LikeToggleRequest
from youthhub.services.board import like_service

router = APIRouter()


@router.post("/toggle", response_model=LikeStatus)
async def toggle_like(
    like_in: LikeToggleRequest,
    identity: Identity = Depends(require_approved),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Like the target, or take the like back when it already exists."""
    return await like_service.toggle(db, identity, like_in.target_type, like_in.target_id)


@router.get("/{target_type}/{target_id}", response_model=LikeStatus)
async def like_status(
    target_type: LikeTargetType,
    target_id: UUID,
    viewer: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await like_service.status(db, viewer, target_type, target_id)
