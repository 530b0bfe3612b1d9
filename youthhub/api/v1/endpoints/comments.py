"""
Comment Endpoints
Comments nested under a post
"""

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from youthhub.core.database import get_db
from youthhub.core.deps import (
    enforce_permission,
    get_optional_identity,
    get_permission_manager,
    require_approved,
    require_permission,
)
from youthhub.core.identity import Identity
from youthhub.core.permissions import ActionType, PermissionManager, ResourceType
from youthhub.schemas.base import PaginatedResponse, SuccessResponse
from youthhub.schemas.board import CommentCreate, CommentResponse, CommentUpdate
from youthhub.services.board import comment_service

logger = structlog.get_logger()
router = APIRouter()


def _owner_context(comment) -> dict:
    return {"user_id": comment.author_id, "post_id": comment.post_id}


@router.get("/", response_model=PaginatedResponse)
async def list_comments(
    post_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    viewer: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await comment_service.list_comments(db, post_id, page=page, limit=limit, viewer=viewer)


@router.post("/", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: UUID,
    comment_in: CommentCreate,
    identity: Identity = Depends(require_permission(ResourceType.COMMENT, ActionType.CREATE)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await comment_service.create_comment(db, identity, post_id, comment_in)


@router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    post_id: UUID,
    comment_id: UUID,
    comment_in: CommentUpdate,
    identity: Identity = Depends(require_approved),
    manager: PermissionManager = Depends(get_permission_manager),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Only the author (or an admin) may edit a comment."""
    comment = await comment_service.get_comment_or_404(db, post_id, comment_id)
    enforce_permission(
        identity,
        ResourceType.COMMENT,
        ActionType.UPDATE,
        _owner_context(comment),
        resource_id=str(comment.id),
        manager=manager,
    )
    return await comment_service.update_comment(db, identity, comment, comment_in)


@router.delete("/{comment_id}", response_model=SuccessResponse)
async def delete_comment(
    post_id: UUID,
    comment_id: UUID,
    identity: Identity = Depends(require_approved),
    manager: PermissionManager = Depends(get_permission_manager),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Delete a comment

    Authors and admins delete through ``comment.delete``; leaders may remove
    other members' comments through ``comment.moderate``.
    """
    comment = await comment_service.get_comment_or_404(db, post_id, comment_id)
    context = _owner_context(comment)

    if not manager.authorize(
        identity, ResourceType.COMMENT, ActionType.DELETE, context, resource_id=str(comment.id)
    ):
        enforce_permission(
            identity,
            ResourceType.COMMENT,
            ActionType.MODERATE,
            context,
            resource_id=str(comment.id),
            manager=manager,
        )
        logger.info("Comment removed by moderator", comment_id=str(comment.id), moderator_id=identity.id)

    await comment_service.delete_comment(db, identity, comment)
    return SuccessResponse(message="Comment deleted successfully")
