"""
Board Post Endpoints
Listing, reading and writing posts; notices are restricted to leaders
"""

from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
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
from youthhub.core.permissions import ActionType, PermissionContext, PermissionManager, ResourceType
from youthhub.schemas.base import PaginatedResponse, SuccessResponse
from youthhub.schemas.board import PostCreate, PostFilters, PostResponse, PostUpdate, ViewCountResponse
from youthhub.services.board import post_service

logger = structlog.get_logger()
router = APIRouter()


async def load_post_context(post_id: UUID, db: AsyncSession = Depends(get_db)) -> PermissionContext:
    """Ownership context of an existing post; 404 when it does not exist."""
    post = await post_service.get_post_or_404(db, post_id)
    return PermissionContext(user_id=str(post.author_id), post_id=str(post.id), category=post.category)


@router.get("/", response_model=PaginatedResponse)
async def list_posts(
    filters: PostFilters = Depends(),
    viewer: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """List posts with category filter, search and sorting."""
    try:
        return await post_service.list_posts(db, filters, viewer)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Error listing posts", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to list posts")


@router.get("/popular", response_model=List[PostResponse])
async def popular_posts(
    limit: int = Query(5, ge=1, le=20),
    viewer: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Most liked posts, ties broken by views and recency."""
    return await post_service.popular_posts(db, limit=limit, viewer=viewer)


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: UUID,
    viewer: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await post_service.get_post(db, post_id, viewer)


@router.post("/{post_id}/views", response_model=ViewCountResponse)
async def increment_views(post_id: UUID, db: AsyncSession = Depends(get_db)) -> Any:
    return await post_service.increment_views(db, post_id)


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_in: PostCreate,
    identity: Identity = Depends(require_approved),
    manager: PermissionManager = Depends(get_permission_manager),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Create a post

    Members may write to the free and Q&A boards; notices need a leader.
    """
    enforce_permission(
        identity,
        ResourceType.POST,
        ActionType.CREATE,
        {"category": post_in.category},
        manager=manager,
    )
    return await post_service.create_post(db, identity, post_in)


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: UUID,
    post_in: PostUpdate,
    identity: Identity = Depends(require_approved),
    manager: PermissionManager = Depends(get_permission_manager),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Update a post

    The author or a leader may edit; moving a post into the notice board
    is checked against the new category.
    """
    post = await post_service.get_post_or_404(db, post_id)
    enforce_permission(
        identity,
        ResourceType.POST,
        ActionType.UPDATE,
        {
            "user_id": post.author_id,
            "post_id": post.id,
            "category": post_in.category or post.category,
        },
        manager=manager,
    )
    return await post_service.update_post(db, identity, post, post_in)


@router.delete("/{post_id}", response_model=SuccessResponse)
async def delete_post(
    post_id: UUID,
    identity: Identity = Depends(
        require_permission(ResourceType.POST, ActionType.DELETE, context_loader=load_post_context)
    ),
    db: AsyncSession = Depends(get_db),
) -> Any:
    await post_service.delete_post(db, identity, post_id)
    return SuccessResponse(message="Post deleted successfully")
