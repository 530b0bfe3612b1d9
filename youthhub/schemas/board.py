"""
Board Schemas
Posts, comments and likes
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from youthhub.models.post import PostCategory
from youthhub.schemas.base import BaseResponseSchema, BaseSchema, PaginationParams


class PostSort(str, Enum):
    LATEST = "latest"
    POPULAR = "popular"
    VIEWS = "views"


class LikeTargetType(str, Enum):
    POST = "post"
    COMMENT = "comment"


class PostCreate(BaseSchema):
    title: str = Field(..., min_length=2, max_length=100)
    content: str = Field(..., min_length=10, max_length=5000)
    category: PostCategory = Field(PostCategory.FREE)
    is_anonymous: bool = False
    attachments: List[str] = Field(default_factory=list, max_length=10)


class PostUpdate(BaseSchema):
    title: Optional[str] = Field(None, min_length=2, max_length=100)
    content: Optional[str] = Field(None, min_length=10, max_length=5000)
    category: Optional[PostCategory] = None
    is_anonymous: Optional[bool] = None
    attachments: Optional[List[str]] = Field(None, max_length=10)


class PostFilters(PaginationParams):
    category: Optional[PostCategory] = None
    search: Optional[str] = Field(None, max_length=100)
    sort_by: PostSort = PostSort.LATEST


class PostResponse(BaseResponseSchema):
    title: str
    content: str
    category: str
    # Hidden for anonymous posts
    author_id: Optional[UUID] = None
    author_name: Optional[str] = None
    is_anonymous: bool
    attachments: List[str] = Field(default_factory=list)
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    updated_at: Optional[datetime] = None
    is_mine: bool = False
    liked: bool = False


class ViewCountResponse(BaseSchema):
    id: UUID
    view_count: int


class CommentCreate(BaseSchema):
    content: str = Field(..., min_length=1, max_length=1000)
    is_anonymous: bool = False
    parent_id: Optional[UUID] = None


class CommentUpdate(BaseSchema):
    content: str = Field(..., min_length=1, max_length=1000)


class CommentResponse(BaseResponseSchema):
    post_id: UUID
    parent_id: Optional[UUID] = None
    author_id: Optional[UUID] = None
    author_name: Optional[str] = None
    content: str
    is_anonymous: bool
    like_count: int = 0
    updated_at: Optional[datetime] = None
    is_mine: bool = False


class LikeToggleRequest(BaseSchema):
    target_type: LikeTargetType
    target_id: UUID


class LikeStatus(BaseSchema):
    target_type: LikeTargetType
    target_id: UUID
    liked: bool
    like_count: int
