"""
Board Service
Business logic for posts, comments and likes.

Authorization happens in the route guards before these methods run; the
service only validates existence and keeps counters consistent.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from youthhub.core.identity import Identity
from youthhub.core.sanitize import sanitize_search_query, sanitize_text
from youthhub.models.post import Comment, Post
from youthhub.repositories.board import comment_repository, like_repository, post_repository
from youthhub.repositories.profile import user_profile_repository
from youthhub.schemas.base import PaginatedResponse
from youthhub.schemas.board import (
    CommentCreate,
    CommentResponse,
    CommentUpdate,
    LikeStatus,
    LikeTargetType,
    PostCreate,
    PostFilters,
    PostResponse,
    PostUpdate,
    ViewCountResponse,
)

logger = structlog.get_logger()

ANONYMOUS_NAME = "Anonymous"


async def _author_names(db: AsyncSession, author_ids: set) -> dict:
    profiles = await user_profile_repository.get_many(db, [a for a in author_ids if a is not None])
    return {profile.id: profile.name for profile in profiles}


def _is_mine(author_id, viewer: Optional[Identity]) -> bool:
    return viewer is not None and str(author_id) == viewer.id


def _check_post_text(title: Optional[str] = None, content: Optional[str] = None) -> None:
    """Sanitised text must still meet the minimum lengths; ``None`` means not being set."""
    if (title is not None and len(title) < 2) or (content is not None and len(content) < 10):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Title or content is empty after removing markup",
        )


class PostService:
    def _to_response(
        self,
        post: Post,
        names: dict,
        viewer: Optional[Identity],
        liked: bool = False,
    ) -> PostResponse:
        anonymous = bool(post.is_anonymous)
        return PostResponse(
            id=post.id,
            created_at=post.created_at,
            updated_at=post.updated_at,
            title=post.title,
            content=post.content,
            category=post.category,
            author_id=None if anonymous else post.author_id,
            author_name=ANONYMOUS_NAME if anonymous else names.get(post.author_id),
            is_anonymous=anonymous,
            attachments=list(post.attachments or []),
            view_count=post.view_count or 0,
            like_count=post.like_count or 0,
            comment_count=post.comment_count or 0,
            is_mine=_is_mine(post.author_id, viewer),
            liked=liked,
        )

    async def _to_responses(
        self, db: AsyncSession, posts: list[Post], viewer: Optional[Identity]
    ) -> list[PostResponse]:
        names = await _author_names(db, {p.author_id for p in posts if not p.is_anonymous})
        liked: set = set()
        if viewer is not None:
            liked = await like_repository.liked_post_ids(
                db, user_id=UUID(viewer.id), post_ids=[p.id for p in posts]
            )
        return [self._to_response(p, names, viewer, p.id in liked) for p in posts]

    async def get_post_or_404(self, db: AsyncSession, post_id: UUID) -> Post:
        post = await post_repository.get(db, id=post_id)
        if not post:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
        return post

    async def list_posts(
        self, db: AsyncSession, filters: PostFilters, viewer: Optional[Identity] = None
    ) -> PaginatedResponse:
        search = sanitize_search_query(filters.search) if filters.search else None
        posts, total = await post_repository.filter_posts(
            db,
            category=filters.category,
            search=search or None,
            sort_by=filters.sort_by,
            skip=filters.skip,
            limit=filters.limit,
        )
        items = await self._to_responses(db, posts, viewer)
        return PaginatedResponse.create(items, total, filters.page, filters.limit)

    async def popular_posts(
        self, db: AsyncSession, limit: int = 5, viewer: Optional[Identity] = None
    ) -> list[PostResponse]:
        posts = await post_repository.get_popular(db, limit=limit)
        return await self._to_responses(db, posts, viewer)

    async def get_post(
        self, db: AsyncSession, post_id: UUID, viewer: Optional[Identity] = None
    ) -> PostResponse:
        post = await self.get_post_or_404(db, post_id)
        return (await self._to_responses(db, [post], viewer))[0]

    async def increment_views(self, db: AsyncSession, post_id: UUID) -> ViewCountResponse:
        view_count = await post_repository.increment_view_count(db, post_id)
        if view_count is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
        return ViewCountResponse(id=post_id, view_count=view_count)

    async def create_post(self, db: AsyncSession, identity: Identity, data: PostCreate) -> PostResponse:
        title = sanitize_text(data.title, field_name="title")
        content = sanitize_text(data.content, field_name="content")
        _check_post_text(title=title, content=content)

        post = await post_repository.create(
            db,
            obj_in={
                "title": title,
                "content": content,
                "category": data.category,
                "is_anonymous": data.is_anonymous,
                "attachments": data.attachments,
                "author_id": UUID(identity.id),
            },
        )
        logger.info("Post created", post_id=str(post.id), author_id=identity.id, category=post.category)
        return (await self._to_responses(db, [post], identity))[0]

    async def update_post(
        self, db: AsyncSession, identity: Identity, post: Post, data: PostUpdate
    ) -> PostResponse:
        updates = data.model_dump(exclude_unset=True, exclude_none=True)
        for field in ("title", "content"):
            if field in updates:
                updates[field] = sanitize_text(updates[field], field_name=field)
        _check_post_text(title=updates.get("title"), content=updates.get("content"))

        post = await post_repository.update(db, db_obj=post, obj_in=updates)
        logger.info("Post updated", post_id=str(post.id), editor_id=identity.id, fields=sorted(updates))
        return (await self._to_responses(db, [post], identity))[0]

    async def delete_post(self, db: AsyncSession, identity: Identity, post_id: UUID) -> None:
        post = await self.get_post_or_404(db, post_id)
        await post_repository.remove(db, db_obj=post)
        logger.info("Post deleted", post_id=str(post_id), deleted_by=identity.id)


class CommentService:
    def _to_response(self, comment: Comment, names: dict, viewer: Optional[Identity]) -> CommentResponse:
        anonymous = bool(comment.is_anonymous)
        return CommentResponse(
            id=comment.id,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
            post_id=comment.post_id,
            parent_id=comment.parent_id,
            author_id=None if anonymous else comment.author_id,
            author_name=ANONYMOUS_NAME if anonymous else names.get(comment.author_id),
            content=comment.content,
            is_anonymous=anonymous,
            like_count=comment.like_count or 0,
            is_mine=_is_mine(comment.author_id, viewer),
        )

    async def get_comment_or_404(self, db: AsyncSession, post_id: UUID, comment_id: UUID) -> Comment:
        comment = await comment_repository.get(db, id=comment_id)
        if not comment or comment.post_id != post_id:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
        return comment

    async def list_comments(
        self,
        db: AsyncSession,
        post_id: UUID,
        *,
        page: int,
        limit: int,
        viewer: Optional[Identity] = None,
    ) -> PaginatedResponse:
        await post_service.get_post_or_404(db, post_id)
        comments, total = await comment_repository.list_for_post(
            db, post_id, skip=(page - 1) * limit, limit=limit
        )
        names = await _author_names(db, {c.author_id for c in comments if not c.is_anonymous})
        items = [self._to_response(c, names, viewer) for c in comments]
        return PaginatedResponse.create(items, total, page, limit)

    async def create_comment(
        self, db: AsyncSession, identity: Identity, post_id: UUID, data: CommentCreate
    ) -> CommentResponse:
        await post_service.get_post_or_404(db, post_id)

        if data.parent_id is not None:
            parent = await comment_repository.get(db, id=data.parent_id)
            if not parent or parent.post_id != post_id:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Parent comment not found")

        content = sanitize_text(data.content, field_name="comment")
        if not content:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Comment is empty")

        comment = await comment_repository.create(
            db,
            obj_in={
                "post_id": post_id,
                "parent_id": data.parent_id,
                "author_id": UUID(identity.id),
                "content": content,
                "is_anonymous": data.is_anonymous,
            },
            commit=False,
        )
        await post_repository.adjust_counter(db, post_id, "comment_count", 1)
        await db.commit()
        await db.refresh(comment)

        logger.info("Comment created", comment_id=str(comment.id), post_id=str(post_id), author_id=identity.id)
        names = await _author_names(db, {comment.author_id})
        return self._to_response(comment, names, identity)

    async def update_comment(
        self, db: AsyncSession, identity: Identity, comment: Comment, data: CommentUpdate
    ) -> CommentResponse:
        content = sanitize_text(data.content, field_name="comment")
        if not content:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Comment is empty")

        comment = await comment_repository.update(db, db_obj=comment, obj_in={"content": content})
        names = await _author_names(db, {comment.author_id})
        return self._to_response(comment, names, identity)

    async def delete_comment(self, db: AsyncSession, identity: Identity, comment: Comment) -> None:
        await comment_repository.remove(db, db_obj=comment, commit=False)
        await post_repository.adjust_counter(db, comment.post_id, "comment_count", -1)
        await db.commit()
        logger.info("Comment deleted", comment_id=str(comment.id), deleted_by=identity.id)


class LikeService:
    async def _ensure_target(self, db: AsyncSession, target_type: LikeTargetType, target_id: UUID) -> None:
        repo = post_repository if target_type == LikeTargetType.POST else comment_repository
        if not await repo.get(db, id=target_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{target_type.value.capitalize()} not found")

    async def _adjust(self, db: AsyncSession, target_type: LikeTargetType, target_id: UUID, delta: int) -> None:
        if target_type == LikeTargetType.POST:
            await post_repository.adjust_counter(db, target_id, "like_count", delta)
        else:
            await comment_repository.adjust_like_count(db, target_id, delta)

    async def toggle(
        self, db: AsyncSession, identity: Identity, target_type: LikeTargetType, target_id: UUID
    ) -> LikeStatus:
        target_type = LikeTargetType(target_type)
        await self._ensure_target(db, target_type, target_id)
        user_id = UUID(identity.id)

        existing = await like_repository.find(
            db, user_id=user_id, target_type=target_type.value, target_id=target_id
        )
        if existing:
            await like_repository.remove(db, db_obj=existing, commit=False)
            await self._adjust(db, target_type, target_id, -1)
            liked = False
        else:
            column = "post_id" if target_type == LikeTargetType.POST else "comment_id"
            await like_repository.create(db, obj_in={"user_id": user_id, column: target_id}, commit=False)
            await self._adjust(db, target_type, target_id, 1)
            liked = True
        await db.commit()

        like_count = await like_repository.count_for(db, target_type=target_type.value, target_id=target_id)
        logger.info("Like toggled", target_type=target_type.value, target_id=str(target_id), liked=liked)
        return LikeStatus(target_type=target_type, target_id=target_id, liked=liked, like_count=like_count)

    async def status(
        self, db: AsyncSession, identity: Optional[Identity], target_type: LikeTargetType, target_id: UUID
    ) -> LikeStatus:
        target_type = LikeTargetType(target_type)
        liked = False
        if identity is not None:
            liked = await like_repository.find(
                db, user_id=UUID(identity.id), target_type=target_type.value, target_id=target_id
            ) is not None
        like_count = await like_repository.count_for(db, target_type=target_type.value, target_id=target_id)
        return LikeStatus(target_type=target_type, target_id=target_id, liked=liked, like_count=like_count)


post_service = PostService()
comment_service = CommentService()
like_service = LikeService()
