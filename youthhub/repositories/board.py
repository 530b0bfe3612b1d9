"""
Board Repositories
Posts, comments and likes, including the denormalized counters.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from youthhub.models.post import Comment, Like, Post
from youthhub.repositories.base import CRUDBase

logger = structlog.get_logger()

SORT_COLUMNS = {
    "latest": Post.created_at,
    "popular": Post.like_count,
    "views": Post.view_count,
}


class PostRepository(CRUDBase[Post, Post, Post]):
    async def filter_posts(
        self,
        db: AsyncSession,
        *,
        category: Optional[str],
        search: Optional[str],
        sort_by: str,
        skip: int,
        limit: int,
    ) -> tuple[list[Post], int]:
        query = select(Post).where(Post.deleted_at.is_(None))

        if category:
            query = query.where(Post.category == category)

        if search:
            like = f"%{search}%"
            query = query.where(or_(Post.title.ilike(like, escape="\\"), Post.content.ilike(like, escape="\\")))

        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar() or 0

        sort_column = SORT_COLUMNS.get(sort_by, Post.created_at)
        query = query.order_by(sort_column.desc(), Post.created_at.desc()).offset(skip).limit(limit)
        result = await db.execute(query)

        return list(result.scalars().all()), total

    async def get_popular(self, db: AsyncSession, limit: int = 5) -> list[Post]:
        """Most liked first, then most viewed, then newest."""
        result = await db.execute(
            select(Post)
            .where(Post.deleted_at.is_(None))
            .order_by(Post.like_count.desc(), Post.view_count.desc(), Post.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def increment_view_count(self, db: AsyncSession, post_id: UUID) -> Optional[int]:
        result = await db.execute(
            update(Post)
            .where(Post.id == post_id, Post.deleted_at.is_(None))
            .values(view_count=Post.view_count + 1)
            .returning(Post.view_count)
        )
        await db.commit()
        return result.scalar_one_or_none()

    async def adjust_counter(self, db: AsyncSession, post_id: UUID, column: str, delta: int) -> None:
        target = getattr(Post, column)
        await db.execute(
            update(Post)
            .where(Post.id == post_id)
            .values({column: func.greatest(target + delta, 0)})
        )


class CommentRepository(CRUDBase[Comment, Comment, Comment]):
    async def list_for_post(
        self,
        db: AsyncSession,
        post_id: UUID,
        *,
        skip: int,
        limit: int,
    ) -> tuple[list[Comment], int]:
        query = select(Comment).where(Comment.post_id == post_id, Comment.deleted_at.is_(None))

        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar() or 0

        result = await db.execute(query.order_by(Comment.created_at.asc()).offset(skip).limit(limit))
        return list(result.scalars().all()), total

    async def adjust_like_count(self, db: AsyncSession, comment_id: UUID, delta: int) -> None:
        await db.execute(
            update(Comment)
            .where(Comment.id == comment_id)
            .values(like_count=func.greatest(Comment.like_count + delta, 0))
        )


class LikeRepository(CRUDBase[Like, Like, Like]):
    @staticmethod
    def _target_column(target_type: str):
        return Like.post_id if target_type == "post" else Like.comment_id

    async def find(self, db: AsyncSession, *, user_id: UUID, target_type: str, target_id: UUID) -> Optional[Like]:
        result = await db.execute(
            select(Like).where(Like.user_id == user_id, self._target_column(target_type) == target_id)
        )
        return result.scalar_one_or_none()

    async def count_for(self, db: AsyncSession, *, target_type: str, target_id: UUID) -> int:
        result = await db.execute(
            select(func.count(Like.id)).where(self._target_column(target_type) == target_id)
        )
        return result.scalar() or 0

    async def liked_post_ids(self, db: AsyncSession, *, user_id: UUID, post_ids: list[UUID]) -> set[UUID]:
        if not post_ids:
            return set()
        result = await db.execute(
            select(Like.post_id).where(Like.user_id == user_id, Like.post_id.in_(post_ids))
        )
        return set(result.scalars().all())


post_repository = PostRepository(Post)
comment_repository = CommentRepository(Comment)
like_repository = LikeRepository(Like)
