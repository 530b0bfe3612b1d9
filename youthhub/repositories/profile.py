"""
User Profile Repository
Database operations for profiles and the approval queue.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from youthhub.models.profile import UserProfile
from youthhub.repositories.base import CRUDBase

logger = structlog.get_logger()


class UserProfileRepository(CRUDBase[UserProfile, UserProfile, UserProfile]):
    async def get_by_email(self, db: AsyncSession, email: str) -> Optional[UserProfile]:
        result = await db.execute(select(UserProfile).where(func.lower(UserProfile.email) == email.lower().strip()))
        return result.scalars().first()

    async def filter_profiles(
        self,
        db: AsyncSession,
        *,
        search: Optional[str],
        role: Optional[str],
        is_approved: Optional[bool],
        skip: int,
        limit: int,
    ) -> tuple[list[UserProfile], int]:
        query = select(UserProfile)

        if search:
            like = f"%{search}%"
            query = query.where(
                or_(UserProfile.email.ilike(like, escape="\\"), UserProfile.name.ilike(like, escape="\\"))
            )

        if role:
            query = query.where(UserProfile.role == role)

        if is_approved is not None:
            query = query.where(UserProfile.is_approved == is_approved)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar() or 0

        query = query.order_by(UserProfile.created_at.desc()).offset(skip).limit(limit)
        result = await db.execute(query)

        return list(result.scalars().all()), total

    async def get_pending(self, db: AsyncSession) -> list[UserProfile]:
        """Unapproved profiles that were never rejected, oldest first."""
        result = await db.execute(
            select(UserProfile)
            .where(UserProfile.is_approved.is_(False), UserProfile.rejected_at.is_(None))
            .order_by(UserProfile.created_at.asc())
        )
        return list(result.scalars().all())

    async def get_many(self, db: AsyncSession, ids: list[UUID]) -> list[UserProfile]:
        if not ids:
            return []
        result = await db.execute(select(UserProfile).where(UserProfile.id.in_(ids)))
        return list(result.scalars().all())

    async def count_admins(self, db: AsyncSession, exclude_user_id: Optional[UUID] = None) -> int:
        query = select(func.count(UserProfile.id)).where(
            UserProfile.role == "admin",
            UserProfile.is_approved.is_(True),
        )
        if exclude_user_id:
            query = query.where(UserProfile.id != exclude_user_id)
        return (await db.execute(query)).scalar() or 0


user_profile_repository = UserProfileRepository(UserProfile)
