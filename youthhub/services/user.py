"""
User Service
Approval queue and role administration.
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from youthhub.core.audit import AuditRecorder, audit_recorder
from youthhub.core.identity import Identity
from youthhub.core.roles import Role, level_of
from youthhub.core.sanitize import sanitize_search_query
from youthhub.models.profile import UserProfile
from youthhub.repositories.profile import user_profile_repository
from youthhub.schemas.base import PaginatedResponse
from youthhub.schemas.user_management import UserFilters, UserProfileResponse

logger = structlog.get_logger()


class UserService:
    def __init__(self, recorder: AuditRecorder | None = None) -> None:
        self.recorder = recorder or audit_recorder

    async def _get_or_404(self, db: AsyncSession, user_id: UUID) -> UserProfile:
        profile = await user_profile_repository.get(db, id=user_id)
        if not profile:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return profile

    async def list_users(self, db: AsyncSession, filters: UserFilters) -> PaginatedResponse:
        search = sanitize_search_query(filters.search) if filters.search else None
        profiles, total = await user_profile_repository.filter_profiles(
            db,
            search=search or None,
            role=filters.role.value if filters.role else None,
            is_approved=filters.is_approved,
            skip=filters.skip,
            limit=filters.limit,
        )
        items = [UserProfileResponse.model_validate(p) for p in profiles]
        return PaginatedResponse.create(items, total, filters.page, filters.limit)

    async def list_pending(self, db: AsyncSession) -> list[UserProfileResponse]:
        profiles = await user_profile_repository.get_pending(db)
        return [UserProfileResponse.model_validate(p) for p in profiles]

    async def approve(self, db: AsyncSession, identity: Identity, user_id: UUID) -> UserProfileResponse:
        profile = await self._get_or_404(db, user_id)
        if profile.is_approved:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is already approved")

        profile = await user_profile_repository.update(
            db,
            db_obj=profile,
            obj_in={
                "is_approved": True,
                "approved_at": datetime.now(timezone.utc),
                "approved_by": UUID(identity.id),
                "rejected_at": None,
                "rejection_reason": None,
            },
        )
        logger.info("User approved", user_id=str(user_id), approved_by=identity.id)
        self.recorder.log_approval_decision(
            identity.id, identity.role_name, user_id, approved=True, role=profile.role
        )
        return UserProfileResponse.model_validate(profile)

    async def reject(
        self, db: AsyncSession, identity: Identity, user_id: UUID, reason: str | None = None
    ) -> UserProfileResponse:
        profile = await self._get_or_404(db, user_id)
        if profile.is_approved:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is already approved")
        if profile.rejected_at is not None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is already rejected")

        profile = await user_profile_repository.update(
            db,
            db_obj=profile,
            obj_in={
                "is_approved": False,
                "rejected_at": datetime.now(timezone.utc),
                "rejection_reason": reason,
            },
        )
        logger.info("User rejected", user_id=str(user_id), rejected_by=identity.id)
        self.recorder.log_approval_decision(
            identity.id, identity.role_name, user_id, approved=False, role=profile.role, reason=reason
        )
        return UserProfileResponse.model_validate(profile)

    async def change_role(
        self, db: AsyncSession, identity: Identity, user_id: UUID, new_role: Role
    ) -> UserProfileResponse:
        new_role = Role(new_role)
        profile = await self._get_or_404(db, user_id)
        old_role = profile.role

        if str(profile.id) == identity.id and new_role != Role.ADMIN:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot demote yourself")

        if old_role == Role.ADMIN.value and new_role != Role.ADMIN:
            remaining = await user_profile_repository.count_admins(db, exclude_user_id=profile.id)
            if remaining == 0:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot demote the last admin")

        profile = await user_profile_repository.update(db, db_obj=profile, obj_in={"role": new_role.value})

        if level_of(new_role) > level_of(old_role):
            logger.warning(
                "Role escalated",
                user_id=str(user_id),
                old_role=old_role,
                new_role=new_role.value,
                changed_by=identity.id,
            )
        else:
            logger.info(
                "Role changed",
                user_id=str(user_id),
                old_role=old_role,
                new_role=new_role.value,
                changed_by=identity.id,
            )
        self.recorder.log_role_change(identity.id, identity.role_name, user_id, old_role, new_role)
        return UserProfileResponse.model_validate(profile)


user_service = UserService()
