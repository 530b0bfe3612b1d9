"""
User Management Schemas
Admin approval queue and role administration
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from youthhub.core.roles import Role
from youthhub.schemas.base import BaseResponseSchema, BaseSchema, PaginationParams


class UserProfileResponse(BaseResponseSchema):
    email: str
    name: str
    role: str
    is_approved: bool
    approved_at: Optional[datetime] = None
    approved_by: Optional[UUID] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None


class UserFilters(PaginationParams):
    search: Optional[str] = Field(None, max_length=100)
    role: Optional[Role] = None
    is_approved: Optional[bool] = None


class ApproveUserRequest(BaseSchema):
    user_id: UUID


class RejectUserRequest(BaseSchema):
    user_id: UUID
    reason: Optional[str] = Field(None, max_length=500)


class RoleUpdateRequest(BaseSchema):
    role: Role
