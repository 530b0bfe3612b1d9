"""
User Profile Model
Role and approval state for each Supabase Auth user
"""

from sqlalchemy import Boolean, Column, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID

from youthhub.core.database import Base
from youthhub.core.roles import Role
from youthhub.models.base import TimestampMixin


class UserProfile(Base, TimestampMixin):
    """One row per auth.users entry; the id is the auth user id"""
    __tablename__ = "user_profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, nullable=False)

    email = Column(String(254), nullable=False, index=True)
    name = Column(String(100), nullable=False, default="")
    phone = Column(String(30), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    provider = Column(String(30), nullable=True)

    # Authorization
    role = Column(String(20), nullable=False, default=Role.MEMBER.value, index=True)
    is_approved = Column(Boolean, nullable=False, default=False, index=True)

    # Approval workflow
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(UUID(as_uuid=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_user_profiles_approval", "is_approved", "created_at"),
    )

    def __repr__(self):
        return f"<UserProfile(email='{self.email}', role='{self.role}', approved={self.is_approved})>"
