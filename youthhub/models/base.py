"""
Base Model Classes
Shared columns for the Supabase public schema tables
"""

from sqlalchemy import Column, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from youthhub.core.database import Base
import uuid


class TimestampMixin:
    """created_at / updated_at as maintained by Supabase defaults"""
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


class UUIDMixin:
    """Generated UUID primary key"""
    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False
    )


class SoftDeleteMixin:
    """Rows with deleted_at set are hidden from every query"""
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class BaseModel(Base, UUIDMixin, TimestampMixin):
    __abstract__ = True


class SoftDeleteModel(BaseModel, SoftDeleteMixin):
    __abstract__ = True
