"""
Permission Audit Log Model
Append-only record of permission decisions
"""

from sqlalchemy import Column, DateTime, Index, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.sql import func
from youthhub.core.database import Base
import uuid


class PermissionAuditLog(Base):
    """
    One row per permission decision, role change or approval decision
    Rows are only ever inserted; retention is handled outside the API
    """
    __tablename__ = "permission_audit_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    actor_id = Column(String(64), nullable=False)
    actor_role = Column(String(20), nullable=False)
    resource_type = Column(String(20), nullable=False, index=True)
    action = Column(String(20), nullable=False)
    resource_id = Column(String(64), nullable=True)
    context = Column(JSONB, nullable=True)
    outcome = Column(String(10), nullable=False, index=True)
    severity = Column(String(10), nullable=False, default="low", server_default="low", index=True)

    __table_args__ = (
        Index("ix_permission_audit_actor_time", "actor_id", "created_at"),
    )
