"""
Report Model
Member reports of posts and comments for admin review
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
import enum

from youthhub.models.base import BaseModel


class ReportTargetType(str, enum.Enum):
    POST = "post"
    COMMENT = "comment"


class ReportReason(str, enum.Enum):
    SPAM = "spam"
    INAPPROPRIATE_CONTENT = "inappropriate_content"
    HARASSMENT = "harassment"
    FAKE_NEWS = "fake_news"
    COPYRIGHT_VIOLATION = "copyright_violation"
    OTHER = "other"


class ReportStatus(str, enum.Enum):
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class Report(BaseModel):
    __tablename__ = "reports"

    reporter_id = Column(UUID(as_uuid=True), ForeignKey("user_profiles.id"), nullable=False, index=True)
    target_type = Column(String(20), nullable=False)
    target_id = Column(UUID(as_uuid=True), nullable=False)

    reason = Column(String(40), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=ReportStatus.PENDING.value, index=True)

    # Review
    reviewed_by = Column(UUID(as_uuid=True), ForeignKey("user_profiles.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    admin_notes = Column(Text, nullable=True)

    __table_args__ = (
        Index("ix_reports_target", "target_type", "target_id"),
        Index("ix_reports_reporter_target", "reporter_id", "target_type", "target_id"),
    )
