"""
SQLAlchemy Models Package
YouthHub database models
"""

from youthhub.models.profile import UserProfile
from youthhub.models.post import Post, Comment, Like, PostCategory
from youthhub.models.event import Event, EventAttendance, EventCategory
from youthhub.models.report import Report, ReportReason, ReportStatus, ReportTargetType
from youthhub.models.audit_log import PermissionAuditLog

__all__ = [
    "UserProfile",
    "Post",
    "Comment",
    "Like",
    "PostCategory",
    "Event",
    "EventAttendance",
    "EventCategory",
    "Report",
    "ReportReason",
    "ReportStatus",
    "ReportTargetType",
    "PermissionAuditLog",
]
