"""
Report Schemas
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from youthhub.models.report import ReportReason, ReportStatus, ReportTargetType
from youthhub.schemas.base import BaseResponseSchema, BaseSchema


class ReportCreate(BaseSchema):
    target_type: ReportTargetType
    target_id: UUID
    reason: ReportReason
    description: Optional[str] = Field(None, min_length=10, max_length=500)


class ReportStatusUpdate(BaseSchema):
    status: ReportStatus
    admin_notes: Optional[str] = Field(None, max_length=1000)


class ReportResponse(BaseResponseSchema):
    reporter_id: UUID
    target_type: str
    target_id: UUID
    reason: str
    description: Optional[str] = None
    status: str
    reviewed_by: Optional[UUID] = None
    reviewed_at: Optional[datetime] = None
    admin_notes: Optional[str] = None
