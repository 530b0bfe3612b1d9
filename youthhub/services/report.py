"""
Report Service
Member reports of posts/comments and their admin review.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from youthhub.core.identity import Identity
from youthhub.core.sanitize import sanitize_text
from youthhub.models.report import ReportStatus, ReportTargetType
from youthhub.repositories.board import comment_repository, post_repository
from youthhub.repositories.report import report_repository
from youthhub.schemas.base import PaginatedResponse
from youthhub.schemas.report import ReportCreate, ReportResponse, ReportStatusUpdate

logger = structlog.get_logger()

# Statuses an admin has finished with
CLOSED_STATUSES = {ReportStatus.RESOLVED.value, ReportStatus.DISMISSED.value}


class ReportService:
    async def create_report(self, db: AsyncSession, identity: Identity, data: ReportCreate) -> ReportResponse:
        target_type = ReportTargetType(data.target_type)
        reporter_id = UUID(identity.id)

        repo = post_repository if target_type == ReportTargetType.POST else comment_repository
        if not await repo.get(db, id=data.target_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report target not found")

        duplicate = await report_repository.find_duplicate(
            db, reporter_id=reporter_id, target_type=target_type.value, target_id=data.target_id
        )
        if duplicate:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="You have already reported this content")

        report = await report_repository.create(
            db,
            obj_in={
                "reporter_id": reporter_id,
                "target_type": target_type.value,
                "target_id": data.target_id,
                "reason": data.reason,
                "description": sanitize_text(data.description, field_name="description") or None,
                "status": ReportStatus.PENDING.value,
            },
        )
        logger.info(
            "Report submitted",
            report_id=str(report.id),
            reporter_id=identity.id,
            target_type=target_type.value,
            reason=report.reason,
        )
        return ReportResponse.model_validate(report)

    async def list_reports(
        self,
        db: AsyncSession,
        *,
        page: int,
        limit: int,
        reporter: Optional[Identity] = None,
        status_filter: Optional[str] = None,
    ) -> PaginatedResponse:
        reports, total = await report_repository.filter_reports(
            db,
            reporter_id=UUID(reporter.id) if reporter is not None else None,
            status=status_filter,
            skip=(page - 1) * limit,
            limit=limit,
        )
        items = [ReportResponse.model_validate(r) for r in reports]
        return PaginatedResponse.create(items, total, page, limit)

    async def update_status(
        self, db: AsyncSession, identity: Identity, report_id: UUID, data: ReportStatusUpdate
    ) -> ReportResponse:
        report = await report_repository.get(db, id=report_id)
        if not report:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Report not found")

        updates = {"status": data.status, "reviewed_by": UUID(identity.id)}
        if data.status in CLOSED_STATUSES:
            updates["reviewed_at"] = datetime.now(timezone.utc)
        if data.admin_notes is not None:
            updates["admin_notes"] = data.admin_notes

        report = await report_repository.update(db, db_obj=report, obj_in=updates)
        logger.info("Report reviewed", report_id=str(report_id), reviewer_id=identity.id, status=report.status)
        return ReportResponse.model_validate(report)


report_service = ReportService()
