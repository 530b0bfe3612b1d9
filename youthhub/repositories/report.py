"""
Report Repository
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from youthhub.models.report import Report
from youthhub.repositories.base import CRUDBase


class ReportRepository(CRUDBase[Report, Report, Report]):
    async def find_duplicate(
        self,
        db: AsyncSession,
        *,
        reporter_id: UUID,
        target_type: str,
        target_id: UUID,
    ) -> Optional[Report]:
        result = await db.execute(
            select(Report).where(
                Report.reporter_id == reporter_id,
                Report.target_type == target_type,
                Report.target_id == target_id,
            )
        )
        return result.scalars().first()

    async def filter_reports(
        self,
        db: AsyncSession,
        *,
        reporter_id: Optional[UUID] = None,
        status: Optional[str] = None,
        skip: int,
        limit: int,
    ) -> tuple[list[Report], int]:
        query = select(Report)
        if reporter_id is not None:
            query = query.where(Report.reporter_id == reporter_id)
        if status:
            query = query.where(Report.status == status)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await db.execute(count_query)).scalar() or 0

        result = await db.execute(query.order_by(Report.created_at.desc()).offset(skip).limit(limit))
        return list(result.scalars().all()), total


report_repository = ReportRepository(Report)
