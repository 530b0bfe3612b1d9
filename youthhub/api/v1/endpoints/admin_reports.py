"""
Report Review Endpoints
Admin-only moderation queue
"""

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from youthhub.core.database import get_db
from youthhub.core.deps import require_permission, require_role
from youthhub.core.identity import Identity
from youthhub.core.permissions import ActionType, ResourceType
from youthhub.core.roles import Role
from youthhub.models.report import ReportStatus
from youthhub.schemas.base import PaginatedResponse
from youthhub.schemas.report import ReportResponse, ReportStatusUpdate
from youthhub.services.report import report_service

logger = structlog.get_logger()
router = APIRouter(dependencies=[Depends(require_role(Role.ADMIN))])

require_system_manage = require_permission(ResourceType.SYSTEM, ActionType.MANAGE)


@router.get("/", response_model=PaginatedResponse)
async def list_reports(
    status_filter: Optional[ReportStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    identity: Identity = Depends(require_system_manage),
    db: AsyncSession = Depends(get_db),
) -> Any:
    try:
        return await report_service.list_reports(
            db,
            page=page,
            limit=limit,
            status_filter=status_filter.value if status_filter else None,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Error listing reports", error=str(e), admin_id=identity.id)
        raise HTTPException(status_code=500, detail="Failed to list reports")


@router.patch("/{report_id}", response_model=ReportResponse)
async def update_report_status(
    report_id: UUID,
    update_in: ReportStatusUpdate,
    identity: Identity = Depends(require_system_manage),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await report_service.update_status(db, identity, report_id, update_in)
