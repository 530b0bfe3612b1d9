"""
Content Report Endpoints
Members report posts and comments; submissions are rate limited per user
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from youthhub.core.database import get_db
from youthhub.core.deps import get_report_limiter, require_approved
from youthhub.core.identity import Identity
from youthhub.core.rate_limit import FixedWindowLimiter
from youthhub.schemas.base import PaginatedResponse
from youthhub.schemas.report import ReportCreate, ReportResponse
from youthhub.services.report import report_service

logger = structlog.get_logger()
router = APIRouter()


@router.post("/", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def create_report(
    report_in: ReportCreate,
    identity: Identity = Depends(require_approved),
    limiter: FixedWindowLimiter = Depends(get_report_limiter),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Report a post or comment

    Returns 404 when the target is gone and 409 when the caller already
    reported it.
    """
    result = await limiter.hit(identity.id)
    if not result.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many reports. Please try again later.",
            headers={"Retry-After": str(result.retry_after)},
        )
    return await report_service.create_report(db, identity, report_in)


@router.get("/mine", response_model=PaginatedResponse)
async def list_my_reports(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    identity: Identity = Depends(require_approved),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await report_service.list_reports(db, page=page, limit=limit, reporter=identity)
