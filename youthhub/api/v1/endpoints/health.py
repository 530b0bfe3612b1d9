"""
Health Check Endpoints
"""

from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from youthhub import __version__
from youthhub.core.database import check_database_health
from youthhub.schemas.base import HealthCheck, HealthStatus

router = APIRouter()


@router.get("/health", response_model=HealthCheck)
async def health_check() -> Any:
    """Health check for container orchestration and load balancers"""
    database_ok = await check_database_health()
    health = HealthCheck(
        status=HealthStatus.HEALTHY if database_ok else HealthStatus.UNHEALTHY,
        service="youthhub-api",
        version=__version__,
        checks={"database": "connected" if database_ok else "unavailable"},
    )
    if not database_ok:
        return JSONResponse(status_code=503, content=health.model_dump(mode="json"))
    return health
