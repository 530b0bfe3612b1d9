"""
Calendar Event Endpoints
Events are public to read; leaders create them and manage their own
"""

from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from youthhub.core.database import get_db
from youthhub.core.deps import get_optional_identity, require_approved, require_permission
from youthhub.core.identity import Identity
from youthhub.core.permissions import ActionType, PermissionContext, ResourceType
from youthhub.schemas.base import SuccessResponse
from youthhub.schemas.event import AttendanceStatus, EventCreate, EventFilters, EventResponse, EventUpdate
from youthhub.services.event import event_service

logger = structlog.get_logger()
router = APIRouter()


async def load_event_context(event_id: UUID, db: AsyncSession = Depends(get_db)) -> PermissionContext:
    event = await event_service.get_event_or_404(db, event_id)
    return PermissionContext(user_id=str(event.author_id), resource_id=str(event.id))


@router.get("/", response_model=List[EventResponse])
async def list_events(
    filters: EventFilters = Depends(),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Events overlapping the requested date range."""
    return await event_service.list_events(db, filters)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(event_id: UUID, db: AsyncSession = Depends(get_db)) -> Any:
    return await event_service.get_event(db, event_id)


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_in: EventCreate,
    identity: Identity = Depends(require_permission(ResourceType.EVENT, ActionType.CREATE)),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await event_service.create_event(db, identity, event_in)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: UUID,
    event_in: EventUpdate,
    identity: Identity = Depends(
        require_permission(ResourceType.EVENT, ActionType.UPDATE, context_loader=load_event_context)
    ),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Leaders edit their own events; admins edit any."""
    return await event_service.update_event(db, identity, event_id, event_in)


@router.delete("/{event_id}", response_model=SuccessResponse)
async def delete_event(
    event_id: UUID,
    identity: Identity = Depends(
        require_permission(ResourceType.EVENT, ActionType.DELETE, context_loader=load_event_context)
    ),
    db: AsyncSession = Depends(get_db),
) -> Any:
    await event_service.delete_event(db, identity, event_id)
    return SuccessResponse(message="Event deleted successfully")


@router.post("/{event_id}/attendance", response_model=AttendanceStatus)
async def toggle_attendance(
    event_id: UUID,
    identity: Identity = Depends(require_approved),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """Register for the event, or cancel an existing registration."""
    return await event_service.toggle_attendance(db, identity, event_id)


@router.get("/{event_id}/attendance", response_model=AttendanceStatus)
async def attendance_status(
    event_id: UUID,
    viewer: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await event_service.attendance_status(db, viewer, event_id)
