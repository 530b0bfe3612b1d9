"""
Event Service
Calendar events and attendance.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

import structlog
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from youthhub.core.identity import Identity
from youthhub.core.sanitize import sanitize_text
from youthhub.models.event import Event
from youthhub.repositories.event import attendance_repository, event_repository
from youthhub.schemas.event import AttendanceStatus, EventCreate, EventFilters, EventResponse, EventUpdate

logger = structlog.get_logger()


class EventService:
    async def get_event_or_404(self, db: AsyncSession, event_id: UUID) -> Event:
        event = await event_repository.get(db, id=event_id)
        if not event:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
        return event

    async def list_events(self, db: AsyncSession, filters: EventFilters) -> list[EventResponse]:
        events = await event_repository.filter_events(
            db, start=filters.start, end=filters.end, category=filters.category
        )
        return [EventResponse.model_validate(e) for e in events]

    async def get_event(self, db: AsyncSession, event_id: UUID) -> EventResponse:
        return EventResponse.model_validate(await self.get_event_or_404(db, event_id))

    async def create_event(self, db: AsyncSession, identity: Identity, data: EventCreate) -> EventResponse:
        payload = data.model_dump()
        payload["title"] = sanitize_text(payload["title"], field_name="title")
        if payload.get("description"):
            payload["description"] = sanitize_text(payload["description"], field_name="description")
        payload["author_id"] = UUID(identity.id)

        event = await event_repository.create(db, obj_in=payload)
        logger.info("Event created", event_id=str(event.id), author_id=identity.id, category=event.category)
        return EventResponse.model_validate(event)

    async def update_event(
        self, db: AsyncSession, identity: Identity, event_id: UUID, data: EventUpdate
    ) -> EventResponse:
        event = await self.get_event_or_404(db, event_id)
        updates = data.model_dump(exclude_unset=True, exclude_none=True)

        start = updates.get("start_date", event.start_date)
        end = updates.get("end_date", event.end_date)
        if end < start:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="end_date must not be before start_date")

        if "max_attendees" in updates and updates["max_attendees"] < (event.current_attendees or 0):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="max_attendees is below the current number of attendees",
            )

        for field in ("title", "description"):
            if field in updates:
                updates[field] = sanitize_text(updates[field], field_name=field)

        event = await event_repository.update(db, db_obj=event, obj_in=updates)
        logger.info("Event updated", event_id=str(event.id), editor_id=identity.id, fields=sorted(updates))
        return EventResponse.model_validate(event)

    async def delete_event(self, db: AsyncSession, identity: Identity, event_id: UUID) -> None:
        event = await self.get_event_or_404(db, event_id)
        await event_repository.remove(db, db_obj=event)
        logger.info("Event deleted", event_id=str(event_id), deleted_by=identity.id)

    async def toggle_attendance(self, db: AsyncSession, identity: Identity, event_id: UUID) -> AttendanceStatus:
        """Register or cancel attendance; registering fails once the event is full."""
        event = await event_repository.get_for_update(db, event_id)
        if not event:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")

        user_id = UUID(identity.id)
        existing = await attendance_repository.find(db, event_id=event_id, user_id=user_id)

        if existing:
            await attendance_repository.remove(db, db_obj=existing, commit=False)
            current = await event_repository.adjust_attendees(db, event_id, -1)
            attending = False
        else:
            if event.is_full:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Event is full")
            await attendance_repository.create(
                db, obj_in={"event_id": event_id, "user_id": user_id}, commit=False
            )
            current = await event_repository.adjust_attendees(db, event_id, 1)
            attending = True

        await db.commit()
        logger.info("Attendance toggled", event_id=str(event_id), user_id=identity.id, attending=attending)
        return AttendanceStatus(
            event_id=event_id,
            attending=attending,
            current_attendees=current,
            max_attendees=event.max_attendees,
        )

    async def attendance_status(
        self, db: AsyncSession, identity: Optional[Identity], event_id: UUID
    ) -> AttendanceStatus:
        event = await self.get_event_or_404(db, event_id)
        attending = False
        if identity is not None:
            attending = await attendance_repository.find(
                db, event_id=event_id, user_id=UUID(identity.id)
            ) is not None
        return AttendanceStatus(
            event_id=event_id,
            attending=attending,
            current_attendees=event.current_attendees or 0,
            max_attendees=event.max_attendees,
        )


event_service = EventService()
