"""
Event Repository
Calendar queries and attendance bookkeeping.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from youthhub.models.event import Event, EventAttendance
from youthhub.repositories.base import CRUDBase

logger = structlog.get_logger()


class EventRepository(CRUDBase[Event, Event, Event]):
    async def filter_events(
        self,
        db: AsyncSession,
        *,
        start: Optional[datetime],
        end: Optional[datetime],
        category: Optional[str],
    ) -> list[Event]:
        """Events overlapping [start, end], ordered by start date."""
        query = select(Event)

        if start is not None:
            query = query.where(Event.end_date >= start)
        if end is not None:
            query = query.where(Event.start_date <= end)
        if category:
            query = query.where(Event.category == category)

        result = await db.execute(query.order_by(Event.start_date.asc()))
        return list(result.scalars().all())

    async def get_for_update(self, db: AsyncSession, event_id: UUID) -> Optional[Event]:
        result = await db.execute(select(Event).where(Event.id == event_id).with_for_update())
        return result.scalar_one_or_none()

    async def adjust_attendees(self, db: AsyncSession, event_id: UUID, delta: int) -> int:
        result = await db.execute(
            update(Event)
            .where(Event.id == event_id)
            .values(current_attendees=func.greatest(Event.current_attendees + delta, 0))
            .returning(Event.current_attendees)
        )
        return result.scalar_one()


class AttendanceRepository(CRUDBase[EventAttendance, EventAttendance, EventAttendance]):
    async def find(self, db: AsyncSession, *, event_id: UUID, user_id: UUID) -> Optional[EventAttendance]:
        result = await db.execute(
            select(EventAttendance).where(
                EventAttendance.event_id == event_id,
                EventAttendance.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()


event_repository = EventRepository(Event)
attendance_repository = AttendanceRepository(EventAttendance)
