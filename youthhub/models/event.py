"""
Calendar Models
Events and attendance
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
import enum

from youthhub.models.base import BaseModel


class EventCategory(str, enum.Enum):
    WORSHIP = "worship"
    MEETING = "meeting"
    EVENT = "event"
    SMALLGROUP = "smallgroup"


class Event(BaseModel):
    __tablename__ = "events"

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=False, index=True)
    end_date = Column(DateTime(timezone=True), nullable=False)
    location = Column(String(255), nullable=True)
    category = Column(String(20), nullable=False, default=EventCategory.EVENT.value, index=True)
    is_all_day = Column(Boolean, nullable=False, default=False)

    author_id = Column(UUID(as_uuid=True), ForeignKey("user_profiles.id"), nullable=False, index=True)

    # Capacity; None means unlimited
    max_attendees = Column(Integer, nullable=True)
    current_attendees = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_events_range", "start_date", "end_date"),
    )

    @property
    def is_full(self) -> bool:
        return self.max_attendees is not None and (self.current_attendees or 0) >= self.max_attendees


class EventAttendance(BaseModel):
    __tablename__ = "event_attendance"

    event_id = Column(UUID(as_uuid=True), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), ForeignKey("user_profiles.id"), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_attendance_user"),
    )
