"""
Calendar Schemas
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, model_validator

from youthhub.models.event import EventCategory
from youthhub.schemas.base import BaseResponseSchema, BaseSchema


class EventBase(BaseSchema):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    start_date: datetime
    end_date: datetime
    location: Optional[str] = Field(None, max_length=255)
    category: EventCategory = EventCategory.EVENT
    is_all_day: bool = False
    max_attendees: Optional[int] = Field(None, ge=1)


class EventCreate(EventBase):
    @model_validator(mode="after")
    def check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class EventUpdate(BaseSchema):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=255)
    category: Optional[EventCategory] = None
    is_all_day: Optional[bool] = None
    max_attendees: Optional[int] = Field(None, ge=1)


class EventFilters(BaseSchema):
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    category: Optional[EventCategory] = None


class EventResponse(BaseResponseSchema):
    title: str
    description: Optional[str] = None
    start_date: datetime
    end_date: datetime
    location: Optional[str] = None
    category: str
    is_all_day: bool
    author_id: UUID
    max_attendees: Optional[int] = None
    current_attendees: int = 0
    updated_at: Optional[datetime] = None


class AttendanceStatus(BaseSchema):
    event_id: UUID
    attending: bool
    current_attendees: int
    max_attendees: Optional[int] = None
