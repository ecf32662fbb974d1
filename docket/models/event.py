"""
Fixed calendar event models.

Events (meetings, court dates, business trips) occupy an assignee's calendar
and are never written by the scheduler.
"""

from datetime import date, datetime, time
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from docket.models.enums import EventKind
from docket.utils.datetime_utils import MINUTES_PER_DAY, hours_to_minutes, time_to_minutes


class EventBase(BaseModel):
    """Base event fields shared across create/read."""

    firm_id: Optional[str] = Field(None, description="Owning firm")
    assignee_id: str = Field(..., min_length=1)
    title: str = Field("", max_length=500)
    kind: EventKind = Field(EventKind.MEETING)
    date: date
    start_time: time = Field(time(0, 0))
    duration_hours: float = Field(..., ge=0, le=24)
    all_day: bool = Field(False, description="Occupies the whole day (e.g. business trip)")

    @model_validator(mode="after")
    def validate_all_day(self):
        if self.all_day:
            self.start_time = time(0, 0)
            self.duration_hours = 24.0
        return self


class EventCreate(EventBase):
    """Schema for creating a fixed event."""

    pass


class Event(EventBase):
    """Complete event model."""

    id: UUID
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        # Events do not spill into the next day's schedule.
        return min(self.start_minutes + hours_to_minutes(self.duration_hours), MINUTES_PER_DAY)
