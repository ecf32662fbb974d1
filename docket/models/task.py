"""
Task model definitions.

A task is a unit of work that may or may not currently occupy a calendar
slot. Placement fields are only written by the scheduling services.
"""

from datetime import date, datetime, time
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, computed_field, model_validator

from docket.core.config import get_settings
from docket.models.enums import (
    TERMINAL_STATUSES,
    LifecycleStatus,
    PlacementSource,
    TaskStatus,
    TaskVariant,
)
from docket.utils.datetime_utils import hours_to_minutes, minutes_to_time, now_utc, time_to_minutes


class TaskBase(BaseModel):
    """Base task fields shared across create/read."""

    title: str = Field(..., min_length=1, max_length=500, description="Task title")
    description: Optional[str] = Field(None, max_length=2000)
    firm_id: str = Field(..., min_length=1, description="Owning firm")
    assignee_id: str = Field(..., min_length=1, description="User whose calendar holds the task")
    due_date: date = Field(..., description="Deadline (inclusive)")
    estimated_hours: float = Field(0.0, ge=0, description="Estimated effort in hours")
    logged_time: float = Field(0.0, ge=0, description="Hours already recorded")


class TaskCreate(TaskBase):
    """Schema for creating a new task. New tasks always start unscheduled."""

    pass


class TaskUpdate(BaseModel):
    """Schema for user-facing task edits."""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = Field(None, max_length=2000)
    due_date: Optional[date] = None
    estimated_hours: Optional[float] = Field(None, ge=0)
    logged_time: Optional[float] = Field(None, ge=0)
    status: Optional[TaskStatus] = None


class TaskPlacementUpdate(BaseModel):
    """
    Placement/pin write issued by the scheduling services.

    Only explicitly set fields are written, and None is a real value here:
    setting both placement fields to None unschedules the task.
    """

    scheduled_date: Optional[date] = None
    scheduled_start_time: Optional[time] = None
    placement_source: Optional[PlacementSource] = None
    pinned: Optional[bool] = None

    @model_validator(mode="after")
    def validate_placement_pair(self):
        fields = self.model_fields_set
        if ("scheduled_date" in fields) != ("scheduled_start_time" in fields):
            raise ValueError("scheduled_date and scheduled_start_time must be written together")
        if (self.scheduled_date is None) != (self.scheduled_start_time is None):
            raise ValueError("scheduled_date and scheduled_start_time must both be set or both be null")
        return self


class Task(TaskBase):
    """Complete task model with all fields."""

    id: UUID
    status: TaskStatus = Field(TaskStatus.PENDING)
    scheduled_date: Optional[date] = None
    scheduled_start_time: Optional[time] = None
    placement_source: Optional[PlacementSource] = None
    pinned: bool = False
    version: int = Field(1, ge=1, description="Optimistic concurrency token")
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @model_validator(mode="after")
    def validate_placement(self):
        if (self.scheduled_date is None) != (self.scheduled_start_time is None):
            raise ValueError("scheduled_date and scheduled_start_time must both be set or both be null")
        return self

    @computed_field
    @property
    def remaining_duration(self) -> float:
        """Hours still to work: max(estimated - logged, 0)."""
        return max(self.estimated_hours - self.logged_time, 0.0)

    @property
    def remaining_minutes(self) -> int:
        return hours_to_minutes(self.remaining_duration)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def is_placed(self) -> bool:
        return self.scheduled_date is not None and self.scheduled_start_time is not None

    @computed_field
    @property
    def lifecycle_status(self) -> LifecycleStatus:
        if self.status == TaskStatus.COMPLETED:
            return LifecycleStatus.COMPLETED
        if self.status == TaskStatus.CANCELLED:
            return LifecycleStatus.CANCELLED
        if self.pinned:
            return LifecycleStatus.PINNED
        if not self.is_placed:
            return LifecycleStatus.UNSCHEDULED
        if self.placement_source == PlacementSource.MANUAL:
            return LifecycleStatus.RESCHEDULED
        return LifecycleStatus.SCHEDULED

    def end_time_within(self, day_end_hour: int) -> Optional[time]:
        """End of the placed block, capped at the end of the work window."""
        if self.scheduled_start_time is None:
            return None
        end_minutes = time_to_minutes(self.scheduled_start_time) + self.remaining_minutes
        return minutes_to_time(min(end_minutes, day_end_hour * 60))

    def variant_on(self, today: date) -> TaskVariant:
        """Deadline state for calendar display as of `today`."""
        if self.is_terminal:
            return TaskVariant.ON_TRACK
        if self.pinned and self.scheduled_date and self.scheduled_date > self.due_date:
            return TaskVariant.PAST_DUE_PLACEMENT
        if self.due_date < today:
            return TaskVariant.OVERDUE
        if self.due_date == today:
            return TaskVariant.DUE_TODAY
        return TaskVariant.ON_TRACK

    @computed_field
    @property
    def scheduled_end_time(self) -> Optional[time]:
        return self.end_time_within(get_settings().DAY_END_HOUR)

    @computed_field
    @property
    def variant(self) -> TaskVariant:
        return self.variant_on(now_utc().date())


class TaskUpdateRequest(TaskUpdate):
    """PATCH body: a task edit plus the version the client last read."""

    expected_version: Optional[int] = Field(None, ge=1)

    def to_update(self) -> TaskUpdate:
        return TaskUpdate.model_validate(
            self.model_dump(exclude_unset=True, exclude={"expected_version"})
        )
