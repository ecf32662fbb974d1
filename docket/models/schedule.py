"""
Schedule models: computed day occupancy and scheduling outcomes.
"""

from datetime import date, time
from typing import Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, computed_field

from docket.models.enums import (
    OccupantKind,
    PlacementWarning,
    SchedulingFailureReason,
    ValidationReason,
)
from docket.models.task import Task
from docket.utils.datetime_utils import minutes_to_hours, minutes_to_time
from docket.utils.intervals import TimeInterval, first_gap, overlaps


class OccupiedInterval(BaseModel):
    """A span of a day already taken by a fixed event or a placed task."""

    start_minutes: int = Field(..., ge=0)
    end_minutes: int = Field(..., ge=0)
    kind: OccupantKind
    source_id: UUID
    title: str = ""

    @computed_field
    @property
    def start_time(self) -> time:
        return minutes_to_time(self.start_minutes)

    @computed_field
    @property
    def end_time(self) -> time:
        return minutes_to_time(self.end_minutes)

    def as_interval(self) -> TimeInterval:
        return TimeInterval(self.start_minutes, self.end_minutes)


class DaySchedule(BaseModel):
    """
    Occupancy of one assignee-day (computed, never persisted).

    Placed tasks draw down the daily task budget (capacity_minutes), fixed
    events draw down the open work-window time. Free capacity is the lesser
    of the two.
    """

    assignee_id: str
    date: date
    work_start_minutes: int
    work_end_minutes: int
    capacity_minutes: int
    intervals: list[OccupiedInterval] = Field(default_factory=list)
    task_minutes: int = 0
    event_minutes: int = Field(0, description="Event time inside the work window")
    open_minutes: int = Field(0, description="Work-window time not covered by any interval")
    events_available: bool = Field(
        True, description="False when the event source was unreachable and events were skipped"
    )

    @computed_field
    @property
    def free_minutes(self) -> int:
        return max(0, min(self.capacity_minutes - self.task_minutes, self.open_minutes))

    @computed_field
    @property
    def capacity_hours(self) -> float:
        return minutes_to_hours(self.capacity_minutes)

    @computed_field
    @property
    def free_hours(self) -> float:
        return minutes_to_hours(self.free_minutes)

    def find_slot(self, needed_minutes: int) -> Optional[int]:
        """
        Earliest start for an auto-placed block of `needed_minutes`.

        Both capacity and contiguity are required.
        """
        if needed_minutes <= 0 or self.free_minutes < needed_minutes:
            return None
        return first_gap(
            [interval.as_interval() for interval in self.intervals],
            self.work_start_minutes,
            self.work_end_minutes,
            needed_minutes,
        )

    def conflicts_with(self, start_minutes: int, duration_minutes: int) -> bool:
        """Check whether a block would overlap, overrun the window, or exceed capacity."""
        end_minutes = start_minutes + duration_minutes
        if end_minutes > self.work_end_minutes:
            return True
        if self.task_minutes + duration_minutes > self.capacity_minutes:
            return True
        return any(
            overlaps(start_minutes, end_minutes, interval.start_minutes, interval.end_minutes)
            for interval in self.intervals
        )


class PlacementResult(BaseModel):
    """Successful automatic placement."""

    failed: Literal[False] = False
    task_id: UUID
    scheduled_date: date
    scheduled_start_time: time
    days_searched: int = Field(0, ge=0, description="Days stepped back from the due date")


class SchedulingFailure(BaseModel):
    """Automatic placement found no slot. A business outcome, not an error."""

    failed: Literal[True] = True
    task_id: UUID
    reason: SchedulingFailureReason
    days_searched: int = Field(0, ge=0)


ScheduleOutcome = Union[PlacementResult, SchedulingFailure]


class PlacementValidation(BaseModel):
    """Verdict on a manual placement."""

    valid: bool
    reason: Optional[ValidationReason] = None
    warning: Optional[PlacementWarning] = None

    @classmethod
    def reject(cls, reason: ValidationReason) -> "PlacementValidation":
        return cls(valid=False, reason=reason)


class TaskScheduleResult(BaseModel):
    """Task state after a lifecycle operation, with the scheduling outcome if one ran."""

    task: Task
    outcome: Optional[ScheduleOutcome] = None


class RescheduleResult(BaseModel):
    """Outcome of a manual drag-and-drop move."""

    task: Task
    validation: PlacementValidation


class RescheduleRequest(BaseModel):
    scheduled_date: date
    scheduled_start_time: time
    expected_version: Optional[int] = Field(None, ge=1)


class PinRequest(BaseModel):
    pinned: bool
    expected_version: Optional[int] = Field(None, ge=1)


class CalendarView(BaseModel):
    """Assignee calendar over a date range."""

    assignee_id: str
    start_date: date
    end_date: date
    days: list[DaySchedule]
    tasks: list[Task]
