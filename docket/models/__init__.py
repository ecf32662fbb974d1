"""Pydantic models (schemas) for the application."""

from docket.models.enums import (
    EventKind,
    LifecycleStatus,
    PlacementSource,
    PlacementWarning,
    SchedulingFailureReason,
    TaskStatus,
    TaskVariant,
    ValidationReason,
)
from docket.models.event import Event, EventCreate
from docket.models.schedule import (
    CalendarView,
    DaySchedule,
    OccupiedInterval,
    PlacementResult,
    PlacementValidation,
    RescheduleResult,
    ScheduleOutcome,
    SchedulingFailure,
    TaskScheduleResult,
)
from docket.models.task import Task, TaskCreate, TaskPlacementUpdate, TaskUpdate, TaskUpdateRequest

__all__ = [
    # Enums
    "TaskStatus",
    "LifecycleStatus",
    "PlacementSource",
    "EventKind",
    "TaskVariant",
    "ValidationReason",
    "PlacementWarning",
    "SchedulingFailureReason",
    # Task
    "Task",
    "TaskCreate",
    "TaskUpdate",
    "TaskUpdateRequest",
    "TaskPlacementUpdate",
    # Event
    "Event",
    "EventCreate",
    # Schedule
    "OccupiedInterval",
    "DaySchedule",
    "PlacementResult",
    "SchedulingFailure",
    "ScheduleOutcome",
    "PlacementValidation",
    "TaskScheduleResult",
    "RescheduleResult",
    "CalendarView",
]
