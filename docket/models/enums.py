"""
Enum definitions for the application.

These enums are used across models and provide type-safe status/reason values.
"""

from enum import Enum


class TaskStatus(str, Enum):
    """Business status of a task."""

    PENDING = "Pending"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED})


class LifecycleStatus(str, Enum):
    """
    Placement lifecycle of a task, derived once from its flags.

    Unscheduled -> Scheduled (auto) -> Rescheduled (manual drag) <-> Pinned
    -> Completed / Cancelled (terminal, leaves the scheduling pool)
    """

    UNSCHEDULED = "Unscheduled"
    SCHEDULED = "Scheduled"
    RESCHEDULED = "Rescheduled"
    PINNED = "Pinned"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class PlacementSource(str, Enum):
    """Who produced the current placement."""

    AUTO = "AUTO"
    MANUAL = "MANUAL"


class EventKind(str, Enum):
    """Kind of fixed calendar event."""

    MEETING = "MEETING"
    COURT_DATE = "COURT_DATE"
    BUSINESS_TRIP = "BUSINESS_TRIP"
    OTHER = "OTHER"


class OccupantKind(str, Enum):
    """What occupies an interval of a day schedule."""

    EVENT = "EVENT"
    TASK = "TASK"


class TaskVariant(str, Enum):
    """Visual deadline state of a task on the calendar."""

    ON_TRACK = "on-track"
    DUE_TODAY = "due-today"
    OVERDUE = "overdue"
    PAST_DUE_PLACEMENT = "past-due-placement"


class ValidationReason(str, Enum):
    """Why a manual placement was rejected."""

    PAST_DUE_DATE = "past-due-date"
    OUTSIDE_WORK_HOURS = "outside-work-hours"
    TASK_CLOSED = "task-closed"
    INVALID_DATE_RANGE = "invalid-date-range"


class PlacementWarning(str, Enum):
    """Soft conflict accepted on a manual placement."""

    CAPACITY_EXCEEDED = "capacity-exceeded"


class SchedulingFailureReason(str, Enum):
    """Why automatic placement produced no slot."""

    NO_CAPACITY_WITHIN_WINDOW = "no-capacity-within-window"
    TASK_PINNED = "task-pinned"
    TASK_CLOSED = "task-closed"
    NO_REMAINING_DURATION = "no-remaining-duration"
