"""
Automatic task placement with backward overflow.

A task is placed as late as possible: on its due date if there is room,
otherwise on the closest earlier day with room, up to a fixed lookback.
Within a day the block goes into the first contiguous gap from the start
of the work window.
"""

from datetime import timedelta
from typing import Optional

from docket.core.config import get_settings
from docket.core.logger import setup_logger
from docket.models.enums import SchedulingFailureReason
from docket.models.schedule import PlacementResult, ScheduleOutcome, SchedulingFailure
from docket.models.task import Task
from docket.services.conflict_detector import ConflictDetector
from docket.utils.datetime_utils import minutes_to_time

logger = setup_logger(__name__)


class SchedulingEngine:
    """Computes placements. Never persists; the orchestrator writes the result."""

    def __init__(
        self,
        conflict_detector: ConflictDetector,
        max_lookback_days: Optional[int] = None,
    ):
        self._conflicts = conflict_detector
        if max_lookback_days is None:
            max_lookback_days = get_settings().MAX_OVERFLOW_LOOKBACK_DAYS
        self.max_lookback_days = max_lookback_days

    def check_preconditions(self, task: Task) -> Optional[SchedulingFailureReason]:
        """Return the reason a task cannot be auto-placed, or None."""
        if task.is_terminal:
            return SchedulingFailureReason.TASK_CLOSED
        if task.pinned:
            return SchedulingFailureReason.TASK_PINNED
        if task.remaining_minutes <= 0:
            return SchedulingFailureReason.NO_REMAINING_DURATION
        return None

    async def schedule_task(self, task: Task) -> ScheduleOutcome:
        """
        Find a slot for a task.

        Days are checked from the due date backwards (D, D-1, ... D-lookback).
        The first day with both enough free capacity and a contiguous gap wins.
        The task's own current placement is ignored, so re-running on an
        unchanged calendar returns the same slot.

        Args:
            task: Task to place

        Returns:
            PlacementResult, or SchedulingFailure when preconditions fail or
            the lookback window is exhausted
        """
        reason = self.check_preconditions(task)
        if reason is not None:
            logger.info(f"Task {task.id} not auto-scheduled: {reason.value}")
            return SchedulingFailure(task_id=task.id, reason=reason, days_searched=0)

        needed = task.remaining_minutes
        earliest = task.due_date - timedelta(days=self.max_lookback_days)
        schedules = await self._conflicts.get_range(
            task.assignee_id,
            earliest,
            task.due_date,
            exclude_task_id=task.id,
        )

        for days_searched, day_schedule in enumerate(reversed(schedules)):
            start = day_schedule.find_slot(needed)
            if start is None:
                continue
            logger.info(
                f"Placed task {task.id} on {day_schedule.date} at {minutes_to_time(start)} "
                f"({needed} min, {days_searched} day(s) before due)"
            )
            return PlacementResult(
                task_id=task.id,
                scheduled_date=day_schedule.date,
                scheduled_start_time=minutes_to_time(start),
                days_searched=days_searched,
            )

        days_searched = self.max_lookback_days + 1
        logger.warning(
            f"No capacity for task {task.id} ({needed} min) between {earliest} and {task.due_date}"
        )
        return SchedulingFailure(
            task_id=task.id,
            reason=SchedulingFailureReason.NO_CAPACITY_WITHIN_WINDOW,
            days_searched=days_searched,
        )
