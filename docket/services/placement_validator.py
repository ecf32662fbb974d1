"""
Validation of manual (drag-and-drop) placements.
"""

from datetime import date, time
from typing import Optional

from docket.core.config import get_settings
from docket.core.logger import setup_logger
from docket.models.enums import PlacementWarning, ValidationReason
from docket.models.schedule import PlacementValidation
from docket.models.task import Task
from docket.services.conflict_detector import ConflictDetector
from docket.utils.datetime_utils import time_to_minutes

logger = setup_logger(__name__)


class PlacementValidator:
    """
    Hard and soft checks for a proposed placement.

    Hard failures reject the move. Overlaps, over-capacity days and blocks
    running past the end of the work window are accepted with a warning.
    """

    def __init__(
        self,
        conflict_detector: ConflictDetector,
        day_start_hour: Optional[int] = None,
        day_end_hour: Optional[int] = None,
    ):
        settings = get_settings()
        self._conflicts = conflict_detector
        self.day_start_hour = settings.DAY_START_HOUR if day_start_hour is None else day_start_hour
        self.day_end_hour = settings.DAY_END_HOUR if day_end_hour is None else day_end_hour

    def check_hard_rules(
        self,
        task: Task,
        scheduled_date: date,
        scheduled_start_time: time,
    ) -> Optional[ValidationReason]:
        if task.is_terminal:
            return ValidationReason.TASK_CLOSED
        if scheduled_date > task.due_date:
            return ValidationReason.PAST_DUE_DATE
        start = time_to_minutes(scheduled_start_time)
        if not (self.day_start_hour * 60 <= start < self.day_end_hour * 60):
            return ValidationReason.OUTSIDE_WORK_HOURS
        return None

    async def validate_placement(
        self,
        task: Task,
        scheduled_date: date,
        scheduled_start_time: time,
    ) -> PlacementValidation:
        """
        Validate a manual placement. Never changes the task (pin state included).

        Returns:
            PlacementValidation with a reason when rejected, or a warning when
            accepted over a conflict
        """
        reason = self.check_hard_rules(task, scheduled_date, scheduled_start_time)
        if reason is not None:
            return PlacementValidation.reject(reason)

        day_schedule = await self._conflicts.get_day_schedule(
            task.assignee_id,
            scheduled_date,
            exclude_task_id=task.id,
        )
        if day_schedule.conflicts_with(time_to_minutes(scheduled_start_time), task.remaining_minutes):
            logger.warning(
                f"Manual placement of task {task.id} on {scheduled_date} at "
                f"{scheduled_start_time} conflicts with existing commitments"
            )
            return PlacementValidation(valid=True, warning=PlacementWarning.CAPACITY_EXCEEDED)

        return PlacementValidation(valid=True)
