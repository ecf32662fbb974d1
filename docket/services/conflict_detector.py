"""
Conflict detection: per-assignee, per-day occupancy and free capacity.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Optional
from uuid import UUID

from docket.core.config import get_settings
from docket.core.exceptions import CollaboratorUnavailableError, ValidationError
from docket.core.logger import setup_logger
from docket.interfaces.event_source import IEventSource
from docket.interfaces.task_repository import ITaskRepository
from docket.models.enums import OccupantKind, ValidationReason
from docket.models.event import Event
from docket.models.schedule import DaySchedule, OccupiedInterval
from docket.models.task import Task
from docket.utils.datetime_utils import MINUTES_PER_DAY, hours_to_minutes, iter_days, time_to_minutes
from docket.utils.intervals import (
    TimeInterval,
    clip_intervals,
    merge_intervals,
    subtract_intervals,
    total_minutes,
)

logger = setup_logger(__name__)


class ConflictDetector:
    """
    Builds DaySchedules from fixed events and already-placed tasks.

    Pure read: never writes to either collaborator.
    """

    def __init__(
        self,
        task_repo: ITaskRepository,
        event_source: IEventSource,
        day_start_hour: Optional[int] = None,
        day_end_hour: Optional[int] = None,
        daily_capacity_hours: Optional[float] = None,
    ):
        settings = get_settings()
        self._task_repo = task_repo
        self._event_source = event_source
        self.day_start_hour = settings.DAY_START_HOUR if day_start_hour is None else day_start_hour
        self.day_end_hour = settings.DAY_END_HOUR if day_end_hour is None else day_end_hour
        self.daily_capacity_hours = (
            settings.DAILY_CAPACITY_HOURS if daily_capacity_hours is None else daily_capacity_hours
        )
        if self.day_end_hour <= self.day_start_hour:
            raise ValueError("day_end_hour must be later than day_start_hour")

    async def get_day_schedule(
        self,
        assignee_id: str,
        day: date,
        exclude_task_id: Optional[UUID] = None,
    ) -> DaySchedule:
        """
        Get the occupancy of one assignee-day.

        Args:
            assignee_id: Calendar owner
            day: Calendar date
            exclude_task_id: Task being placed; its own current slot is ignored

        Returns:
            DaySchedule with sorted intervals and free capacity
        """
        schedules = await self.get_range(assignee_id, day, day, exclude_task_id=exclude_task_id)
        return schedules[0]

    async def get_range(
        self,
        assignee_id: str,
        start_date: date,
        end_date: date,
        exclude_task_id: Optional[UUID] = None,
    ) -> list[DaySchedule]:
        """Get one DaySchedule per date in [start_date, end_date]."""
        if end_date < start_date:
            raise ValidationError(
                f"end_date {end_date} is before start_date {start_date}",
                reason=ValidationReason.INVALID_DATE_RANGE.value,
            )

        events, events_available = await self._load_events(assignee_id, start_date, end_date)
        tasks = await self._task_repo.list_scheduled(assignee_id, start_date, end_date)

        events_by_day: dict[date, list[Event]] = defaultdict(list)
        for event in events:
            if event.assignee_id == assignee_id:
                events_by_day[event.date].append(event)

        tasks_by_day: dict[date, list[Task]] = defaultdict(list)
        for task in tasks:
            if task.id == exclude_task_id or task.is_terminal or not task.is_placed:
                continue
            tasks_by_day[task.scheduled_date].append(task)

        return [
            self.build_day_schedule(
                assignee_id,
                day,
                events_by_day.get(day, []),
                tasks_by_day.get(day, []),
                events_available=events_available,
            )
            for day in iter_days(start_date, end_date)
        ]

    def build_day_schedule(
        self,
        assignee_id: str,
        day: date,
        events: list[Event],
        tasks: list[Task],
        events_available: bool = True,
    ) -> DaySchedule:
        """Compute a DaySchedule from already-loaded events and tasks."""
        window_start = self.day_start_hour * 60
        window_end = self.day_end_hour * 60

        intervals: list[OccupiedInterval] = []
        for event in events:
            if event.end_minutes <= event.start_minutes:
                continue
            intervals.append(
                OccupiedInterval(
                    start_minutes=event.start_minutes,
                    end_minutes=event.end_minutes,
                    kind=OccupantKind.EVENT,
                    source_id=event.id,
                    title=event.title,
                )
            )

        task_minutes = 0
        for task in tasks:
            duration = task.remaining_minutes
            task_minutes += duration
            if duration <= 0:
                continue
            start = time_to_minutes(task.scheduled_start_time)
            intervals.append(
                OccupiedInterval(
                    start_minutes=start,
                    end_minutes=min(start + duration, MINUTES_PER_DAY),
                    kind=OccupantKind.TASK,
                    source_id=task.id,
                    title=task.title,
                )
            )

        intervals.sort(key=lambda i: (i.start_minutes, i.end_minutes, i.kind.value))

        # Events outside the window still block start times but do not
        # consume window time.
        event_window = clip_intervals(
            merge_intervals(i.as_interval() for i in intervals if i.kind == OccupantKind.EVENT),
            window_start,
            window_end,
        )
        open_window = subtract_intervals(
            [TimeInterval(window_start, window_end)],
            merge_intervals(i.as_interval() for i in intervals),
        )

        return DaySchedule(
            assignee_id=assignee_id,
            date=day,
            work_start_minutes=window_start,
            work_end_minutes=window_end,
            capacity_minutes=hours_to_minutes(self.daily_capacity_hours),
            intervals=intervals,
            task_minutes=task_minutes,
            event_minutes=total_minutes(event_window),
            open_minutes=total_minutes(open_window),
            events_available=events_available,
        )

    async def _load_events(
        self,
        assignee_id: str,
        start_date: date,
        end_date: date,
    ) -> tuple[list[Event], bool]:
        try:
            events = await self._event_source.get_events(assignee_id, start_date, end_date)
        except CollaboratorUnavailableError as e:
            logger.warning(
                f"Event source unavailable for {assignee_id} "
                f"({start_date}..{end_date}), scheduling without events: {e.message}"
            )
            return [], False
        return events, True
