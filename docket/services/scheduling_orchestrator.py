"""
Task lifecycle orchestration.

Glues task mutations to the scheduler: every mutation that can move a task
on the calendar runs under the assignee's lock, and every write carries the
version the decision was based on.
"""

from datetime import date, time, timedelta
from typing import Optional
from uuid import UUID

from docket.core.config import get_settings
from docket.core.exceptions import (
    BusinessLogicError,
    ConcurrencyError,
    NotFoundError,
    ValidationError,
)
from docket.core.logger import setup_logger
from docket.interfaces.task_repository import ITaskRepository
from docket.models.enums import (
    TERMINAL_STATUSES,
    PlacementSource,
    ValidationReason,
)
from docket.models.schedule import (
    CalendarView,
    PlacementResult,
    RescheduleResult,
    ScheduleOutcome,
    TaskScheduleResult,
)
from docket.models.task import Task, TaskCreate, TaskPlacementUpdate, TaskUpdate
from docket.services.assignee_locks import AssigneeLockRegistry
from docket.services.conflict_detector import ConflictDetector
from docket.services.placement_validator import PlacementValidator
from docket.services.scheduling_engine import SchedulingEngine

logger = setup_logger(__name__)

MAX_CALENDAR_DAYS = 62

# Edits that change where a task can go.
_RESCHEDULE_FIELDS = ("due_date", "estimated_hours")


class SchedulingOrchestrator:
    """Entry point for task lifecycle operations."""

    def __init__(
        self,
        task_repo: ITaskRepository,
        conflict_detector: ConflictDetector,
        engine: Optional[SchedulingEngine] = None,
        validator: Optional[PlacementValidator] = None,
        locks: Optional[AssigneeLockRegistry] = None,
        stale_version_retries: Optional[int] = None,
    ):
        self._task_repo = task_repo
        self._conflicts = conflict_detector
        self._engine = engine or SchedulingEngine(conflict_detector)
        self._validator = validator or PlacementValidator(
            conflict_detector,
            day_start_hour=conflict_detector.day_start_hour,
            day_end_hour=conflict_detector.day_end_hour,
        )
        self._locks = locks or AssigneeLockRegistry()
        if stale_version_retries is None:
            stale_version_retries = get_settings().STALE_VERSION_RETRIES
        self.stale_version_retries = stale_version_retries

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_task(self, task_id: UUID) -> Task:
        task = await self._task_repo.get(task_id)
        if not task:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    async def get_calendar(self, assignee_id: str, start_date: date, end_date: date) -> CalendarView:
        """Day schedules and tasks of an assignee for a date range."""
        if end_date < start_date:
            raise ValidationError(
                f"end_date {end_date} is before start_date {start_date}",
                reason=ValidationReason.INVALID_DATE_RANGE.value,
            )
        if end_date - start_date >= timedelta(days=MAX_CALENDAR_DAYS):
            raise ValidationError(
                f"Calendar range is limited to {MAX_CALENDAR_DAYS} days",
                reason=ValidationReason.INVALID_DATE_RANGE.value,
            )
        days = await self._conflicts.get_range(assignee_id, start_date, end_date)
        tasks = await self._task_repo.list_for_assignee(assignee_id, start_date, end_date)
        return CalendarView(
            assignee_id=assignee_id,
            start_date=start_date,
            end_date=end_date,
            days=days,
            tasks=tasks,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def create_task(self, data: TaskCreate) -> TaskScheduleResult:
        """Persist a new task as Unscheduled, then place it."""
        task = await self._task_repo.create(data)
        logger.info(f"Created task {task.id} for assignee {task.assignee_id} (due {task.due_date})")
        async with self._locks.hold(task.assignee_id):
            task, outcome = await self._schedule_locked(task.id)
        return TaskScheduleResult(task=task, outcome=outcome)

    async def update_task(
        self,
        task_id: UUID,
        update: TaskUpdate,
        expected_version: Optional[int] = None,
    ) -> TaskScheduleResult:
        """
        Apply a user edit and re-place the task if its due date or estimate changed.

        The placement is computed against the edited task before anything is
        written, then the edit and the placement are stored in one versioned
        write. If placement raises, the task is left exactly as it was.
        Pinned and terminal tasks are never re-placed.

        Raises:
            NotFoundError: If task not found
            ConcurrencyError: If expected_version is stale
            BusinessLogicError: If a closed task would be reopened
        """
        assignee_id = (await self.get_task(task_id)).assignee_id
        async with self._locks.hold(assignee_id):
            attempt = 0
            while True:
                current = await self.get_task(task_id)
                if (
                    update.status is not None
                    and current.is_terminal
                    and update.status not in TERMINAL_STATUSES
                ):
                    raise BusinessLogicError(
                        f"Task {task_id} is {current.status.value} and cannot be reopened"
                    )
                self._check_version(current, expected_version)

                edited = self._apply_edit(current, update)
                outcome: Optional[ScheduleOutcome] = None
                placement: Optional[TaskPlacementUpdate] = None
                if self._needs_reschedule(current, edited):
                    outcome = await self._engine.schedule_task(edited)
                    placement = self._placement_for(edited, outcome)

                try:
                    updated = await self._task_repo.update(task_id, update, current.version, placement=placement)
                except ConcurrencyError:
                    if expected_version is not None or attempt >= self.stale_version_retries:
                        raise
                    attempt += 1
                    logger.warning(f"Stale version writing edit of task {task_id}, retrying ({attempt})")
                    continue
                return TaskScheduleResult(task=updated, outcome=outcome)

    async def schedule_task(self, task_id: UUID) -> TaskScheduleResult:
        """Explicitly (re)run automatic placement, e.g. after unpinning."""
        assignee_id = (await self.get_task(task_id)).assignee_id
        async with self._locks.hold(assignee_id):
            task, outcome = await self._schedule_locked(task_id)
        return TaskScheduleResult(task=task, outcome=outcome)

    async def reschedule_task(
        self,
        task_id: UUID,
        scheduled_date: date,
        scheduled_start_time: time,
        expected_version: Optional[int] = None,
    ) -> RescheduleResult:
        """
        Manually move a task (drag and drop).

        A rejected move leaves the task untouched, version included. An
        accepted move keeps the pin state.
        """
        assignee_id = (await self.get_task(task_id)).assignee_id
        async with self._locks.hold(assignee_id):
            task = await self.get_task(task_id)
            self._check_version(task, expected_version)

            validation = await self._validator.validate_placement(task, scheduled_date, scheduled_start_time)
            if not validation.valid:
                logger.info(f"Rejected manual placement of task {task_id}: {validation.reason.value}")
                return RescheduleResult(task=task, validation=validation)

            if (
                task.scheduled_date == scheduled_date
                and task.scheduled_start_time == scheduled_start_time
                and task.placement_source == PlacementSource.MANUAL
            ):
                return RescheduleResult(task=task, validation=validation)

            updated = await self._task_repo.update_placement(
                task_id,
                TaskPlacementUpdate(
                    scheduled_date=scheduled_date,
                    scheduled_start_time=scheduled_start_time,
                    placement_source=PlacementSource.MANUAL,
                ),
                task.version,
            )
            logger.info(f"Manually placed task {task_id} on {scheduled_date} at {scheduled_start_time}")
            return RescheduleResult(task=updated, validation=validation)

    async def set_pinned(
        self,
        task_id: UUID,
        pinned: bool,
        expected_version: Optional[int] = None,
    ) -> Task:
        """
        Pin or unpin a task.

        Pinning freezes the current placement as-is, including no placement:
        a pinned unscheduled task stays off the calendar until it is unpinned
        or dragged onto it. Unpinning does not re-place the task; call
        schedule_task for that.

        Raises:
            BusinessLogicError: If the task is closed
        """
        assignee_id = (await self.get_task(task_id)).assignee_id
        async with self._locks.hold(assignee_id):
            task = await self.get_task(task_id)
            self._check_version(task, expected_version)
            if task.is_terminal:
                raise BusinessLogicError(f"Task {task_id} is {task.status.value}; pin state is frozen")
            if task.pinned == pinned:
                return task

            updated = await self._task_repo.update_placement(
                task_id,
                TaskPlacementUpdate(pinned=pinned),
                task.version,
            )
            logger.info(f"Task {task_id} {'pinned' if pinned else 'unpinned'}")
            return updated

    # =========================================================================
    # Internals (caller holds the assignee lock)
    # =========================================================================

    @staticmethod
    def _check_version(task: Task, expected_version: Optional[int]) -> None:
        if expected_version is not None and expected_version != task.version:
            raise ConcurrencyError(task.id, expected_version, task.version)

    @staticmethod
    def _apply_edit(task: Task, update: TaskUpdate) -> Task:
        """In-memory copy of a task with a user edit applied, as the repository would store it."""
        changes = {
            field: value
            for field, value in update.model_dump(exclude_unset=True).items()
            if value is not None
        }
        return task.model_copy(update=changes)

    @staticmethod
    def _needs_reschedule(before: Task, after: Task) -> bool:
        if after.pinned or after.is_terminal:
            return False
        return any(getattr(before, field) != getattr(after, field) for field in _RESCHEDULE_FIELDS)

    async def _schedule_locked(self, task_id: UUID) -> tuple[Task, ScheduleOutcome]:
        """
        Compute and persist a placement.

        A write that loses a version race is recomputed from fresh state up
        to `stale_version_retries` times.
        """
        attempt = 0
        while True:
            task = await self.get_task(task_id)
            outcome = await self._engine.schedule_task(task)
            placement = self._placement_for(task, outcome)
            if placement is None:
                return task, outcome
            try:
                return await self._task_repo.update_placement(task.id, placement, task.version), outcome
            except ConcurrencyError:
                if attempt >= self.stale_version_retries:
                    raise
                attempt += 1
                logger.warning(f"Stale version writing placement for task {task_id}, retrying ({attempt})")

    def _placement_for(self, task: Task, outcome: ScheduleOutcome) -> Optional[TaskPlacementUpdate]:
        """Placement write implied by an outcome, or None when the stored placement stands."""
        if isinstance(outcome, PlacementResult):
            if (
                task.scheduled_date == outcome.scheduled_date
                and task.scheduled_start_time == outcome.scheduled_start_time
                and task.placement_source == PlacementSource.AUTO
            ):
                return None
            return TaskPlacementUpdate(
                scheduled_date=outcome.scheduled_date,
                scheduled_start_time=outcome.scheduled_start_time,
                placement_source=PlacementSource.AUTO,
            )

        if self._must_clear(task):
            logger.warning(
                f"Clearing placement of task {task.id} ({outcome.reason.value}): "
                f"{task.scheduled_date} is after due date {task.due_date}"
            )
            return TaskPlacementUpdate(scheduled_date=None, scheduled_start_time=None)
        return None

    @staticmethod
    def _must_clear(task: Task) -> bool:
        """A failed pass keeps the prior placement unless it now lies past the due date."""
        if task.pinned or task.is_terminal or not task.is_placed:
            return False
        return task.scheduled_date > task.due_date
