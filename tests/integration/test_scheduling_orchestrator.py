"""
Integration tests for SchedulingOrchestrator over the SQLite stack.
"""

import asyncio
from collections import defaultdict
from datetime import date, time, timedelta
from unittest.mock import AsyncMock

import pytest

from docket.core.exceptions import BusinessLogicError, CollaboratorUnavailableError, ConcurrencyError
from docket.infrastructure.local.event_repository import SqliteEventRepository
from docket.infrastructure.local.task_repository import SqliteTaskRepository
from docket.models.enums import (
    LifecycleStatus,
    OccupantKind,
    PlacementSource,
    PlacementWarning,
    SchedulingFailureReason,
    TaskStatus,
    ValidationReason,
)
from docket.models.event import EventCreate
from docket.models.schedule import PlacementResult, SchedulingFailure
from docket.models.task import TaskCreate, TaskUpdate
from docket.services.assignee_locks import AssigneeLockRegistry
from docket.services.conflict_detector import ConflictDetector
from docket.services.scheduling_engine import SchedulingEngine
from docket.services.scheduling_orchestrator import SchedulingOrchestrator
from docket.utils.datetime_utils import time_to_minutes

DUE = date(2026, 3, 10)


def build_orchestrator(task_repo, event_source, max_lookback_days: int = 14) -> SchedulingOrchestrator:
    detector = ConflictDetector(
        task_repo,
        event_source,
        day_start_hour=8,
        day_end_hour=18,
        daily_capacity_hours=8.0,
    )
    return SchedulingOrchestrator(
        task_repo,
        detector,
        engine=SchedulingEngine(detector, max_lookback_days=max_lookback_days),
        locks=AssigneeLockRegistry(timeout_seconds=5.0),
        stale_version_retries=1,
    )


@pytest.fixture
def task_repo(session_factory):
    return SqliteTaskRepository(session_factory=session_factory)


@pytest.fixture
def event_repo(session_factory):
    return SqliteEventRepository(session_factory=session_factory)


@pytest.fixture
def orchestrator(task_repo, event_repo):
    return build_orchestrator(task_repo, event_repo)


def new_task(assignee_id: str, hours: float = 3.0, due_date: date = DUE, **overrides) -> TaskCreate:
    fields = dict(
        title="Prepare pleading",
        firm_id="firm-1",
        assignee_id=assignee_id,
        due_date=due_date,
        estimated_hours=hours,
    )
    fields.update(overrides)
    return TaskCreate(**fields)


@pytest.mark.asyncio
async def test_create_places_on_due_date(orchestrator, test_assignee_id):
    result = await orchestrator.create_task(new_task(test_assignee_id, hours=3.0))

    assert isinstance(result.outcome, PlacementResult)
    assert result.task.scheduled_date == DUE
    assert result.task.scheduled_start_time == time(8, 0)
    assert result.task.placement_source == PlacementSource.AUTO
    assert result.task.lifecycle_status == LifecycleStatus.SCHEDULED
    assert result.task.version == 2


@pytest.mark.asyncio
async def test_create_after_morning_event(orchestrator, event_repo, test_assignee_id):
    await event_repo.create(
        EventCreate(
            assignee_id=test_assignee_id,
            title="Client meeting",
            date=DUE,
            start_time=time(8, 0),
            duration_hours=4.0,
        )
    )

    result = await orchestrator.create_task(new_task(test_assignee_id, hours=5.0))

    assert result.task.scheduled_date == DUE
    assert result.task.scheduled_start_time == time(12, 0)


@pytest.mark.asyncio
async def test_full_due_date_overflows_backwards(orchestrator, test_assignee_id):
    first = await orchestrator.create_task(new_task(test_assignee_id, hours=8.0))
    second = await orchestrator.create_task(new_task(test_assignee_id, hours=4.0))

    assert first.task.scheduled_date == DUE
    assert second.task.scheduled_date == DUE - timedelta(days=1)
    assert second.outcome.days_searched == 1


@pytest.mark.asyncio
async def test_drag_past_due_date_is_rejected_without_change(orchestrator, test_assignee_id):
    created = (await orchestrator.create_task(new_task(test_assignee_id))).task

    result = await orchestrator.reschedule_task(created.id, DUE + timedelta(days=1), time(9, 0))

    assert result.validation.valid is False
    assert result.validation.reason == ValidationReason.PAST_DUE_DATE
    stored = await orchestrator.get_task(created.id)
    assert stored.scheduled_date == created.scheduled_date
    assert stored.scheduled_start_time == created.scheduled_start_time
    assert stored.version == created.version


@pytest.mark.asyncio
async def test_accepted_drag_marks_manual_and_keeps_pin(orchestrator, test_assignee_id):
    created = (await orchestrator.create_task(new_task(test_assignee_id))).task
    pinned = await orchestrator.set_pinned(created.id, True)

    result = await orchestrator.reschedule_task(pinned.id, DUE - timedelta(days=2), time(14, 0))

    assert result.validation.valid is True
    assert result.task.scheduled_date == DUE - timedelta(days=2)
    assert result.task.scheduled_start_time == time(14, 0)
    assert result.task.placement_source == PlacementSource.MANUAL
    assert result.task.pinned is True

    unpinned = await orchestrator.set_pinned(created.id, False)
    assert unpinned.lifecycle_status == LifecycleStatus.RESCHEDULED


@pytest.mark.asyncio
async def test_drag_onto_busy_slot_warns(orchestrator, test_assignee_id):
    blocker = (await orchestrator.create_task(new_task(test_assignee_id, hours=2.0))).task
    mover = (await orchestrator.create_task(new_task(test_assignee_id, hours=2.0, due_date=DUE + timedelta(days=5)))).task

    result = await orchestrator.reschedule_task(mover.id, blocker.scheduled_date, time(9, 0))

    assert result.validation.valid is True
    assert result.validation.warning == PlacementWarning.CAPACITY_EXCEEDED
    assert result.task.scheduled_start_time == time(9, 0)


@pytest.mark.asyncio
async def test_pinned_task_survives_due_date_change(orchestrator, test_assignee_id):
    created = (await orchestrator.create_task(new_task(test_assignee_id))).task
    pinned = await orchestrator.set_pinned(created.id, True)

    result = await orchestrator.update_task(created.id, TaskUpdate(due_date=DUE - timedelta(days=3)))

    assert result.outcome is None
    assert result.task.scheduled_date == pinned.scheduled_date
    assert result.task.scheduled_start_time == pinned.scheduled_start_time
    assert result.task.pinned is True

    again = await orchestrator.schedule_task(created.id)
    assert isinstance(again.outcome, SchedulingFailure)
    assert again.outcome.reason == SchedulingFailureReason.TASK_PINNED
    assert again.task.scheduled_date == pinned.scheduled_date


@pytest.mark.asyncio
async def test_due_date_change_reschedules(orchestrator, test_assignee_id):
    created = (await orchestrator.create_task(new_task(test_assignee_id))).task

    result = await orchestrator.update_task(
        created.id,
        TaskUpdate(due_date=DUE - timedelta(days=2)),
        expected_version=created.version,
    )

    assert isinstance(result.outcome, PlacementResult)
    assert result.task.scheduled_date == DUE - timedelta(days=2)


@pytest.mark.asyncio
async def test_logged_time_change_does_not_reschedule(orchestrator, test_assignee_id):
    created = (await orchestrator.create_task(new_task(test_assignee_id))).task

    result = await orchestrator.update_task(created.id, TaskUpdate(logged_time=1.0))

    assert result.outcome is None
    assert result.task.scheduled_date == created.scheduled_date
    assert result.task.remaining_duration == 2.0


@pytest.mark.asyncio
async def test_failed_reschedule_clears_placement_past_due(task_repo, event_repo, test_assignee_id):
    orchestrator = build_orchestrator(task_repo, event_repo, max_lookback_days=0)
    blocker = (await orchestrator.create_task(new_task(test_assignee_id, hours=8.0, due_date=DUE - timedelta(days=1)))).task
    mover = (await orchestrator.create_task(new_task(test_assignee_id, hours=2.0))).task
    assert blocker.scheduled_date == DUE - timedelta(days=1)
    assert mover.scheduled_date == DUE

    result = await orchestrator.update_task(mover.id, TaskUpdate(due_date=DUE - timedelta(days=1)))

    assert isinstance(result.outcome, SchedulingFailure)
    assert result.outcome.reason == SchedulingFailureReason.NO_CAPACITY_WITHIN_WINDOW
    assert result.task.scheduled_date is None
    assert result.task.lifecycle_status == LifecycleStatus.UNSCHEDULED


@pytest.mark.asyncio
async def test_finished_task_placement_cleared_when_due_date_moves_before_it(orchestrator, test_assignee_id):
    created = (await orchestrator.create_task(new_task(test_assignee_id, hours=3.0))).task
    logged = await orchestrator.update_task(created.id, TaskUpdate(logged_time=3.0))
    assert logged.task.scheduled_date == DUE

    result = await orchestrator.update_task(created.id, TaskUpdate(due_date=DUE - timedelta(days=3)))

    assert isinstance(result.outcome, SchedulingFailure)
    assert result.outcome.reason == SchedulingFailureReason.NO_REMAINING_DURATION
    assert result.task.due_date == DUE - timedelta(days=3)
    assert result.task.scheduled_date is None
    assert result.task.scheduled_start_time is None
    assert result.task.version == logged.task.version + 1


@pytest.mark.asyncio
async def test_edit_is_not_stored_when_placement_raises(task_repo, test_assignee_id):
    event_source = AsyncMock()
    event_source.get_events.return_value = []
    orchestrator = build_orchestrator(task_repo, event_source)
    created = (await orchestrator.create_task(new_task(test_assignee_id))).task
    assert created.scheduled_date == DUE

    event_source.get_events.side_effect = RuntimeError("calendar client misconfigured")
    with pytest.raises(RuntimeError):
        await orchestrator.update_task(created.id, TaskUpdate(due_date=DUE - timedelta(days=3)))

    stored = await orchestrator.get_task(created.id)
    assert stored.due_date == DUE
    assert stored.scheduled_date == DUE
    assert stored.version == created.version


@pytest.mark.asyncio
async def test_edit_and_new_placement_share_one_version(orchestrator, test_assignee_id):
    created = (await orchestrator.create_task(new_task(test_assignee_id))).task

    result = await orchestrator.update_task(created.id, TaskUpdate(due_date=DUE - timedelta(days=2)))

    assert result.task.due_date == DUE - timedelta(days=2)
    assert result.task.scheduled_date == DUE - timedelta(days=2)
    assert result.task.version == created.version + 1


@pytest.mark.asyncio
async def test_failed_reschedule_keeps_valid_placement(task_repo, event_repo, test_assignee_id):
    orchestrator = build_orchestrator(task_repo, event_repo, max_lookback_days=0)
    created = (await orchestrator.create_task(new_task(test_assignee_id, hours=3.0))).task

    result = await orchestrator.update_task(created.id, TaskUpdate(estimated_hours=12.0))

    assert isinstance(result.outcome, SchedulingFailure)
    assert result.task.scheduled_date == created.scheduled_date


@pytest.mark.asyncio
async def test_schedule_is_idempotent(orchestrator, test_assignee_id):
    created = (await orchestrator.create_task(new_task(test_assignee_id))).task

    again = await orchestrator.schedule_task(created.id)

    assert again.task.scheduled_date == created.scheduled_date
    assert again.task.scheduled_start_time == created.scheduled_start_time
    assert again.task.version == created.version


@pytest.mark.asyncio
async def test_stale_caller_version_is_rejected(orchestrator, test_assignee_id):
    created = (await orchestrator.create_task(new_task(test_assignee_id))).task

    with pytest.raises(ConcurrencyError):
        await orchestrator.update_task(created.id, TaskUpdate(title="Late edit"), expected_version=1)

    with pytest.raises(ConcurrencyError):
        await orchestrator.reschedule_task(created.id, DUE, time(10, 0), expected_version=1)


@pytest.mark.asyncio
async def test_internal_write_retries_after_lost_race(session_factory, event_repo, test_assignee_id):
    class RacingRepository(SqliteTaskRepository):
        raced = False

        async def update_placement(self, task_id, placement, expected_version):
            if not self.raced:
                self.raced = True
                await self.update(task_id, TaskUpdate(title="Edited elsewhere"), expected_version)
            return await super().update_placement(task_id, placement, expected_version)

    repo = RacingRepository(session_factory=session_factory)
    orchestrator = build_orchestrator(repo, event_repo)

    result = await orchestrator.create_task(new_task(test_assignee_id))

    assert result.task.title == "Edited elsewhere"
    assert result.task.scheduled_date == DUE
    assert result.task.version == 3


@pytest.mark.asyncio
async def test_pin_rules(orchestrator, test_assignee_id):
    unplaceable = (await orchestrator.create_task(new_task(test_assignee_id, hours=0.0))).task
    assert unplaceable.scheduled_date is None

    pinned_empty = await orchestrator.set_pinned(unplaceable.id, True)
    assert pinned_empty.pinned is True
    assert pinned_empty.scheduled_date is None
    assert pinned_empty.lifecycle_status == LifecycleStatus.PINNED

    estimated = await orchestrator.update_task(unplaceable.id, TaskUpdate(estimated_hours=2.0))
    assert estimated.outcome is None
    assert estimated.task.scheduled_date is None
    refused = await orchestrator.schedule_task(unplaceable.id)
    assert refused.outcome.reason == SchedulingFailureReason.TASK_PINNED
    assert refused.task.scheduled_date is None

    await orchestrator.set_pinned(unplaceable.id, False)
    placed_later = await orchestrator.schedule_task(unplaceable.id)
    assert placed_later.task.scheduled_date == DUE

    placed = (await orchestrator.create_task(new_task(test_assignee_id))).task
    done = await orchestrator.update_task(placed.id, TaskUpdate(status=TaskStatus.COMPLETED))
    assert done.task.lifecycle_status == LifecycleStatus.COMPLETED
    with pytest.raises(BusinessLogicError):
        await orchestrator.set_pinned(placed.id, True)
    with pytest.raises(BusinessLogicError):
        await orchestrator.update_task(placed.id, TaskUpdate(status=TaskStatus.PENDING))


@pytest.mark.asyncio
async def test_closed_task_frees_its_slot(orchestrator, test_assignee_id):
    first = (await orchestrator.create_task(new_task(test_assignee_id, hours=8.0))).task
    await orchestrator.update_task(first.id, TaskUpdate(status=TaskStatus.CANCELLED))

    second = (await orchestrator.create_task(new_task(test_assignee_id, hours=4.0))).task

    assert second.scheduled_date == DUE
    assert second.scheduled_start_time == time(8, 0)


@pytest.mark.asyncio
async def test_event_source_outage_still_schedules(task_repo, test_assignee_id):
    event_source = AsyncMock()
    event_source.get_events.side_effect = CollaboratorUnavailableError("calendar down")
    orchestrator = build_orchestrator(task_repo, event_source)

    result = await orchestrator.create_task(new_task(test_assignee_id))

    assert result.task.scheduled_date == DUE
    assert result.task.scheduled_start_time == time(8, 0)


@pytest.mark.asyncio
async def test_concurrent_creates_never_double_book(orchestrator, test_assignee_id):
    results = await asyncio.gather(
        *(orchestrator.create_task(new_task(test_assignee_id, hours=3.0, title=f"Task {i}")) for i in range(5))
    )

    by_day = defaultdict(list)
    for result in results:
        task = result.task
        start = time_to_minutes(task.scheduled_start_time)
        by_day[task.scheduled_date].append((start, start + task.remaining_minutes))

    for blocks in by_day.values():
        blocks.sort()
        for (_, end), (next_start, _) in zip(blocks, blocks[1:]):
            assert end <= next_start
        assert sum(end - start for start, end in blocks) <= 8 * 60


@pytest.mark.asyncio
async def test_invariants_hold_across_many_tasks(orchestrator, event_repo, test_assignee_id):
    await event_repo.create(
        EventCreate(
            assignee_id=test_assignee_id,
            title="Court date",
            date=DUE - timedelta(days=1),
            start_time=time(9, 0),
            duration_hours=3.0,
        )
    )
    specs = [(2.5, 0), (4.0, 0), (1.0, 1), (6.0, 2), (3.5, 0), (2.0, 1), (5.0, 3), (0.5, 0)]
    for hours, offset in specs:
        await orchestrator.create_task(new_task(test_assignee_id, hours=hours, due_date=DUE + timedelta(days=offset)))

    view = await orchestrator.get_calendar(test_assignee_id, DUE - timedelta(days=14), DUE + timedelta(days=3))

    assert len(view.tasks) == len(specs)
    for task in view.tasks:
        assert task.scheduled_date is not None
        assert task.scheduled_date <= task.due_date
        assert 8 * 60 <= time_to_minutes(task.scheduled_start_time) < 18 * 60
    for day in view.days:
        assert day.task_minutes <= day.capacity_minutes
        task_blocks = [i for i in day.intervals if i.kind == OccupantKind.TASK]
        assert all(8 * 60 <= i.start_minutes and i.end_minutes <= 18 * 60 for i in task_blocks)
