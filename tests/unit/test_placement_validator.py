"""
Unit tests for PlacementValidator.
"""

from datetime import date, datetime, time, timezone
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from docket.models.enums import PlacementSource, PlacementWarning, TaskStatus, ValidationReason
from docket.models.event import Event
from docket.models.task import Task
from docket.services.conflict_detector import ConflictDetector
from docket.services.placement_validator import PlacementValidator

ASSIGNEE = "lawyer-1"
DUE = date(2026, 3, 10)
NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_task(**overrides) -> Task:
    fields = dict(
        id=uuid4(),
        firm_id="firm-1",
        assignee_id=ASSIGNEE,
        title="Review contract",
        due_date=DUE,
        estimated_hours=2.0,
        created_at=NOW,
        updated_at=NOW,
    )
    fields.update(overrides)
    return Task(**fields)


def make_validator(events=None, placed=None) -> PlacementValidator:
    task_repo = AsyncMock()
    task_repo.list_scheduled.return_value = placed or []
    event_source = AsyncMock()
    event_source.get_events.return_value = events or []
    detector = ConflictDetector(
        task_repo,
        event_source,
        day_start_hour=8,
        day_end_hour=18,
        daily_capacity_hours=8.0,
    )
    return PlacementValidator(detector, day_start_hour=8, day_end_hour=18)


@pytest.mark.asyncio
async def test_valid_placement_on_free_day():
    validator = make_validator()

    result = await validator.validate_placement(make_task(), DUE, time(9, 0))

    assert result.valid is True
    assert result.reason is None
    assert result.warning is None


@pytest.mark.asyncio
async def test_past_due_date_rejected():
    validator = make_validator()

    result = await validator.validate_placement(make_task(), date(2026, 3, 11), time(9, 0))

    assert result.valid is False
    assert result.reason == ValidationReason.PAST_DUE_DATE


@pytest.mark.asyncio
@pytest.mark.parametrize("start", [time(7, 59), time(18, 0), time(20, 30)])
async def test_outside_work_hours_rejected(start):
    validator = make_validator()

    result = await validator.validate_placement(make_task(), DUE, start)

    assert result.valid is False
    assert result.reason == ValidationReason.OUTSIDE_WORK_HOURS


@pytest.mark.asyncio
async def test_last_start_minute_is_inside_window():
    validator = make_validator()

    result = await validator.validate_placement(make_task(), DUE, time(17, 59))

    # Valid start, but the 2h block runs past 18:00
    assert result.valid is True
    assert result.warning == PlacementWarning.CAPACITY_EXCEEDED


@pytest.mark.asyncio
async def test_closed_task_rejected():
    validator = make_validator()

    result = await validator.validate_placement(make_task(status=TaskStatus.COMPLETED), DUE, time(9, 0))

    assert result.valid is False
    assert result.reason == ValidationReason.TASK_CLOSED


@pytest.mark.asyncio
async def test_overlap_with_event_is_soft_warning():
    event = Event(
        id=uuid4(),
        assignee_id=ASSIGNEE,
        title="Hearing",
        date=DUE,
        start_time=time(9, 0),
        duration_hours=2.0,
    )
    validator = make_validator(events=[event])

    result = await validator.validate_placement(make_task(), DUE, time(10, 0))

    assert result.valid is True
    assert result.warning == PlacementWarning.CAPACITY_EXCEEDED


@pytest.mark.asyncio
async def test_over_capacity_day_is_soft_warning():
    booked = make_task(
        estimated_hours=7.0,
        scheduled_date=DUE,
        scheduled_start_time=time(8, 0),
        placement_source=PlacementSource.AUTO,
    )
    validator = make_validator(placed=[booked])

    result = await validator.validate_placement(make_task(), DUE, time(15, 0))

    assert result.valid is True
    assert result.warning == PlacementWarning.CAPACITY_EXCEEDED


@pytest.mark.asyncio
async def test_task_does_not_conflict_with_its_own_slot():
    task = make_task(
        scheduled_date=DUE,
        scheduled_start_time=time(9, 0),
        placement_source=PlacementSource.AUTO,
    )
    validator = make_validator(placed=[task])

    result = await validator.validate_placement(task, DUE, time(10, 0))

    assert result.valid is True
    assert result.warning is None


@pytest.mark.asyncio
async def test_pinned_task_stays_pinned():
    task = make_task(pinned=True, scheduled_date=DUE, scheduled_start_time=time(9, 0))
    validator = make_validator()

    await validator.validate_placement(task, date(2026, 3, 9), time(9, 0))

    assert task.pinned is True
