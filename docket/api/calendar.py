"""
Calendar API endpoints.

Read-only views of an assignee's occupancy.
"""

from datetime import date

from fastapi import APIRouter, HTTPException, Query, status

from docket.api.deps import Conflicts, Orchestrator
from docket.core.exceptions import ValidationError
from docket.models.schedule import CalendarView, DaySchedule

router = APIRouter()


@router.get("/{assignee_id}/days/{day}", response_model=DaySchedule)
async def get_day_schedule(assignee_id: str, day: date, conflicts: Conflicts):
    """Get occupied intervals and free capacity for one day."""
    return await conflicts.get_day_schedule(assignee_id, day)


@router.get("/{assignee_id}", response_model=CalendarView)
async def get_calendar(
    assignee_id: str,
    orchestrator: Orchestrator,
    start: date = Query(..., description="First date (inclusive)"),
    end: date = Query(..., description="Last date (inclusive)"),
):
    """Get day schedules and tasks for a date range."""
    try:
        return await orchestrator.get_calendar(assignee_id, start, end)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": e.message, "reason": e.reason},
        )
