"""
Events API endpoints.

Maintenance of fixed events in the local events table. The scheduler only
reads events; these endpoints exist for deployments without an external
calendar service.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from docket.api.deps import EventRepo
from docket.models.event import Event, EventCreate

router = APIRouter()


@router.post("", response_model=Event, status_code=status.HTTP_201_CREATED)
async def create_event(event: EventCreate, repo: EventRepo):
    """Create a fixed event."""
    return await repo.create(event)


@router.get("", response_model=list[Event])
async def list_events(
    repo: EventRepo,
    assignee_id: str = Query(...),
    start: date = Query(...),
    end: date = Query(...),
):
    """List an assignee's events for a date range."""
    if end < start:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="end must not be before start",
        )
    return await repo.get_events(assignee_id, start, end)


@router.get("/{event_id}", response_model=Event)
async def get_event(event_id: UUID, repo: EventRepo):
    """Get a fixed event by ID."""
    event = await repo.get(event_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {event_id} not found",
        )
    return event


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(event_id: UUID, repo: EventRepo):
    """Delete a fixed event."""
    deleted = await repo.delete(event_id)
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Event {event_id} not found",
        )
