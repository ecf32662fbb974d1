"""
Tasks API endpoints.

Task lifecycle operations. Placement is always decided by the scheduler;
clients can only request a manual move or a pin change.
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from docket.api.deps import Orchestrator
from docket.core.exceptions import BusinessLogicError, NotFoundError
from docket.models.schedule import PinRequest, RescheduleResult, RescheduleRequest, TaskScheduleResult
from docket.models.task import Task, TaskCreate, TaskUpdateRequest

router = APIRouter()


@router.post("", response_model=TaskScheduleResult, status_code=status.HTTP_201_CREATED)
async def create_task(task: TaskCreate, orchestrator: Orchestrator):
    """Create a task and place it on the assignee's calendar."""
    return await orchestrator.create_task(task)


@router.get("/{task_id}", response_model=Task)
async def get_task(task_id: UUID, orchestrator: Orchestrator):
    """Get a task by ID."""
    try:
        return await orchestrator.get_task(task_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)


@router.patch("/{task_id}", response_model=TaskScheduleResult)
async def update_task(task_id: UUID, body: TaskUpdateRequest, orchestrator: Orchestrator):
    """Update a task. Due date or estimate changes re-place it."""
    try:
        return await orchestrator.update_task(
            task_id,
            body.to_update(),
            expected_version=body.expected_version,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except BusinessLogicError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


@router.post("/{task_id}/schedule", response_model=TaskScheduleResult)
async def schedule_task(task_id: UUID, orchestrator: Orchestrator):
    """
    Run automatic placement for a task.

    A task that cannot be placed is still a 200: the outcome carries
    `failed: true` and the reason.
    """
    try:
        return await orchestrator.schedule_task(task_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)


@router.post("/{task_id}/reschedule", response_model=RescheduleResult)
async def reschedule_task(task_id: UUID, body: RescheduleRequest, orchestrator: Orchestrator):
    """Manually move a task (drag and drop)."""
    try:
        result = await orchestrator.reschedule_task(
            task_id,
            body.scheduled_date,
            body.scheduled_start_time,
            expected_version=body.expected_version,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)

    if not result.validation.valid:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": "Placement rejected",
                "reason": result.validation.reason.value,
                "task_id": str(task_id),
                "version": result.task.version,
            },
        )
    return result


@router.put("/{task_id}/pin", response_model=Task)
async def set_pinned(task_id: UUID, body: PinRequest, orchestrator: Orchestrator):
    """Pin or unpin a task's current placement."""
    try:
        return await orchestrator.set_pinned(task_id, body.pinned, expected_version=body.expected_version)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    except BusinessLogicError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
