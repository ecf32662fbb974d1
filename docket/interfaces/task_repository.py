"""
Task repository interface.

Defines the contract for task persistence operations.
Every mutation is guarded by the task's optimistic-concurrency version.
Implementations: SQLite
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from docket.models.task import Task, TaskCreate, TaskPlacementUpdate, TaskUpdate


class ITaskRepository(ABC):
    """Abstract interface for task persistence."""

    @abstractmethod
    async def create(self, task: TaskCreate) -> Task:
        """
        Create a new, unscheduled task.

        Args:
            task: Task creation data

        Returns:
            Created task with generated ID, version 1 and timestamps
        """
        pass

    @abstractmethod
    async def get(self, task_id: UUID) -> Optional[Task]:
        """
        Get a task by ID.

        Returns:
            Task if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_scheduled(
        self,
        assignee_id: str,
        start_date: date,
        end_date: date,
    ) -> list[Task]:
        """
        List placed, non-terminal tasks of an assignee.

        Args:
            assignee_id: Calendar owner
            start_date: First scheduled_date to include
            end_date: Last scheduled_date to include

        Returns:
            Tasks ordered by scheduled date and start time
        """
        pass

    @abstractmethod
    async def list_for_assignee(
        self,
        assignee_id: str,
        start_date: date,
        end_date: date,
        include_closed: bool = False,
    ) -> list[Task]:
        """
        List tasks shown on an assignee's calendar for a date range.

        Placed tasks are matched on scheduled_date, unscheduled ones on due_date.
        """
        pass

    @abstractmethod
    async def update(
        self,
        task_id: UUID,
        update: TaskUpdate,
        expected_version: int,
        placement: Optional[TaskPlacementUpdate] = None,
    ) -> Task:
        """
        Apply a user-facing edit.

        Args:
            task_id: Task ID to update
            update: Fields to update (unset fields are left alone)
            expected_version: Version the caller last read
            placement: Placement computed for the edited task, written in
                the same statement as the edit

        Returns:
            Updated task with version incremented

        Raises:
            NotFoundError: If task not found
            ConcurrencyError: If the stored version differs from expected_version
        """
        pass

    @abstractmethod
    async def update_placement(
        self,
        task_id: UUID,
        placement: TaskPlacementUpdate,
        expected_version: int,
    ) -> Task:
        """
        Write placement and/or pin state.

        Raises:
            NotFoundError: If task not found
            ConcurrencyError: If the stored version differs from expected_version
        """
        pass
