"""
SQLite implementation of Task repository.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import and_, or_, select, update as sql_update

from docket.core.exceptions import ConcurrencyError, NotFoundError
from docket.infrastructure.local.database import TaskORM, get_session_factory
from docket.interfaces.task_repository import ITaskRepository
from docket.models.enums import TERMINAL_STATUSES, PlacementSource, TaskStatus
from docket.models.task import Task, TaskCreate, TaskPlacementUpdate, TaskUpdate
from docket.utils.datetime_utils import now_utc

_TERMINAL_VALUES = [status.value for status in TERMINAL_STATUSES]


class SqliteTaskRepository(ITaskRepository):
    """SQLite implementation of task repository."""

    def __init__(self, session_factory=None):
        """
        Initialize repository.

        Args:
            session_factory: Optional session factory (for testing)
        """
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: TaskORM) -> Task:
        """Convert ORM object to Pydantic model."""
        return Task(
            id=UUID(orm.id),
            firm_id=orm.firm_id,
            assignee_id=orm.assignee_id,
            title=orm.title,
            description=orm.description,
            status=TaskStatus(orm.status),
            due_date=orm.due_date,
            estimated_hours=orm.estimated_hours or 0.0,
            logged_time=orm.logged_time or 0.0,
            scheduled_date=orm.scheduled_date,
            scheduled_start_time=orm.scheduled_start_time,
            placement_source=PlacementSource(orm.placement_source) if orm.placement_source else None,
            pinned=bool(orm.pinned),
            version=orm.version,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

    async def create(self, task: TaskCreate) -> Task:
        """Create a new task."""
        async with self._session_factory() as session:
            now = now_utc()
            orm = TaskORM(
                id=str(uuid4()),
                firm_id=task.firm_id,
                assignee_id=task.assignee_id,
                title=task.title,
                description=task.description,
                status=TaskStatus.PENDING.value,
                due_date=task.due_date,
                estimated_hours=task.estimated_hours,
                logged_time=task.logged_time,
                pinned=False,
                version=1,
                created_at=now,
                updated_at=now,
            )
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def get(self, task_id: UUID) -> Optional[Task]:
        """Get a task by ID."""
        async with self._session_factory() as session:
            result = await session.execute(select(TaskORM).where(TaskORM.id == str(task_id)))
            orm = result.scalar_one_or_none()
            return self._orm_to_model(orm) if orm else None

    async def list_scheduled(
        self,
        assignee_id: str,
        start_date: date,
        end_date: date,
    ) -> list[Task]:
        """List placed, non-terminal tasks of an assignee within a date range."""
        async with self._session_factory() as session:
            query = (
                select(TaskORM)
                .where(
                    and_(
                        TaskORM.assignee_id == assignee_id,
                        TaskORM.scheduled_date >= start_date,
                        TaskORM.scheduled_date <= end_date,
                        TaskORM.scheduled_start_time.is_not(None),
                        TaskORM.status.not_in(_TERMINAL_VALUES),
                    )
                )
                .order_by(TaskORM.scheduled_date, TaskORM.scheduled_start_time, TaskORM.id)
            )
            result = await session.execute(query)
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def list_for_assignee(
        self,
        assignee_id: str,
        start_date: date,
        end_date: date,
        include_closed: bool = False,
    ) -> list[Task]:
        """List tasks shown on an assignee's calendar for a date range."""
        async with self._session_factory() as session:
            query = select(TaskORM).where(
                and_(
                    TaskORM.assignee_id == assignee_id,
                    or_(
                        and_(
                            TaskORM.scheduled_date >= start_date,
                            TaskORM.scheduled_date <= end_date,
                        ),
                        and_(
                            TaskORM.scheduled_date.is_(None),
                            TaskORM.due_date >= start_date,
                            TaskORM.due_date <= end_date,
                        ),
                    ),
                )
            )
            if not include_closed:
                query = query.where(TaskORM.status.not_in(_TERMINAL_VALUES))

            query = query.order_by(TaskORM.due_date, TaskORM.created_at)
            result = await session.execute(query)
            return [self._orm_to_model(orm) for orm in result.scalars().all()]

    async def update(
        self,
        task_id: UUID,
        update: TaskUpdate,
        expected_version: int,
        placement: Optional[TaskPlacementUpdate] = None,
    ) -> Task:
        """Apply a user-facing edit, and optionally a placement, with one version check."""
        values: dict[str, Any] = {}
        for field, value in update.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            if hasattr(value, "value"):  # Enum
                value = value.value
            values[field] = value
        if placement is not None:
            values.update(self._placement_values(placement))
        return await self._versioned_update(task_id, values, expected_version)

    async def update_placement(
        self,
        task_id: UUID,
        placement: TaskPlacementUpdate,
        expected_version: int,
    ) -> Task:
        """Write placement and/or pin state with a version check."""
        return await self._versioned_update(task_id, self._placement_values(placement), expected_version)

    @staticmethod
    def _placement_values(placement: TaskPlacementUpdate) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for field, value in placement.model_dump(exclude_unset=True).items():
            if hasattr(value, "value"):  # Enum
                value = value.value
            values[field] = value
        if "scheduled_date" in values and values["scheduled_date"] is None:
            values["placement_source"] = None
        return values

    async def _versioned_update(
        self,
        task_id: UUID,
        values: dict[str, Any],
        expected_version: int,
    ) -> Task:
        """
        Conditional UPDATE ... WHERE version = expected_version.

        The version bump happens in the same statement as the data change,
        so two writers holding the same version cannot both succeed.
        """
        async with self._session_factory() as session:
            result = await session.execute(
                sql_update(TaskORM)
                .where(
                    and_(
                        TaskORM.id == str(task_id),
                        TaskORM.version == expected_version,
                    )
                )
                .values(**values, version=expected_version + 1, updated_at=now_utc())
                .execution_options(synchronize_session=False)
            )

            if result.rowcount == 0:
                await session.rollback()
                current = await session.execute(
                    select(TaskORM.version).where(TaskORM.id == str(task_id))
                )
                actual_version = current.scalar_one_or_none()
                if actual_version is None:
                    raise NotFoundError(f"Task {task_id} not found")
                raise ConcurrencyError(task_id, expected_version, actual_version)

            await session.commit()

            refreshed = await session.execute(
                select(TaskORM)
                .where(TaskORM.id == str(task_id))
                .execution_options(populate_existing=True)
            )
            return self._orm_to_model(refreshed.scalar_one())
