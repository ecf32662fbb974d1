"""
SQLite implementation of the event source.

Besides the read contract used by the scheduler, it exposes create/delete so
fixed events can be maintained locally.
"""

from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import and_, select
from sqlalchemy.exc import OperationalError

from docket.core.exceptions import CollaboratorUnavailableError
from docket.infrastructure.local.database import EventORM, get_session_factory
from docket.interfaces.event_source import IEventSource
from docket.models.enums import EventKind
from docket.models.event import Event, EventCreate
from docket.utils.datetime_utils import now_utc


class SqliteEventRepository(IEventSource):
    """SQLite implementation of event source."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: EventORM) -> Event:
        return Event(
            id=UUID(orm.id),
            firm_id=orm.firm_id,
            assignee_id=orm.assignee_id,
            title=orm.title or "",
            kind=EventKind(orm.kind),
            date=orm.date,
            start_time=orm.start_time,
            duration_hours=orm.duration_hours,
            all_day=bool(orm.all_day),
            created_at=orm.created_at,
        )

    async def get_events(self, assignee_id: str, start_date: date, end_date: date) -> list[Event]:
        """Get an assignee's events for a date range."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(EventORM)
                    .where(
                        and_(
                            EventORM.assignee_id == assignee_id,
                            EventORM.date >= start_date,
                            EventORM.date <= end_date,
                        )
                    )
                    .order_by(EventORM.date, EventORM.start_time)
                )
                return [self._orm_to_model(orm) for orm in result.scalars().all()]
        except OperationalError as e:
            raise CollaboratorUnavailableError("Event store unavailable", details=str(e)) from e

    async def create(self, event: EventCreate) -> Event:
        """Create a fixed event."""
        async with self._session_factory() as session:
            orm = EventORM(
                id=str(uuid4()),
                firm_id=event.firm_id,
                assignee_id=event.assignee_id,
                title=event.title,
                kind=event.kind.value,
                date=event.date,
                start_time=event.start_time,
                duration_hours=event.duration_hours,
                all_day=event.all_day,
                created_at=now_utc(),
            )
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def get(self, event_id: UUID) -> Optional[Event]:
        async with self._session_factory() as session:
            orm = await session.get(EventORM, str(event_id))
            return self._orm_to_model(orm) if orm else None

    async def delete(self, event_id: UUID) -> bool:
        """Delete an event. Returns False if it did not exist."""
        async with self._session_factory() as session:
            orm = await session.get(EventORM, str(event_id))
            if not orm:
                return False
            await session.delete(orm)
            await session.commit()
            return True
