"""
SQLite database configuration and ORM models.

This module defines the SQLAlchemy ORM models and database initialization.
"""

from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    Time,
)
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from docket.core.config import get_settings
from docket.utils.datetime_utils import now_utc


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


# ===========================================
# ORM Models
# ===========================================


class TaskORM(Base):
    """Task ORM model."""

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_assignee_scheduled", "assignee_id", "scheduled_date"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    firm_id = Column(String(255), nullable=False, index=True)
    assignee_id = Column(String(255), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default="Pending", index=True)
    due_date = Column(Date, nullable=False)
    estimated_hours = Column(Float, nullable=False, default=0.0)
    logged_time = Column(Float, nullable=False, default=0.0)

    # Placement
    scheduled_date = Column(Date, nullable=True)
    scheduled_start_time = Column(Time, nullable=True)
    placement_source = Column(String(10), nullable=True)
    pinned = Column(Boolean, nullable=False, default=False)

    # Optimistic concurrency token
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc)


class EventORM(Base):
    """Fixed calendar event ORM model."""

    __tablename__ = "events"
    __table_args__ = (
        Index("ix_events_assignee_date", "assignee_id", "date"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    firm_id = Column(String(255), nullable=True, index=True)
    assignee_id = Column(String(255), nullable=False)
    title = Column(String(500), nullable=False, default="")
    kind = Column(String(20), nullable=False, default="MEETING")
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    duration_hours = Column(Float, nullable=False)
    all_day = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)


# ===========================================
# Database Session Management
# ===========================================


def get_engine():
    """Get async engine instance."""
    settings = get_settings()
    return create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG)


def get_session_factory():
    """Get async session factory."""
    engine = get_engine()
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine=None):
    """Initialize database tables."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
