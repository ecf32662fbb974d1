"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies that inject the correct
infrastructure implementations based on environment configuration.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from docket.core.config import get_settings
from docket.interfaces.event_source import IEventSource
from docket.interfaces.task_repository import ITaskRepository
from docket.infrastructure.local.event_repository import SqliteEventRepository
from docket.services.assignee_locks import AssigneeLockRegistry
from docket.services.conflict_detector import ConflictDetector
from docket.services.scheduling_orchestrator import SchedulingOrchestrator


# ===========================================
# Repository Dependencies
# ===========================================


@lru_cache()
def get_task_repository() -> ITaskRepository:
    """Get task repository instance."""
    from docket.infrastructure.local.task_repository import SqliteTaskRepository

    return SqliteTaskRepository()


@lru_cache()
def get_local_event_repository() -> SqliteEventRepository:
    """Get the local events table (used for event maintenance)."""
    return SqliteEventRepository()


@lru_cache()
def get_event_source() -> IEventSource:
    """Get the event source selected by EVENT_SOURCE."""
    settings = get_settings()
    if settings.EVENT_SOURCE == "http":
        from docket.infrastructure.remote.http_event_source import HttpEventSource

        return HttpEventSource(
            settings.EVENT_SOURCE_URL,
            timeout_seconds=settings.EVENT_SOURCE_TIMEOUT_SECONDS,
        )
    return get_local_event_repository()


# ===========================================
# Service Dependencies
# ===========================================


@lru_cache()
def get_lock_registry() -> AssigneeLockRegistry:
    """Process-wide per-assignee locks. Must be a singleton."""
    return AssigneeLockRegistry()


def get_conflict_detector(
    task_repo: Annotated[ITaskRepository, Depends(get_task_repository)],
    event_source: Annotated[IEventSource, Depends(get_event_source)],
) -> ConflictDetector:
    return ConflictDetector(task_repo, event_source)


def get_orchestrator(
    task_repo: Annotated[ITaskRepository, Depends(get_task_repository)],
    conflict_detector: Annotated[ConflictDetector, Depends(get_conflict_detector)],
    locks: Annotated[AssigneeLockRegistry, Depends(get_lock_registry)],
) -> SchedulingOrchestrator:
    return SchedulingOrchestrator(task_repo, conflict_detector, locks=locks)


# ===========================================
# Type Aliases for Dependency Injection
# ===========================================

TaskRepo = Annotated[ITaskRepository, Depends(get_task_repository)]
EventRepo = Annotated[SqliteEventRepository, Depends(get_local_event_repository)]
Conflicts = Annotated[ConflictDetector, Depends(get_conflict_detector)]
Orchestrator = Annotated[SchedulingOrchestrator, Depends(get_orchestrator)]
