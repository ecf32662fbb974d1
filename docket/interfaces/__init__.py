"""Abstract interfaces for infrastructure abstraction."""

from docket.interfaces.event_source import IEventSource
from docket.interfaces.task_repository import ITaskRepository

__all__ = [
    "ITaskRepository",
    "IEventSource",
]
