"""API routers."""

from docket.api import calendar, events, tasks

__all__ = [
    "tasks",
    "calendar",
    "events",
]
