"""
Event source interface.

Read-only access to fixed calendar events. Implementations: SQLite, HTTP
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from docket.models.event import Event


class IEventSource(ABC):
    """Abstract interface for fixed calendar events."""

    @abstractmethod
    async def get_events(self, assignee_id: str, start_date: date, end_date: date) -> list[Event]:
        """
        Get an assignee's events for a date range.

        Args:
            assignee_id: Calendar owner
            start_date: First date (inclusive)
            end_date: Last date (inclusive)

        Returns:
            Events ordered by date and start time

        Raises:
            CollaboratorUnavailableError: If the source cannot be reached
        """
        pass
