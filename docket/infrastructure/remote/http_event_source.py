"""
HTTP implementation of the event source.

Reads fixed events from an external calendar service:

    GET {base_url}/assignees/{assignee_id}/events?start=YYYY-MM-DD&end=YYYY-MM-DD

which returns a JSON array of events.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from docket.core.exceptions import CollaboratorUnavailableError
from docket.interfaces.event_source import IEventSource
from docket.models.event import Event


class HttpEventSource(IEventSource):
    """Event source backed by a remote calendar service."""

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not base_url:
            raise ValueError("EVENT_SOURCE_URL must be set for the http event source")
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def get_events(self, assignee_id: str, start_date: date, end_date: date) -> list[Event]:
        url = f"{self._base_url}/assignees/{assignee_id}/events"
        params = {"start": start_date.isoformat(), "end": end_date.isoformat()}
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            raise CollaboratorUnavailableError(
                f"Event source request failed: {e}",
                details={"url": url},
            ) from e
        except ValueError as e:
            raise CollaboratorUnavailableError("Event source returned invalid JSON", details={"url": url}) from e

        if not isinstance(payload, list):
            raise CollaboratorUnavailableError(
                "Event source returned an unexpected payload",
                details={"url": url},
            )
        try:
            events = [Event.model_validate(item) for item in payload]
        except PydanticValidationError as e:
            raise CollaboratorUnavailableError(
                "Event source returned malformed events",
                details={"url": url, "errors": e.errors()},
            ) from e

        events.sort(key=lambda event: (event.date, event.start_time))
        return events
