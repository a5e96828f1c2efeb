"""Calendar port — abstract interface for calendar operations.

Core modules depend on this protocol, never on a specific provider.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from vibecal.data.models import CalendarEvent


class CalendarError(Exception):
    """Raised when any calendar provider operation fails."""


class CalendarPort(Protocol):
    """Abstract calendar interface used by core modules."""

    async def list_calendars(self) -> list[str]: ...

    async def fetch_events(
        self, start: datetime, end: datetime
    ) -> list[CalendarEvent]: ...

    async def fetch_event(self, event_id: str) -> CalendarEvent | None: ...

    async def create_event(
        self,
        title: str,
        start: datetime,
        end: datetime,
        calendar: str | None = None,
        notes: str | None = None,
        is_ai_generated: bool = False,
    ) -> CalendarEvent: ...

    async def update_event(
        self,
        event_id: str,
        title: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        calendar: str | None = None,
        notes: str | None = None,
    ) -> CalendarEvent: ...

    async def delete_event(self, event_id: str) -> None: ...
