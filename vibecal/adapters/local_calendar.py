"""Local calendar adapter — implements CalendarPort on top of EventDB.

Used when no CalDAV server is configured. SQLite calls are cheap and run
inline.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import replace
from datetime import datetime

from vibecal.data.db import EventDB
from vibecal.data.models import CalendarEvent, with_ai_marker
from vibecal.ports.calendar_port import CalendarError

logger = logging.getLogger(__name__)


class LocalCalendarAdapter:
    """SQLite implementation of CalendarPort."""

    def __init__(self, db: EventDB | None = None, default_calendar: str | None = None) -> None:
        if default_calendar is None:
            from vibecal.config import settings
            default_calendar = settings.DEFAULT_CALENDAR_NAME
        self._db = db or EventDB()
        self._default_calendar = default_calendar

    async def list_calendars(self) -> list[str]:
        names = self._db.list_calendars()
        if self._default_calendar not in names:
            names.insert(0, self._default_calendar)
        return names

    async def fetch_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        try:
            return self._db.list_events(start, end)
        except sqlite3.Error as exc:
            logger.error("Local calendar error (fetch_events): %s", exc)
            raise CalendarError(f"Failed to fetch events: {exc}") from exc

    async def fetch_event(self, event_id: str) -> CalendarEvent | None:
        try:
            return self._db.get_event(event_id)
        except sqlite3.Error as exc:
            logger.error("Local calendar error (fetch_event): %s", exc)
            raise CalendarError(f"Failed to fetch event: {exc}") from exc

    async def create_event(
        self,
        title: str,
        start: datetime,
        end: datetime,
        calendar: str | None = None,
        notes: str | None = None,
        is_ai_generated: bool = False,
    ) -> CalendarEvent:
        if is_ai_generated:
            notes = with_ai_marker(notes)
        try:
            return self._db.add_event(
                title=title,
                start=start,
                end=end,
                calendar=calendar or self._default_calendar,
                notes=notes,
            )
        except sqlite3.Error as exc:
            logger.error("Local calendar error (create_event): %s", exc)
            raise CalendarError(f"Failed to create event: {exc}") from exc

    async def update_event(
        self,
        event_id: str,
        title: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        calendar: str | None = None,
        notes: str | None = None,
    ) -> CalendarEvent:
        existing = await self.fetch_event(event_id)
        if existing is None:
            raise CalendarError(f"Event {event_id} not found.")

        changes = {
            key: value
            for key, value in {
                "title": title, "start": start, "end": end,
                "calendar": calendar, "notes": notes,
            }.items()
            if value is not None
        }
        updated = replace(existing, **changes)
        try:
            self._db.update_event(updated)
        except (sqlite3.Error, ValueError) as exc:
            logger.error("Local calendar error (update_event): %s", exc)
            raise CalendarError(f"Failed to update event: {exc}") from exc
        return updated

    async def delete_event(self, event_id: str) -> None:
        try:
            deleted = self._db.delete_event(event_id)
        except sqlite3.Error as exc:
            logger.error("Local calendar error (delete_event): %s", exc)
            raise CalendarError(f"Failed to delete event: {exc}") from exc
        if not deleted:
            raise CalendarError(f"Event {event_id} not found.")
