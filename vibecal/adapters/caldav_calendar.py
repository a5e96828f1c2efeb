"""CalDAV calendar adapter — implements CalendarPort for CalDAV servers.

Supports iCloud, Nextcloud, Fastmail, and any CalDAV-compliant server.
Uses the caldav library (sync) wrapped with asyncio.to_thread for async
compatibility. Reads span every calendar on the account; writes go to
the configured calendar unless one is named.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import date, datetime, time
from zoneinfo import ZoneInfo

import caldav
from caldav.lib import error as caldav_error
from icalendar import Calendar as iCalendar
from icalendar import Event as iEvent

from vibecal.config import settings
from vibecal.data.models import CalendarEvent, with_ai_marker
from vibecal.ports.calendar_port import CalendarError

logger = logging.getLogger(__name__)


def _get_calendars() -> list[caldav.Calendar]:
    """Connect to the CalDAV server and return every calendar on the account."""
    client = caldav.DAVClient(
        url=settings.CALDAV_URL,
        username=settings.CALDAV_USERNAME,
        password=settings.CALDAV_PASSWORD,
    )
    calendars = client.principal().calendars()
    if not calendars:
        raise CalendarError("No calendars found on the CalDAV server.")
    return calendars


def _select_calendar(calendars: list[caldav.Calendar], name: str | None) -> caldav.Calendar:
    """Pick the calendar called `name` (or the configured one, or the first)."""
    wanted = name or settings.CALDAV_CALENDAR_NAME
    if wanted:
        for cal in calendars:
            if cal.name == wanted:
                return cal
        raise CalendarError(
            f"Calendar '{wanted}' not found. "
            f"Available: {[c.name for c in calendars]}"
        )
    return calendars[0]


def _as_datetime(value: date | datetime) -> datetime:
    """Naive wall-clock time in the configured timezone; all-day dates start at midnight."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)
        return value
    return datetime.combine(value, time.min)


def _build_vevent(
    summary: str,
    description: str | None,
    start_dt: datetime,
    end_dt: datetime,
    uid: str | None = None,
) -> str:
    """Build an iCalendar VEVENT string."""
    cal = iCalendar()
    cal.add("prodid", "-//VibeCalendar//EN")
    cal.add("version", "2.0")

    event = iEvent()
    event.add("uid", uid or str(uuid.uuid4()))
    event.add("summary", summary)
    if description:
        event.add("description", description)
    event.add("dtstart", start_dt)
    event.add("dtend", end_dt)

    cal.add_component(event)
    return cal.to_ical().decode("utf-8")


def _parse_vevent(event_data: caldav.Event, calendar_name: str | None = None) -> CalendarEvent | None:
    """Parse a CalDAV event into a CalendarEvent, or None if unreadable."""
    try:
        cal = iCalendar.from_ical(event_data.data)
    except Exception as exc:
        logger.warning("Skipping unparseable CalDAV event: %s", exc)
        return None

    for component in cal.walk():
        if component.name != "VEVENT":
            continue
        dtstart = component.get("dtstart")
        if dtstart is None:
            return None
        dtend = component.get("dtend")
        description = component.get("description")
        return CalendarEvent(
            id=str(component.get("uid", "")),
            title=str(component.get("summary", "(no title)")),
            start=_as_datetime(dtstart.dt),
            end=_as_datetime(dtend.dt) if dtend else None,
            calendar=calendar_name,
            notes=str(description) if description is not None else None,
        )
    return None


def _find_event(calendars: list[caldav.Calendar], event_id: str) -> tuple[caldav.Calendar, caldav.Event] | None:
    """Locate an event object by UID across all calendars."""
    for cal in calendars:
        try:
            return cal, cal.event_by_uid(event_id)
        except caldav_error.NotFoundError:
            continue
    return None


class CalDAVCalendarAdapter:
    """CalDAV implementation of CalendarPort."""

    async def list_calendars(self) -> list[str]:
        try:
            calendars = await asyncio.to_thread(_get_calendars)
            return [cal.name for cal in calendars]
        except CalendarError:
            raise
        except Exception as exc:
            logger.error("CalDAV error (list_calendars): %s", exc)
            raise CalendarError(f"Failed to list calendars: {exc}") from exc

    async def fetch_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        try:
            calendars = await asyncio.to_thread(_get_calendars)
            events: list[CalendarEvent] = []
            for cal in calendars:
                results = await asyncio.to_thread(
                    cal.search, start=start, end=end, event=True, expand=True
                )
                for ev in results:
                    parsed = _parse_vevent(ev, cal.name)
                    if parsed is not None:
                        events.append(parsed)

            events.sort(key=lambda e: e.start.isoformat())
            logger.info(
                "Found %d CalDAV event(s) between %s and %s",
                len(events), start.isoformat(), end.isoformat(),
            )
            return events
        except CalendarError:
            raise
        except Exception as exc:
            logger.error("CalDAV error (fetch_events): %s", exc)
            raise CalendarError(f"Failed to fetch events: {exc}") from exc

    async def fetch_event(self, event_id: str) -> CalendarEvent | None:
        try:
            calendars = await asyncio.to_thread(_get_calendars)
            found = await asyncio.to_thread(_find_event, calendars, event_id)
            if found is None:
                return None
            cal, ev = found
            return _parse_vevent(ev, cal.name)
        except CalendarError:
            raise
        except Exception as exc:
            logger.error("CalDAV error (fetch_event): %s", exc)
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

        uid = str(uuid.uuid4())
        vcal = _build_vevent(summary=title, description=notes, start_dt=start, end_dt=end, uid=uid)

        try:
            calendars = await asyncio.to_thread(_get_calendars)
            cal = _select_calendar(calendars, calendar)
            await asyncio.to_thread(cal.save_event, vcal)
            logger.info("CalDAV event created: '%s' at %s", title, start.isoformat())
            return CalendarEvent(
                id=uid, title=title, start=start, end=end, calendar=cal.name, notes=notes,
            )
        except CalendarError:
            raise
        except Exception as exc:
            logger.error("CalDAV error (create_event): %s", exc)
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
        try:
            calendars = await asyncio.to_thread(_get_calendars)
            found = await asyncio.to_thread(_find_event, calendars, event_id)
            if found is None:
                raise CalendarError(f"Event with UID {event_id} not found.")
            cal, ev = found

            ical = iCalendar.from_ical(ev.data)
            for component in ical.walk():
                if component.name != "VEVENT":
                    continue
                if title is not None:
                    component.pop("summary", None)
                    component.add("summary", title)
                if notes is not None:
                    component.pop("description", None)
                    component.add("description", notes)
                if start is not None:
                    component["dtstart"].dt = start
                if end is not None and "dtend" in component:
                    component["dtend"].dt = end
                elif end is not None:
                    component.add("dtend", end)

            new_data = ical.to_ical().decode("utf-8")
            if calendar is not None and calendar != cal.name:
                # Moving between calendars: recreate in the target, drop the old copy
                target = _select_calendar(calendars, calendar)
                await asyncio.to_thread(target.save_event, new_data)
                await asyncio.to_thread(ev.delete)
                cal = target
                ev.data = new_data
            else:
                ev.data = new_data
                await asyncio.to_thread(ev.save)

            logger.info("CalDAV event %s updated", event_id)
            updated = _parse_vevent(ev, cal.name)
            if updated is None:
                raise CalendarError(f"Event {event_id} unreadable after update.")
            return updated
        except CalendarError:
            raise
        except Exception as exc:
            logger.error("CalDAV error (update_event): %s", exc)
            raise CalendarError(f"Failed to update event: {exc}") from exc

    async def delete_event(self, event_id: str) -> None:
        try:
            calendars = await asyncio.to_thread(_get_calendars)
            found = await asyncio.to_thread(_find_event, calendars, event_id)
            if found is None:
                raise CalendarError(f"Event with UID {event_id} not found.")
            _, ev = found
            await asyncio.to_thread(ev.delete)
            logger.info("CalDAV event %s deleted.", event_id)
        except CalendarError:
            raise
        except Exception as exc:
            logger.error("CalDAV error (delete_event): %s", exc)
            raise CalendarError(f"Failed to delete event: {exc}") from exc
