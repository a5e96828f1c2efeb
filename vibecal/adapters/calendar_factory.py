"""Calendar adapter factory — creates the right adapter based on config."""

from __future__ import annotations

from vibecal.config import settings
from vibecal.ports.calendar_port import CalendarPort


def create_calendar_adapter() -> CalendarPort:
    """Return the calendar adapter matching the CALENDAR_PROVIDER setting."""
    provider = settings.CALENDAR_PROVIDER.lower()

    if provider == "local":
        from vibecal.adapters.local_calendar import LocalCalendarAdapter

        return LocalCalendarAdapter()

    if provider == "caldav":
        from vibecal.adapters.caldav_calendar import CalDAVCalendarAdapter

        return CalDAVCalendarAdapter()

    raise ValueError(f"Unknown CALENDAR_PROVIDER: {provider!r}")
