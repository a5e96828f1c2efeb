"""
VibeCalendar — Data Models.

Local records: calendar events as the calendar store sees them, and the
free-text memos that feed profile analysis.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

AI_GENERATED_MARKER = "[AI Generated]"


def with_ai_marker(notes: str | None) -> str:
    """Append the AI-generated marker to event notes."""
    return (notes or "") + "\n" + AI_GENERATED_MARKER


@dataclass
class CalendarEvent:
    """A calendar entry read from or written to the calendar store."""

    id: str
    title: str
    start: datetime
    end: datetime | None = None
    calendar: str | None = None     # calendar name, used as the category
    notes: str | None = None

    @property
    def is_ai_generated(self) -> bool:
        return AI_GENERATED_MARKER in (self.notes or "")

    @property
    def duration_minutes(self) -> int:
        if self.end is None:
            return 0
        return int((self.end - self.start).total_seconds() / 60)


@dataclass
class Memo:
    """A user note used as a profile-analysis source."""

    id: str
    content: str
    created_at: datetime = field(default_factory=datetime.now)
