"""
VibeCalendar — User preference encoder.

Turns raw calendar history into a PreferenceHistogram: weekday, time-slot
and category frequencies, the most frequent title keywords and the average
event length. The histogram is recomputed wholesale on every pass and
serialized as JSON for prompts and the backend.
"""

from __future__ import annotations

import calendar as _calendar
import json
import logging
from collections import Counter
from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from vibecal.core.features import TIME_SLOTS, WEEKDAY_LABELS, extract_keywords, time_slot
from vibecal.data.models import CalendarEvent
from vibecal.ports.calendar_port import CalendarError

if TYPE_CHECKING:
    from vibecal.ports.calendar_port import CalendarPort

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 60
TOP_KEYWORDS = 10
UNCATEGORIZED = "Other"


class PreferenceHistogram(BaseModel):
    """User tendencies in a shape a language model can read.

    JSON example:
    {
        "weekday_frequency": {"Mon": 5, "Tue": 3},
        "time_slot_preference": {"morning": 3, "afternoon": 5, "evening": 2, "night": 0},
        "category_distribution": {"Work": 10, "Private": 5},
        "frequent_keywords": ["standup", "gym"],
        "average_duration_minutes": 55,
        "total_events_count": 15,
        "free_time_slots": ["Sat-morning"],
        "last_updated": "2025-12-17T09:00:00"
    }
    """
    weekday_frequency: dict[str, int] = Field(default_factory=dict)
    time_slot_preference: dict[str, int] = Field(default_factory=dict)
    category_distribution: dict[str, int] = Field(default_factory=dict)
    frequent_keywords: list[str] = Field(default_factory=list)
    average_duration_minutes: int = DEFAULT_DURATION_MINUTES
    total_events_count: int = 0
    free_time_slots: list[str] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=datetime.now)


def empty_preferences(now: datetime | None = None) -> PreferenceHistogram:
    return PreferenceHistogram(last_updated=now or datetime.now())


def encode_events(events: list[CalendarEvent], now: datetime | None = None) -> PreferenceHistogram:
    """Aggregate events into a fresh PreferenceHistogram."""
    weekday_frequency: Counter[str] = Counter()
    slot_counts: dict[str, int] = {slot: 0 for slot in TIME_SLOTS}
    category_distribution: Counter[str] = Counter()
    keywords: Counter[str] = Counter()
    occupied: set[tuple[int, str]] = set()
    total_duration = 0

    for event in events:
        start = event.start
        weekday = start.weekday()
        slot = time_slot(start.hour)

        weekday_frequency[WEEKDAY_LABELS[weekday]] += 1
        slot_counts[slot] += 1
        occupied.add((weekday, slot))
        category_distribution[event.calendar or UNCATEGORIZED] += 1

        for word in extract_keywords(event.title):
            keywords[word] += 1

        total_duration += event.duration_minutes

    # most_common keeps first-seen order for equal counts
    top_keywords = [word for word, _ in keywords.most_common(TOP_KEYWORDS)]
    average = total_duration // len(events) if events else DEFAULT_DURATION_MINUTES

    free_slots: list[str] = []
    if events:
        free_slots = [
            f"{WEEKDAY_LABELS[weekday]}-{slot}"
            for weekday in range(7)
            for slot in TIME_SLOTS
            if (weekday, slot) not in occupied
        ]

    return PreferenceHistogram(
        weekday_frequency=dict(weekday_frequency),
        time_slot_preference=slot_counts,
        category_distribution=dict(category_distribution),
        frequent_keywords=top_keywords,
        average_duration_minutes=average,
        total_events_count=len(events),
        free_time_slots=free_slots,
        last_updated=now or datetime.now(),
    )


def _add_months(dt: datetime, months: int) -> datetime:
    """Shift by whole months, clamping the day to the target month's length."""
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, _calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


async def encode_preferences(
    calendar: CalendarPort, now: datetime | None = None,
) -> PreferenceHistogram:
    """Encode the events from one month before to one month after `now`."""
    now = now or datetime.now()
    start = _add_months(now, -1)
    end = _add_months(now, 1)

    try:
        events = await calendar.fetch_events(start, end)
    except CalendarError as exc:
        logger.error("Could not read calendar for preference encoding: %s", exc)
        return empty_preferences(now)

    preferences = encode_events(events, now=now)
    logger.info(
        "Encoded preferences from %d event(s), top keywords: %s",
        preferences.total_events_count, preferences.frequent_keywords[:3],
    )
    return preferences


def to_json(preferences: PreferenceHistogram) -> str:
    """Pretty, key-sorted JSON with ISO-8601 dates; "{}" if encoding fails."""
    try:
        return json.dumps(
            preferences.model_dump(mode="json"),
            indent=2,
            sort_keys=True,
            ensure_ascii=False,
        )
    except (TypeError, ValueError) as exc:
        logger.error("Failed to encode preferences: %s", exc)
        return "{}"
