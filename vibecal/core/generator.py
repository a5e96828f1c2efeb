"""
VibeCalendar — Event generator.

Combines the classifier's category guess with the user profile into a
prompt, asks the language model for one concrete event and parses the
JSON reply. Whenever the model is unavailable or answers with something
unusable, a rule-based event for the time of day is returned instead, so
generation never comes back empty-handed.

Also hosts the preference-driven schedule suggestion (polite and forced
variants) and the anonymized timeline post wording.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vibecal.core import prompts
from vibecal.core.llm import complete, extract_json_object
from vibecal.data.models import CalendarEvent

if TYPE_CHECKING:
    from vibecal.core.classifier import EventPredictor
    from vibecal.core.profile import ProfileStore

logger = logging.getLogger(__name__)

UNKNOWN_CATEGORY = "Unknown"
FALLBACK_SUFFIX = "(Auto-generated fallback)"
MAX_POST_LENGTH = 50

_SYSTEM_PROMPT = "You plan calendar events for the user. Reply with JSON only."
_POST_SYSTEM_PROMPT = "You write short, anonymous social media posts."
_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")
_CLOCK = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")

_POST_EMOJI = {
    "work": "💼",
    "hobby": "🎨",
    "rest": "😴",
    "private": "🏠",
}
_DEFAULT_POST_EMOJI = "✨"


# ---------------------------------------------------------------------------
# Generated event
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GeneratedEvent:
    """One event proposed for the calendar, with a wall-clock window."""

    title: str
    category: str
    notes: str
    start_hour: int
    start_minute: int
    end_hour: int
    end_minute: int
    color_hex: str | None = None

    @property
    def duration(self) -> timedelta:
        """End minus start; an end at or before the start runs past midnight."""
        start = self.start_hour * 60 + self.start_minute
        end = self.end_hour * 60 + self.end_minute
        minutes = (end - start) % (24 * 60)
        return timedelta(minutes=minutes or 24 * 60)

    def window(self, day: date) -> tuple[datetime, datetime]:
        start = datetime.combine(day, time(self.start_hour, self.start_minute))
        return start, start + self.duration


class LLMEventResponse(BaseModel):
    """The JSON object the model is asked to return.

    JSON example:
    {
        "title": "Jazz café evening",
        "category": "a dim jazz café with warm lamps",
        "colorHex": "#8B5A2B",
        "startHour": 19,
        "startMinute": 0,
        "endHour": 21,
        "endMinute": 30,
        "description": "Unwinding with a live trio and a hand-drip coffee."
    }
    """
    model_config = ConfigDict(populate_by_name=True)

    title: str
    category: str
    color_hex: str | None = Field(default=None, alias="colorHex")
    start_hour: int = Field(alias="startHour", ge=0, le=23)
    start_minute: int = Field(default=0, alias="startMinute", ge=0, le=59)
    end_hour: int = Field(alias="endHour", ge=0, le=23)
    end_minute: int = Field(default=0, alias="endMinute", ge=0, le=59)
    description: str = ""

    @field_validator("color_hex", mode="before")
    @classmethod
    def drop_invalid_color(cls, v: object) -> str | None:
        if isinstance(v, str) and _HEX_COLOR.match(v.strip()):
            return v.strip()
        return None

    def to_event(self) -> GeneratedEvent:
        return GeneratedEvent(
            title=self.title,
            category=self.category,
            notes=self.description,
            start_hour=self.start_hour,
            start_minute=self.start_minute,
            end_hour=self.end_hour,
            end_minute=self.end_minute,
            color_hex=self.color_hex,
        )


def fallback_event(when: datetime, category: str) -> GeneratedEvent:
    """Rule-based event for the given moment, used when the model fails."""
    hour = when.hour
    if when.weekday() >= 5:
        if hour < 12:
            title, description, hours, color = (
                "Relaxing at a café",
                "Slow coffee at a neighborhood café to shake off the week.",
                2, "#E6D5B8",
            )
        elif hour < 18:
            title, description, hours, color = (
                "Shopping",
                "Browsing the shops you have been curious about for something new.",
                3, "#FFCC33",
            )
        else:
            title, description, hours, color = (
                "Movie night",
                "Watching that movie you have been meaning to see, at home.",
                2, "#333366",
            )
    elif hour >= 18:
        title, description, hours, color = (
            "Gym workout",
            "A light sweat after work to reset.",
            1, "#FF6666",
        )
    else:
        title, description, hours, color = (
            "Focus session",
            "Knocking out tasks with full focus at a café or library.",
            2, "#6699CC",
        )

    return GeneratedEvent(
        title=title,
        category=category,
        notes=f"{description} {FALLBACK_SUFFIX}",
        start_hour=hour,
        start_minute=0,
        end_hour=(hour + hours) % 24,
        end_minute=0,
        color_hex=color,
    )


async def generate_event(
    when: datetime, predictor: EventPredictor, profile_store: ProfileStore,
) -> GeneratedEvent:
    """Generate one event for `when`; falls back to rules on any failure."""
    category = predictor.predict_category(when) or UNKNOWN_CATEGORY
    logger.debug("Predicted category for %s: %s", when.isoformat(), category)

    try:
        profile = profile_store.load()
        prompt = prompts.event_generation_prompt(when, category, profile)
        raw = await complete(_SYSTEM_PROMPT, prompt, max_tokens=512)
        event = LLMEventResponse.model_validate(extract_json_object(raw)).to_event()
    except Exception as exc:
        logger.warning("Event generation failed (%s); using rule-based fallback.", exc)
        return fallback_event(when, category)

    logger.info("Generated event '%s' (%s)", event.title, event.category)
    return event


# ---------------------------------------------------------------------------
# Schedule suggestion
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GeneratedSchedule:
    title: str
    category: str
    start_time: datetime
    end_time: datetime
    reason: str = ""
    overwrite_reason: str = ""


class _ScheduleResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    category: str = ""
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    reason: str = ""
    overwrite_reason: str = Field(default="", alias="overwriteReason")


def _parse_clock(value: str, day: date) -> datetime:
    match = _CLOCK.match(value)
    if not match:
        raise ValueError(f"Invalid time {value!r}")
    return datetime.combine(day, time(int(match.group(1)), int(match.group(2))))


def _to_schedule(raw: str, target_date: date) -> GeneratedSchedule:
    parsed = _ScheduleResponse.model_validate(extract_json_object(raw))
    start = _parse_clock(parsed.start_time, target_date)
    end = _parse_clock(parsed.end_time, target_date)
    if end <= start:
        end += timedelta(days=1)
    return GeneratedSchedule(
        title=parsed.title,
        category=parsed.category,
        start_time=start,
        end_time=end,
        reason=parsed.reason,
        overwrite_reason=parsed.overwrite_reason,
    )


def _describe(event: CalendarEvent) -> str:
    end = event.end.strftime("%H:%M") if event.end else "?"
    return f"{event.start.strftime('%H:%M')}-{end} {event.title}"


def _overlaps(schedule: GeneratedSchedule, event: CalendarEvent) -> bool:
    event_end = event.end or event.start
    return schedule.start_time < event_end and event.start < schedule.end_time


async def suggest_schedule(
    preferences_json: str, target_date: date, existing_events: list[CalendarEvent],
) -> GeneratedSchedule | None:
    """Ask for one event on `target_date` that fits around `existing_events`.

    Returns None when the model fails or its suggestion overlaps an existing event.
    """
    prompt = prompts.schedule_suggestion_prompt(
        preferences_json, target_date, [_describe(e) for e in existing_events],
    )
    try:
        raw = await complete(_SYSTEM_PROMPT, prompt, max_tokens=512)
        schedule = _to_schedule(raw, target_date)
    except Exception as exc:
        logger.error("Schedule suggestion failed: %s", exc)
        return None

    clashes = [e.title for e in existing_events if _overlaps(schedule, e)]
    if clashes:
        logger.warning("Suggestion '%s' overlaps %s; discarded.", schedule.title, clashes)
        return None
    return schedule


async def force_schedule(preferences_json: str, target_date: date) -> GeneratedSchedule | None:
    """Ask for one event on `target_date`, ignoring what is already planned."""
    prompt = prompts.force_schedule_prompt(preferences_json, target_date)
    try:
        raw = await complete(_SYSTEM_PROMPT, prompt, max_tokens=512)
        return _to_schedule(raw, target_date)
    except Exception as exc:
        logger.error("Forced schedule failed: %s", exc)
        return None


# ---------------------------------------------------------------------------
# Timeline post wording
# ---------------------------------------------------------------------------


def fallback_post_content(category: str) -> str:
    emoji = _POST_EMOJI.get(category.lower(), _DEFAULT_POST_EMOJI)
    text = f"Some {category} time {emoji}"
    if len(text) > MAX_POST_LENGTH:
        text = f"Making time for myself {emoji}"
    return text


async def generate_post_content(title: str, category: str) -> str:
    """Short anonymized post text for an event, at most 50 characters."""
    try:
        raw = await complete(
            _POST_SYSTEM_PROMPT, prompts.timeline_post_prompt(title, category, MAX_POST_LENGTH),
        )
        text = raw.strip().strip('"').strip()
    except Exception as exc:
        logger.warning("Post wording failed (%s); using template.", exc)
        return fallback_post_content(category)

    if not text:
        return fallback_post_content(category)
    return text[:MAX_POST_LENGTH]
