"""
VibeCalendar — Generation pipeline.

Orchestrates one "selfish" generation: read the past year of the calendar,
retrain the classifier on it, refresh the profile, generate an event for
the requested moment, write it to the calendar flagged as AI-generated and
optionally announce it on the timeline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from pathlib import Path

from vibecal.core import preferences as prefs
from vibecal.core.classifier import EventPredictor
from vibecal.core.generator import (
    GeneratedEvent,
    GeneratedSchedule,
    force_schedule,
    generate_event,
    suggest_schedule,
)
from vibecal.core.preferences import PreferenceHistogram
from vibecal.core.profile import ProfileAnalyzer, ProfileStore
from vibecal.core.timeline import TimelineService
from vibecal.data.models import CalendarEvent
from vibecal.integrations.api_models import TimelinePost
from vibecal.ports.calendar_port import CalendarError, CalendarPort

logger = logging.getLogger(__name__)

HISTORY_WINDOW = timedelta(days=365)


@dataclass
class GenerationResult:
    event: CalendarEvent
    generated: GeneratedEvent
    retrained: bool = False
    post: TimelinePost | None = None


class VibeService:
    """Wires the calendar, classifier, profile and timeline together."""

    def __init__(
        self,
        calendar: CalendarPort,
        predictor: EventPredictor,
        analyzer: ProfileAnalyzer,
        profile_store: ProfileStore,
        timeline: TimelineService | None = None,
    ) -> None:
        self.calendar = calendar
        self.predictor = predictor
        self.analyzer = analyzer
        self.profile_store = profile_store
        self.timeline = timeline

    async def _history(self, now: datetime) -> list[CalendarEvent]:
        try:
            return await self.calendar.fetch_events(now - HISTORY_WINDOW, now)
        except CalendarError as exc:
            logger.error("Could not read calendar history: %s", exc)
            return []

    async def generate_for(
        self,
        when: datetime,
        publish: bool = True,
        now: datetime | None = None,
        icon_path: str | Path | None = None,
    ) -> GenerationResult:
        """Run the full pipeline and place the generated event on `when`'s day.

        History is the year before `now` (the caller's clock, naive local time).
        `icon_path` names an image to attach to the timeline post.
        Raises CalendarError if the event cannot be written.
        """
        history = await self._history(now or datetime.now())
        logger.info("Learning from %d past event(s)", len(history))

        retrained = await self.predictor.train(history)
        await self.analyzer.analyze_and_save(history)

        generated = await generate_event(when, self.predictor, self.profile_store)
        start, end = generated.window(when.date())

        event = await self.calendar.create_event(
            title=generated.title,
            start=start,
            end=end,
            notes=generated.notes,
            is_ai_generated=True,
        )
        logger.info("AI event '%s' written for %s", event.title, start.isoformat())

        result = GenerationResult(event=event, generated=generated, retrained=retrained)
        if publish and self.timeline is not None:
            result.post = await self.timeline.publish(event, generated, icon_path=icon_path)
        return result

    async def preferences(self, now: datetime | None = None) -> PreferenceHistogram:
        return await prefs.encode_preferences(self.calendar, now=now)

    async def suggest(
        self, target_date: date, force: bool = False, now: datetime | None = None,
    ) -> GeneratedSchedule | None:
        """Propose an event for `target_date` from the preference histogram.

        With `force`, existing events are ignored.
        """
        preferences_json = prefs.to_json(await self.preferences(now))
        if force:
            return await force_schedule(preferences_json, target_date)

        day_start = datetime.combine(target_date, time.min)
        try:
            existing = await self.calendar.fetch_events(day_start, day_start + timedelta(days=1))
        except CalendarError as exc:
            logger.error("Could not read events for %s: %s", target_date, exc)
            existing = []
        return await suggest_schedule(preferences_json, target_date, existing)

    async def add_schedule(self, schedule: GeneratedSchedule) -> CalendarEvent:
        """Write an accepted suggestion to the calendar as an AI event."""
        notes = schedule.overwrite_reason or schedule.reason
        return await self.calendar.create_event(
            title=schedule.title,
            start=schedule.start_time,
            end=schedule.end_time,
            notes=notes or None,
            is_ai_generated=True,
        )
