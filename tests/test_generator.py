"""Tests for vibecal.core.generator — LLM event generation and fallbacks.

The language model is patched at vibecal.core.generator.complete.
"""

import json
from datetime import date, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import ValidationError

from vibecal.core.generator import (
    FALLBACK_SUFFIX,
    GeneratedEvent,
    LLMEventResponse,
    fallback_event,
    force_schedule,
    generate_event,
    generate_post_content,
    suggest_schedule,
)
from vibecal.core.llm import LLMUnavailableError

_PATCH_COMPLETE = "vibecal.core.generator.complete"

_LLM_EVENT = {
    "title": "Jazz café evening",
    "category": "a dim jazz café with warm lamps",
    "colorHex": "#8B5A2B",
    "startHour": 19,
    "startMinute": 0,
    "endHour": 21,
    "endMinute": 30,
    "description": "Live trio and a hand-drip coffee.",
}


def _predictor(category="Hobby"):
    predictor = MagicMock()
    predictor.predict_category.return_value = category
    return predictor


# ---------------------------------------------------------------------------
# GeneratedEvent
# ---------------------------------------------------------------------------


class TestGeneratedEvent:
    def _event(self, sh, sm, eh, em):
        return GeneratedEvent("t", "c", "n", sh, sm, eh, em)

    def test_duration(self):
        assert self._event(19, 0, 21, 30).duration == timedelta(hours=2, minutes=30)

    def test_duration_wraps_past_midnight(self):
        assert self._event(23, 0, 1, 0).duration == timedelta(hours=2)

    def test_duration_never_zero(self):
        assert self._event(10, 0, 10, 0).duration == timedelta(hours=24)

    def test_window(self):
        start, end = self._event(23, 0, 1, 0).window(date(2025, 12, 20))
        assert start == datetime(2025, 12, 20, 23, 0)
        assert end == datetime(2025, 12, 21, 1, 0)


# ---------------------------------------------------------------------------
# LLMEventResponse
# ---------------------------------------------------------------------------


class TestLLMEventResponse:
    def test_parses_camel_case(self):
        parsed = LLMEventResponse.model_validate(_LLM_EVENT)
        assert parsed.start_hour == 19
        assert parsed.color_hex == "#8B5A2B"
        assert parsed.to_event().notes == "Live trio and a hand-drip coffee."

    def test_invalid_color_becomes_none(self):
        parsed = LLMEventResponse.model_validate({**_LLM_EVENT, "colorHex": "warm brown"})
        assert parsed.color_hex is None

    def test_out_of_range_hour_rejected(self):
        with pytest.raises(ValidationError):
            LLMEventResponse.model_validate({**_LLM_EVENT, "startHour": 24})

    def test_out_of_range_minute_rejected(self):
        with pytest.raises(ValidationError):
            LLMEventResponse.model_validate({**_LLM_EVENT, "endMinute": 60})


# ---------------------------------------------------------------------------
# fallback_event
# ---------------------------------------------------------------------------


class TestFallbackEvent:
    @pytest.mark.parametrize("when,title,hours,color", [
        (datetime(2025, 12, 20, 9), "Relaxing at a café", 2, "#E6D5B8"),   # Sat morning
        (datetime(2025, 12, 20, 13), "Shopping", 3, "#FFCC33"),           # Sat afternoon
        (datetime(2025, 12, 21, 19), "Movie night", 2, "#333366"),        # Sun evening
        (datetime(2025, 12, 16, 18), "Gym workout", 1, "#FF6666"),        # Tue evening
        (datetime(2025, 12, 16, 10), "Focus session", 2, "#6699CC"),      # Tue morning
    ])
    def test_rules(self, when, title, hours, color):
        event = fallback_event(when, "Hobby")
        assert event.title == title
        assert event.color_hex == color
        assert event.duration == timedelta(hours=hours)
        assert event.start_hour == when.hour
        assert event.category == "Hobby"
        assert event.notes.endswith(FALLBACK_SUFFIX)

    def test_late_evening_wraps(self):
        event = fallback_event(datetime(2025, 12, 20, 23), "Rest")
        assert event.end_hour == 1
        assert event.duration == timedelta(hours=2)


# ---------------------------------------------------------------------------
# generate_event
# ---------------------------------------------------------------------------


class TestGenerateEvent:
    @pytest.mark.asyncio
    async def test_uses_llm_reply(self, profile_store):
        raw = "```json\n" + json.dumps(_LLM_EVENT) + "\n```"
        with patch(_PATCH_COMPLETE, new_callable=AsyncMock, return_value=raw) as mock_complete:
            event = await generate_event(datetime(2025, 12, 20, 19), _predictor(), profile_store)

        assert event.title == "Jazz café evening"
        assert event.end_minute == 30
        prompt = mock_complete.call_args[0][1]
        assert "Suggested category (surrounding context): Hobby" in prompt

    @pytest.mark.asyncio
    async def test_unknown_category_when_no_prediction(self, profile_store):
        with patch(_PATCH_COMPLETE, new_callable=AsyncMock, return_value=json.dumps(_LLM_EVENT)) as mock_complete:
            await generate_event(datetime(2025, 12, 20, 19), _predictor(None), profile_store)
        assert "surrounding context): Unknown" in mock_complete.call_args[0][1]

    @pytest.mark.asyncio
    async def test_llm_unavailable_falls_back(self, profile_store):
        with patch(_PATCH_COMPLETE, new_callable=AsyncMock, side_effect=LLMUnavailableError("no key")):
            event = await generate_event(datetime(2025, 12, 16, 10), _predictor("Work"), profile_store)
        assert event.title == "Focus session"
        assert event.category == "Work"

    @pytest.mark.asyncio
    async def test_garbage_reply_falls_back(self, profile_store):
        with patch(_PATCH_COMPLETE, new_callable=AsyncMock, return_value="I'd suggest a nap!"):
            event = await generate_event(datetime(2025, 12, 16, 20), _predictor("Rest"), profile_store)
        assert event.title == "Gym workout"

    @pytest.mark.asyncio
    async def test_invalid_hours_fall_back(self, profile_store):
        bad = json.dumps({**_LLM_EVENT, "startHour": 30})
        with patch(_PATCH_COMPLETE, new_callable=AsyncMock, return_value=bad):
            event = await generate_event(datetime(2025, 12, 20, 9), _predictor(), profile_store)
        assert event.notes.endswith(FALLBACK_SUFFIX)


# ---------------------------------------------------------------------------
# suggest_schedule / force_schedule
# ---------------------------------------------------------------------------


class TestSuggestSchedule:
    @pytest.mark.asyncio
    async def test_valid_suggestion(self, make_event):
        reply = json.dumps({
            "title": "Evening run", "category": "Exercise",
            "startTime": "18:00", "endTime": "19:00", "reason": "You like evenings.",
        })
        existing = [make_event("Dentist", datetime(2025, 12, 24, 10), datetime(2025, 12, 24, 11))]
        with patch(_PATCH_COMPLETE, new_callable=AsyncMock, return_value=reply) as mock_complete:
            schedule = await suggest_schedule("{}", date(2025, 12, 24), existing)

        assert schedule.start_time == datetime(2025, 12, 24, 18)
        assert schedule.end_time == datetime(2025, 12, 24, 19)
        assert schedule.reason == "You like evenings."
        assert "10:00-11:00 Dentist" in mock_complete.call_args[0][1]

    @pytest.mark.asyncio
    async def test_overlap_rejected(self, make_event):
        reply = json.dumps({
            "title": "Brunch", "category": "Food", "startTime": "10:30", "endTime": "12:00",
        })
        existing = [make_event("Dentist", datetime(2025, 12, 24, 10), datetime(2025, 12, 24, 11))]
        with patch(_PATCH_COMPLETE, new_callable=AsyncMock, return_value=reply):
            assert await suggest_schedule("{}", date(2025, 12, 24), existing) is None

    @pytest.mark.asyncio
    async def test_bad_time_returns_none(self):
        reply = json.dumps({"title": "x", "startTime": "evening", "endTime": "late"})
        with patch(_PATCH_COMPLETE, new_callable=AsyncMock, return_value=reply):
            assert await suggest_schedule("{}", date(2025, 12, 24), []) is None

    @pytest.mark.asyncio
    async def test_force_ignores_existing(self):
        reply = json.dumps({
            "title": "Christmas party", "category": "Party",
            "startTime": "22:00", "endTime": "01:00",
            "overwriteReason": "Nothing else matters tonight.",
        })
        with patch(_PATCH_COMPLETE, new_callable=AsyncMock, return_value=reply):
            schedule = await force_schedule("{}", date(2025, 12, 25))

        assert schedule.end_time == datetime(2025, 12, 26, 1)
        assert schedule.overwrite_reason == "Nothing else matters tonight."

    @pytest.mark.asyncio
    async def test_force_failure(self):
        with patch(_PATCH_COMPLETE, new_callable=AsyncMock, side_effect=RuntimeError("quota")):
            assert await force_schedule("{}", date(2025, 12, 25)) is None


# ---------------------------------------------------------------------------
# generate_post_content
# ---------------------------------------------------------------------------


class TestGeneratePostContent:
    @pytest.mark.asyncio
    async def test_strips_quotes(self):
        with patch(_PATCH_COMPLETE, new_callable=AsyncMock, return_value='"Sweating it out 💪"\n'):
            assert await generate_post_content("Gym", "Exercise") == "Sweating it out 💪"

    @pytest.mark.asyncio
    async def test_truncates_to_fifty(self):
        with patch(_PATCH_COMPLETE, new_callable=AsyncMock, return_value="x" * 80):
            assert len(await generate_post_content("Gym", "Exercise")) == 50

    @pytest.mark.asyncio
    async def test_failure_uses_template(self):
        with patch(_PATCH_COMPLETE, new_callable=AsyncMock, side_effect=LLMUnavailableError("no key")):
            text = await generate_post_content("Quarterly report", "Work")
        assert text == "Some Work time 💼"

    @pytest.mark.asyncio
    async def test_empty_reply_uses_template(self):
        with patch(_PATCH_COMPLETE, new_callable=AsyncMock, return_value="   "):
            text = await generate_post_content("Sketching", "a sunlit art studio")
        assert text == "Some a sunlit art studio time ✨"
        assert len(text) <= 50
