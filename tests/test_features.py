"""Tests for vibecal.core.features."""

from datetime import datetime

import pytest

from vibecal.core.features import FEATURE_NAMES, date_features, extract_keywords, time_slot


class TestDateFeatures:
    def test_weekday_encoding(self):
        features = date_features(datetime(2025, 12, 15, 9, 30))  # Monday
        assert features.weekday == 0
        assert features.is_weekend == 0
        assert (features.month, features.day, features.hour) == (12, 15, 9)

    def test_weekend(self):
        assert date_features(datetime(2025, 12, 20, 9)).is_weekend == 1  # Saturday
        assert date_features(datetime(2025, 12, 21, 9)).weekday == 6     # Sunday

    def test_row_order(self):
        row = date_features(datetime(2025, 12, 20, 14)).as_row(subject_length=7)
        assert len(row) == len(FEATURE_NAMES)
        assert row == [5, 14, 12, 20, 1, 7]


class TestTimeSlot:
    @pytest.mark.parametrize("hour,slot", [
        (6, "morning"), (11, "morning"),
        (12, "afternoon"), (16, "afternoon"),
        (17, "evening"), (20, "evening"),
        (21, "night"), (0, "night"), (5, "night"),
    ])
    def test_boundaries(self, hour, slot):
        assert time_slot(hour) == slot


class TestExtractKeywords:
    def test_splits_on_non_alphanumerics(self):
        assert extract_keywords("Team sync: Q4-planning") == ["Team", "sync", "Q4", "planning"]

    def test_underscore_is_separator(self):
        assert extract_keywords("deep_work") == ["deep", "work"]

    def test_drops_single_characters(self):
        assert extract_keywords("a b cd") == ["cd"]

    def test_empty(self):
        assert extract_keywords("") == []
