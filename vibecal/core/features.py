"""Date feature extraction shared by the classifier and the preference encoder."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
TIME_SLOTS = ("morning", "afternoon", "evening", "night")

FEATURE_NAMES = (
    "weekday",
    "hour",
    "month",
    "day",
    "is_weekend",
    "original_subject_length",
)

_WORD_RE = re.compile(r"[^\W_]+")


@dataclass(frozen=True)
class DateFeatures:
    """Calendar position of a timestamp, in the classifier's encoding."""

    month: int
    day: int
    weekday: int     # Monday=0 … Sunday=6
    hour: int
    is_weekend: int  # 1 for Saturday/Sunday

    def as_row(self, subject_length: int = 0) -> list[int]:
        """Feature vector ordered as FEATURE_NAMES."""
        return [self.weekday, self.hour, self.month, self.day, self.is_weekend, subject_length]


def date_features(dt: datetime) -> DateFeatures:
    weekday = dt.weekday()
    return DateFeatures(
        month=dt.month,
        day=dt.day,
        weekday=weekday,
        hour=dt.hour,
        is_weekend=1 if weekday >= 5 else 0,
    )


def time_slot(hour: int) -> str:
    """Bucket an hour of day into morning/afternoon/evening/night."""
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"


def extract_keywords(title: str) -> list[str]:
    """Split a title on non-alphanumerics and keep words of 2+ characters."""
    return [word for word in _WORD_RE.findall(title or "") if len(word) >= 2]
