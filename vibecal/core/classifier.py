"""
VibeCalendar — Event category classifier.

A small scikit-learn model that maps a point in time (weekday, hour,
month, day, weekend flag) to a coarse event category. A personalized
model is retrained from the user's own calendar and persisted with
joblib; until one exists, a default model fitted on a seed timetable is
used. Predictions are sampled from the class probabilities so repeated
generations stay varied.
"""

from __future__ import annotations

import asyncio
import logging
import os
import random
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Any

import joblib
import numpy as np
from sklearn.ensemble import RandomForestClassifier

from vibecal.core.features import date_features
from vibecal.data.models import CalendarEvent

logger = logging.getLogger(__name__)

_SEED_YEAR = 2024
_SEED_DAYS_OF_MONTH = (1, 8, 15, 22)


def _seed_label(weekday: int, hour: int) -> str:
    if hour < 7 or hour >= 23:
        return "Rest"
    if weekday < 5:
        if 9 <= hour < 18:
            return "Work"
        return "Private"
    if 10 <= hour < 18:
        return "Hobby"
    return "Private"


def _seed_table() -> tuple[np.ndarray, np.ndarray]:
    """Synthetic timetable the default model is fitted on."""
    rows: list[list[int]] = []
    labels: list[str] = []
    for month in range(1, 13):
        for day in _SEED_DAYS_OF_MONTH:
            base = date(_SEED_YEAR, month, day)
            for offset in range(2):
                d = base + timedelta(days=offset)
                for hour in range(24):
                    features = date_features(datetime.combine(d, time(hour=hour)))
                    rows.append(features.as_row())
                    labels.append(_seed_label(features.weekday, hour))
    return np.array(rows, dtype=float), np.array(labels)


def _make_model() -> RandomForestClassifier:
    return RandomForestClassifier(n_estimators=50, random_state=42)


def build_default_model() -> RandomForestClassifier:
    X, y = _seed_table()
    model = _make_model()
    model.fit(X, y)
    return model


def weighted_random_selection(
    probabilities: dict[str, float], rng: random.Random | None = None,
) -> str | None:
    """Pick a key with probability proportional to its weight.

    Returns None when the weights sum to zero or less.
    """
    total = sum(probabilities.values())
    if total <= 0:
        return None

    rng = rng or random.Random()
    threshold = rng.random() * total
    current = 0.0
    for category, probability in sorted(
        probabilities.items(), key=lambda item: item[1], reverse=True,
    ):
        current += probability
        if current >= threshold:
            return category
    return next(iter(probabilities))


class EventPredictor:
    """Category predictor with a persisted, per-user model."""

    def __init__(self, model_path: str | None = None, rng: random.Random | None = None) -> None:
        if model_path is None:
            from vibecal.config import settings
            model_path = settings.MODEL_PATH

        self._model_path = Path(model_path)
        self._rng = rng or random.Random()
        self.model: Any | None = None
        self.load_model()

    @property
    def is_personalized(self) -> bool:
        return self._model_path.exists()

    def load_model(self) -> None:
        """Load the personalized model, falling back to the default one."""
        if self._model_path.exists():
            try:
                logger.info("Loading personalized model from: %s", self._model_path)
                self.model = joblib.load(self._model_path)
                return
            except Exception as exc:
                logger.error("Failed to load personalized model: %s", exc)

        try:
            logger.info("Loading default model.")
            self.model = build_default_model()
        except Exception as exc:
            logger.error("Failed to build default model: %s", exc)
            self.model = None

    def predict_category(self, when: datetime) -> str | None:
        """Sample a category for the given datetime from the model's distribution."""
        if self.model is None:
            return None

        row = np.array([date_features(when).as_row()], dtype=float)
        try:
            probabilities = self.model.predict_proba(row)[0]
            distribution = {
                str(label): float(p) for label, p in zip(self.model.classes_, probabilities)
            }
            sampled = weighted_random_selection(distribution, self._rng)
            if sampled is not None:
                return sampled
            return str(self.model.predict(row)[0])
        except Exception as exc:
            logger.error("Category prediction error: %s", exc)
            return None

    async def train(self, events: list[CalendarEvent]) -> bool:
        """Retrain the personalized model on the user's events.

        Events without a calendar are skipped. Returns True when a new model
        was saved and loaded.
        """
        rows: list[list[int]] = []
        labels: list[str] = []
        for event in events:
            if not event.calendar:
                continue
            rows.append(date_features(event.start).as_row())
            labels.append(event.calendar)

        if not rows:
            logger.info("No labelled events to train on; keeping current model.")
            return False

        logger.info("Starting on-demand training with %d events...", len(rows))
        X = np.array(rows, dtype=float)
        y = np.array(labels)

        try:
            model = await asyncio.to_thread(self._fit_and_save, X, y)
        except Exception as exc:
            logger.error("Model update failed: %s", exc)
            return False

        self.model = model
        logger.info("Updated model saved to: %s", self._model_path)
        return True

    def _fit_and_save(self, X: np.ndarray, y: np.ndarray) -> RandomForestClassifier:
        model = _make_model()
        model.fit(X, y)

        self._model_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._model_path.with_suffix(self._model_path.suffix + ".tmp")
        joblib.dump(model, tmp_path)
        os.replace(tmp_path, self._model_path)
        return model
