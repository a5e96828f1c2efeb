"""
VibeCalendar — Centralized configuration.

Loads all settings from .env and validates them.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from vibecal/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)

_SUPPORTED_LLM_PROVIDERS = ("gemini", "anthropic", "openai", "cohere")


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram (bot surface only)
    TELEGRAM_BOT_TOKEN: str = ""

    # LLM: provider-agnostic (gemini, anthropic, openai, cohere)
    LLM_PROVIDER: str = "gemini"
    LLM_MODEL: str = ""          # empty → smart default per provider
    LLM_API_KEY: str = ""        # empty → rule-based fallback generation

    # Calendar provider: "local" | "caldav"
    CALENDAR_PROVIDER: str = "local"
    DEFAULT_CALENDAR_NAME: str = "VibeCalendar"

    # CalDAV (only needed when CALENDAR_PROVIDER=caldav)
    CALDAV_URL: str = ""
    CALDAV_USERNAME: str = ""
    CALDAV_PASSWORD: str = ""
    CALDAV_CALENDAR_NAME: str = ""

    # Local state
    DATABASE_PATH: str = "data/vibecal.db"
    PROFILE_PATH: str = "data/user_profile_data.json"
    MODEL_PATH: str = "data/calendar_classifier.joblib"

    # Timeline backend
    API_BASE_URL: str = "https://api.ptera-cup.krz-tech.net/v1"
    LOCAL_API_BASE_URL: str = "http://localhost:8000/v1"
    USE_LOCAL_API: bool = False
    API_TIMEOUT_SECONDS: float = 10.0

    # Security
    ALLOWED_USER_IDS: list[int] = []

    TIMEZONE: str = "Asia/Tokyo"
    DEBUG_MODE: bool = False

    @field_validator("ALLOWED_USER_IDS", mode="before")
    @classmethod
    def parse_user_ids(cls, v: str | list[int]) -> list[int]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [int(uid.strip()) for uid in v.split(",") if uid.strip()]
        return []

    @field_validator("USE_LOCAL_API", "DEBUG_MODE", mode="before")
    @classmethod
    def parse_flag(cls, v: str | bool) -> bool:
        if isinstance(v, bool):
            return v
        return str(v).strip().lower() in ("1", "true", "yes", "on")

    @field_validator("LLM_PROVIDER", "CALENDAR_PROVIDER", mode="before")
    @classmethod
    def lower_provider(cls, v: str) -> str:
        return str(v).strip().lower()

    @property
    def api_base_url(self) -> str:
        """Backend root, switched between localhost and production."""
        if self.USE_LOCAL_API:
            return self.LOCAL_API_BASE_URL.rstrip("/")
        return self.API_BASE_URL.rstrip("/")


def _load_settings() -> Settings:
    """Load settings from environment, validating the LLM provider."""
    provider = os.getenv("LLM_PROVIDER", "gemini").strip().lower()
    if provider not in _SUPPORTED_LLM_PROVIDERS:
        print(
            f"ERROR: LLM_PROVIDER={provider!r} is not supported "
            f"(choose one of: {', '.join(_SUPPORTED_LLM_PROVIDERS)})",
            file=sys.stderr,
        )
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=os.getenv("TELEGRAM_BOT_TOKEN", ""),
        LLM_PROVIDER=provider,
        LLM_MODEL=os.getenv("LLM_MODEL", ""),
        LLM_API_KEY=os.getenv("LLM_API_KEY", ""),
        CALENDAR_PROVIDER=os.getenv("CALENDAR_PROVIDER", "local"),
        DEFAULT_CALENDAR_NAME=os.getenv("DEFAULT_CALENDAR_NAME", "VibeCalendar"),
        CALDAV_URL=os.getenv("CALDAV_URL", ""),
        CALDAV_USERNAME=os.getenv("CALDAV_USERNAME", ""),
        CALDAV_PASSWORD=os.getenv("CALDAV_PASSWORD", ""),
        CALDAV_CALENDAR_NAME=os.getenv("CALDAV_CALENDAR_NAME", ""),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/vibecal.db"),
        PROFILE_PATH=os.getenv("PROFILE_PATH", "data/user_profile_data.json"),
        MODEL_PATH=os.getenv("MODEL_PATH", "data/calendar_classifier.joblib"),
        API_BASE_URL=os.getenv("API_BASE_URL", "https://api.ptera-cup.krz-tech.net/v1"),
        LOCAL_API_BASE_URL=os.getenv("LOCAL_API_BASE_URL", "http://localhost:8000/v1"),
        USE_LOCAL_API=os.getenv("USE_LOCAL_API", "false"),
        API_TIMEOUT_SECONDS=float(os.getenv("API_TIMEOUT_SECONDS", "10")),
        ALLOWED_USER_IDS=os.getenv("ALLOWED_USER_IDS", ""),
        TIMEZONE=os.getenv("TIMEZONE", "Asia/Tokyo"),
        DEBUG_MODE=os.getenv("DEBUG_MODE", "false"),
    )


# Singleton, imported by all other modules as:
#   from vibecal.config import settings
settings = _load_settings()
