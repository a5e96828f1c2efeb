"""Shared test fixtures and configuration.

Sets up fake environment variables so vibecal.config doesn't sys.exit()
and nothing is written into the project's data/ directory, and provides
temp-file backed stores.
"""

import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="vibecal-tests-")

# Patch env vars BEFORE any vibecal imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("LLM_API_KEY", "fake-llm-key-for-tests")
os.environ.setdefault("LLM_PROVIDER", "gemini")
os.environ.setdefault("ALLOWED_USER_IDS", "12345")
os.environ.setdefault("CALENDAR_PROVIDER", "local")
os.environ.setdefault("DATABASE_PATH", os.path.join(_TMP_DIR, "vibecal.db"))
os.environ.setdefault("PROFILE_PATH", os.path.join(_TMP_DIR, "profile.json"))
os.environ.setdefault("MODEL_PATH", os.path.join(_TMP_DIR, "model.joblib"))

from datetime import datetime

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_vibecal.db")


@pytest.fixture
def memo_db(tmp_db_path):
    from vibecal.data.db import MemoDB
    return MemoDB(db_path=tmp_db_path)


@pytest.fixture
def session_db(tmp_db_path):
    from vibecal.data.db import SessionDB
    return SessionDB(db_path=tmp_db_path)


@pytest.fixture
def event_db(tmp_db_path):
    from vibecal.data.db import EventDB
    return EventDB(db_path=tmp_db_path)


@pytest.fixture
def local_calendar(event_db):
    from vibecal.adapters.local_calendar import LocalCalendarAdapter
    return LocalCalendarAdapter(db=event_db, default_calendar="VibeCalendar")


@pytest.fixture
def profile_store(tmp_path):
    from vibecal.core.profile import ProfileStore
    return ProfileStore(path=str(tmp_path / "profile.json"))


@pytest.fixture
def auth(session_db):
    from vibecal.integrations.auth import AuthManager
    return AuthManager(session_db)


@pytest.fixture
def make_event():
    """Factory for CalendarEvent records."""
    from vibecal.data.models import CalendarEvent

    def _make(title="Standup", start=None, end=None, calendar="Work", notes=None, id="ev-1"):
        start = start or datetime(2025, 12, 15, 10, 0)  # a Monday
        return CalendarEvent(id=id, title=title, start=start, end=end, calendar=calendar, notes=notes)

    return _make
