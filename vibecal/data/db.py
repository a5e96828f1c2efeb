"""
VibeCalendar — SQLite storage.

Memos, the backend session (auth token + user id) and the local calendar
all live in one SQLite file so they survive restarts.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path

from vibecal.data.models import CalendarEvent, Memo

logger = logging.getLogger(__name__)


class _SQLiteStore:
    """Shared connection handling for the stores below."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from vibecal.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        raise NotImplementedError


class MemoDB(_SQLiteStore):
    """SQLite-backed storage for user memos."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS memos (
                    id          TEXT PRIMARY KEY,
                    content     TEXT NOT NULL,
                    created_at  TEXT NOT NULL
                )
            """)
        logger.debug("Memos table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_memo(row: sqlite3.Row) -> Memo:
        return Memo(
            id=row["id"],
            content=row["content"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def add_memo(self, content: str) -> Memo:
        """Store a new memo; it becomes the first in list order."""
        memo = Memo(id=str(uuid.uuid4()), content=content, created_at=datetime.now())
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO memos (id, content, created_at) VALUES (?, ?, ?)",
                (memo.id, memo.content, memo.created_at.isoformat()),
            )
        logger.info("Memo added: %s", memo.id)
        return memo

    def get_memo(self, memo_id: str) -> Memo | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM memos WHERE id = ?", (memo_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_memo(row)

    def list_memos(self, limit: int | None = None) -> list[Memo]:
        """Return memos newest first."""
        query = "SELECT * FROM memos ORDER BY created_at DESC, rowid DESC"
        params: list = []
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_memo(r) for r in rows]

    def delete_memo(self, memo_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM memos WHERE id = ?", (memo_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Memo %s deleted", memo_id)
        return deleted


class SessionDB(_SQLiteStore):
    """Single-row storage for the backend auth token and user id."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS session (
                    key    TEXT PRIMARY KEY,
                    value  TEXT NOT NULL
                )
            """)
        logger.debug("Session table initialized at %s", self._db_path)

    def _get(self, key: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM session WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def get_token(self) -> str | None:
        token = self._get("auth_token")
        return token or None

    def get_user_id(self) -> str | None:
        return self._get("user_id")

    def set_session(self, token: str, user_id: str) -> None:
        with self._connect() as conn:
            conn.executemany(
                "INSERT OR REPLACE INTO session (key, value) VALUES (?, ?)",
                [("auth_token", token), ("user_id", user_id)],
            )
        logger.info("Session stored for user %s", user_id)

    def clear(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM session")
        logger.info("Session cleared")


class EventDB(_SQLiteStore):
    """SQLite-backed calendar used when no remote calendar is configured."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    id          TEXT PRIMARY KEY,
                    title       TEXT NOT NULL,
                    calendar    TEXT,
                    start_time  TEXT NOT NULL,
                    end_time    TEXT,
                    notes       TEXT
                )
            """)
        logger.debug("Events table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_event(row: sqlite3.Row) -> CalendarEvent:
        return CalendarEvent(
            id=row["id"],
            title=row["title"],
            start=datetime.fromisoformat(row["start_time"]),
            end=datetime.fromisoformat(row["end_time"]) if row["end_time"] else None,
            calendar=row["calendar"],
            notes=row["notes"],
        )

    def add_event(
        self,
        title: str,
        start: datetime,
        end: datetime | None,
        calendar: str | None = None,
        notes: str | None = None,
    ) -> CalendarEvent:
        event = CalendarEvent(
            id=str(uuid.uuid4()),
            title=title,
            start=start,
            end=end,
            calendar=calendar,
            notes=notes,
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO events (id, title, calendar, start_time, end_time, notes)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    event.id, title, calendar, start.isoformat(),
                    end.isoformat() if end else None, notes,
                ),
            )
        logger.info("Event added: '%s' at %s", title, start.isoformat())
        return event

    def get_event(self, event_id: str) -> CalendarEvent | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM events WHERE id = ?", (event_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_event(row)

    def list_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        """Return events overlapping [start, end), ordered by start time.

        An event ending exactly at `start` is excluded; zero-length events
        (no end, or end == start) count when they start inside the window.
        """
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM events
                WHERE start_time < ?
                  AND (
                    end_time > ?
                    OR (COALESCE(end_time, start_time) = start_time AND start_time >= ?)
                  )
                ORDER BY start_time
                """,
                (end.isoformat(), start.isoformat(), start.isoformat()),
            ).fetchall()
        return [self._row_to_event(r) for r in rows]

    def update_event(self, event: CalendarEvent) -> None:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE events
                SET title = ?, calendar = ?, start_time = ?, end_time = ?, notes = ?
                WHERE id = ?
                """,
                (
                    event.title, event.calendar, event.start.isoformat(),
                    event.end.isoformat() if event.end else None, event.notes, event.id,
                ),
            )
        if cursor.rowcount == 0:
            raise ValueError(f"Event {event.id} not found")
        logger.info("Event %s updated", event.id)

    def delete_event(self, event_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Event %s deleted", event_id)
        return deleted

    def list_calendars(self) -> list[str]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT DISTINCT calendar FROM events WHERE calendar IS NOT NULL ORDER BY calendar"
            ).fetchall()
        return [r["calendar"] for r in rows]
