"""Tests for vibecal.data.db — memo, session and event stores."""

from datetime import datetime

import pytest

from vibecal.data.models import CalendarEvent


# ---------------------------------------------------------------------------
# MemoDB
# ---------------------------------------------------------------------------


class TestMemoDB:
    def test_add_and_get(self, memo_db):
        memo = memo_db.add_memo("Loved the jazz bar last night")
        fetched = memo_db.get_memo(memo.id)
        assert fetched is not None
        assert fetched.content == "Loved the jazz bar last night"

    def test_list_newest_first(self, memo_db):
        first = memo_db.add_memo("first")
        second = memo_db.add_memo("second")
        memos = memo_db.list_memos()
        assert [m.id for m in memos] == [second.id, first.id]

    def test_list_with_limit(self, memo_db):
        for i in range(5):
            memo_db.add_memo(f"memo {i}")
        memos = memo_db.list_memos(limit=2)
        assert len(memos) == 2
        assert memos[0].content == "memo 4"

    def test_delete(self, memo_db):
        memo = memo_db.add_memo("to delete")
        assert memo_db.delete_memo(memo.id) is True
        assert memo_db.get_memo(memo.id) is None

    def test_delete_missing_returns_false(self, memo_db):
        assert memo_db.delete_memo("nope") is False

    def test_get_missing_returns_none(self, memo_db):
        assert memo_db.get_memo("nope") is None


# ---------------------------------------------------------------------------
# SessionDB
# ---------------------------------------------------------------------------


class TestSessionDB:
    def test_empty_session(self, session_db):
        assert session_db.get_token() is None
        assert session_db.get_user_id() is None

    def test_set_and_read(self, session_db):
        session_db.set_session("tok-123", "user-abc")
        assert session_db.get_token() == "tok-123"
        assert session_db.get_user_id() == "user-abc"

    def test_overwrite(self, session_db):
        session_db.set_session("old", "u1")
        session_db.set_session("new", "u2")
        assert session_db.get_token() == "new"
        assert session_db.get_user_id() == "u2"

    def test_empty_token_reads_as_none(self, session_db):
        session_db.set_session("", "u1")
        assert session_db.get_token() is None

    def test_clear(self, session_db):
        session_db.set_session("tok", "u1")
        session_db.clear()
        assert session_db.get_token() is None
        assert session_db.get_user_id() is None


# ---------------------------------------------------------------------------
# EventDB
# ---------------------------------------------------------------------------


class TestEventDB:
    def test_add_and_get(self, event_db):
        event = event_db.add_event(
            "Gym", datetime(2025, 12, 15, 18), datetime(2025, 12, 15, 19), "Private", "legs",
        )
        fetched = event_db.get_event(event.id)
        assert fetched == event

    def test_event_without_end(self, event_db):
        event = event_db.add_event("Reminder", datetime(2025, 12, 15, 9), None)
        assert event_db.get_event(event.id).end is None

    def test_list_overlapping_window(self, event_db):
        event_db.add_event("Before", datetime(2025, 12, 14, 9), datetime(2025, 12, 14, 10))
        inside = event_db.add_event("Inside", datetime(2025, 12, 15, 9), datetime(2025, 12, 15, 10))
        spanning = event_db.add_event("Spanning", datetime(2025, 12, 14, 23), datetime(2025, 12, 15, 1))
        event_db.add_event("After", datetime(2025, 12, 16, 9), datetime(2025, 12, 16, 10))

        events = event_db.list_events(datetime(2025, 12, 15), datetime(2025, 12, 16))
        assert [e.id for e in events] == [spanning.id, inside.id]

    def test_list_excludes_event_ending_at_window_start(self, event_db):
        event_db.add_event("Late night", datetime(2025, 12, 14, 23), datetime(2025, 12, 15, 0))
        assert event_db.list_events(datetime(2025, 12, 15), datetime(2025, 12, 16)) == []

    def test_list_keeps_zero_length_events_at_window_start(self, event_db):
        no_end = event_db.add_event("Reminder", datetime(2025, 12, 15), None)
        instant = event_db.add_event(
            "Checkpoint", datetime(2025, 12, 15, 0, 0), datetime(2025, 12, 15, 0, 0),
        )
        events = event_db.list_events(datetime(2025, 12, 15), datetime(2025, 12, 16))
        assert {e.id for e in events} == {no_end.id, instant.id}

    def test_update(self, event_db):
        event = event_db.add_event("Old", datetime(2025, 12, 15, 9), datetime(2025, 12, 15, 10))
        event.title = "New"
        event_db.update_event(event)
        assert event_db.get_event(event.id).title == "New"

    def test_update_missing_raises(self, event_db):
        ghost = CalendarEvent(id="ghost", title="x", start=datetime(2025, 12, 15, 9))
        with pytest.raises(ValueError, match="not found"):
            event_db.update_event(ghost)

    def test_delete(self, event_db):
        event = event_db.add_event("Gone", datetime(2025, 12, 15, 9), None)
        assert event_db.delete_event(event.id) is True
        assert event_db.delete_event(event.id) is False

    def test_list_calendars(self, event_db):
        event_db.add_event("a", datetime(2025, 12, 15, 9), None, "Work")
        event_db.add_event("b", datetime(2025, 12, 15, 10), None, "Hobby")
        event_db.add_event("c", datetime(2025, 12, 15, 11), None, "Work")
        event_db.add_event("d", datetime(2025, 12, 15, 12), None, None)
        assert event_db.list_calendars() == ["Hobby", "Work"]
