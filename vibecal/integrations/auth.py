"""Session state for the VibeCalendar backend, persisted in SQLite."""

from __future__ import annotations

import logging

from vibecal.data.db import SessionDB

logger = logging.getLogger(__name__)


class AuthManager:
    """Holds the bearer token and the id of the signed-in user."""

    def __init__(self, session_db: SessionDB | None = None) -> None:
        self._db = session_db or SessionDB()
        self.current_user_id: str | None = None
        self.is_authenticated = False

        token = self._db.get_token()
        if token:
            self.is_authenticated = True
            self.current_user_id = self._db.get_user_id()

    def get_auth_token(self) -> str | None:
        return self._db.get_token()

    def set_authenticated(self, token: str, user_id: str) -> None:
        self._db.set_session(token, user_id)
        self.is_authenticated = True
        self.current_user_id = user_id

    def logout(self) -> None:
        logger.info("Logging out user %s", self.current_user_id)
        self._db.clear()
        self.is_authenticated = False
        self.current_user_id = None
