"""
VibeCalendar — Timeline sync.

Mirrors generated events to the backend, posts their anonymized summary to
the shared timeline, reads the feed and applies reactions. Backend failures
never interrupt the caller: they are logged and the operation is dropped.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path

from vibecal.core.generator import GeneratedEvent, generate_post_content
from vibecal.core.profile import UserProfile, to_remote
from vibecal.data.models import CalendarEvent
from vibecal.integrations.api_client import APIError, VibeAPIClient
from vibecal.integrations.api_models import (
    ReactionType,
    RemoteProfile,
    ScheduleEvent,
    TimelineFeedItem,
    TimelinePost,
)
from vibecal.integrations.auth import AuthManager
from vibecal.integrations.icons import upload_generated_icon

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Other"


class TimelineService:
    """Backend-facing side of the pipeline."""

    def __init__(self, client: VibeAPIClient, auth: AuthManager | None = None) -> None:
        self._client = client
        self._auth = auth or client.auth

    async def publish(
        self,
        event: CalendarEvent,
        generated: GeneratedEvent | None = None,
        icon_path: str | Path | None = None,
    ) -> TimelinePost | None:
        """Sync the event and post an anonymized summary of it.

        With `icon_path`, the image there is compressed and attached to the
        post; a failed upload leaves the post without an icon.
        """
        user_id = self._auth.current_user_id
        if not self._auth.is_authenticated or not user_id:
            logger.info("Not logged in; skipping timeline post for '%s'.", event.title)
            return None

        category = event.calendar or (generated.category if generated else DEFAULT_CATEGORY)
        try:
            synced = await self._client.create_event(ScheduleEvent(
                user_id=user_id,
                title=event.title,
                category=category,
                start_date=event.start,
                end_date=event.end or event.start + timedelta(hours=1),
                is_ai_generated=event.is_ai_generated,
                ek_event_id=event.id,
            ))

            post_category = generated.category if generated else category
            content = await generate_post_content(event.title, post_category)
            post = await self._client.create_post(TimelinePost(
                user_id=user_id,
                event_id=synced.id,
                content=content,
                color=generated.color_hex if generated else None,
                category=post_category,
            ))
        except APIError as exc:
            logger.error("Timeline publish failed for '%s': %s", event.title, exc)
            return None

        if icon_path is not None:
            icon_url = await upload_generated_icon(self._client, post.id, icon_path)
            if icon_url:
                post.icon_url = icon_url

        logger.info("Posted to timeline: %s", post.content)
        return post

    async def fetch_feed(self, limit: int = 20, offset: int = 0) -> list[TimelineFeedItem]:
        try:
            return await self._client.fetch_timeline(limit=limit, offset=offset)
        except APIError as exc:
            logger.error("Could not load timeline: %s", exc)
            return []

    async def react(self, item: TimelineFeedItem, reaction: ReactionType) -> TimelineFeedItem:
        """Apply a reaction locally, then mirror it to the backend.

        Picking the current reaction again removes it; picking a different one
        replaces it without changing the like count.
        """
        try:
            if item.selected_reaction == reaction:
                item.selected_reaction = None
                item.likes = max(0, item.likes - 1)
                await self._client.remove_reaction(item.id)
            else:
                if item.selected_reaction is None:
                    item.likes += 1
                item.selected_reaction = reaction
                await self._client.toggle_reaction(item.id, reaction)
        except APIError as exc:
            logger.error("Reaction on post %s not saved: %s", item.id, exc)
        return item

    async def sync_profile(self, profile: UserProfile) -> RemoteProfile | None:
        try:
            return await self._client.update_profile(to_remote(profile))
        except APIError as exc:
            logger.error("Profile sync failed: %s", exc)
            return None
