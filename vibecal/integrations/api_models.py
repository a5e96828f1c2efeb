"""
VibeCalendar — Backend wire models.

Pydantic models for the JSON exchanged with the VibeCalendar REST API.
Dates are ISO-8601 strings; the backend emits both naive timestamps and
ones with fractional seconds, which pydantic accepts as-is.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class User(BaseModel):
    id: str
    username: str = ""
    email: str = ""
    created_at: datetime | None = None


class ScheduleEvent(BaseModel):
    """An event as mirrored to the backend.

    JSON example:
    {
        "id": "9b1d...",
        "user_id": "4f2a...",
        "title": "Jazz café evening",
        "category": "Hobby",
        "start_date": "2025-12-20T18:00:00",
        "end_date": "2025-12-20T20:00:00",
        "is_ai_generated": true,
        "ek_event_id": "local-event-id",
        "created_at": "2025-12-20T09:00:00.123456"
    }
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    title: str
    category: str
    start_date: datetime
    end_date: datetime
    is_ai_generated: bool = False
    ek_event_id: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)


class TimelinePost(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    event_id: str
    content: str
    icon_url: str | None = None
    color: str | None = None
    category: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)


class RemoteProfile(BaseModel):
    """Profile shape served by /profile/."""
    interests: list[str] = Field(default_factory=list)
    category_keywords: dict[str, list[str]] = Field(default_factory=dict)
    frequent_locations: list[str] = Field(default_factory=list)
    vibe_description: str = ""

    def get_keywords(self, category: str) -> list[str]:
        return self.category_keywords.get(category, self.interests)


class RegisterRequest(BaseModel):
    username: str
    email: str
    password: str


class AuthResponse(BaseModel):
    token: str
    user: User


# ---------------------------------------------------------------------------
# Timeline feed
# ---------------------------------------------------------------------------


class ReactionType(str, Enum):
    LIKE = "👍"
    LOVE = "❤️"
    FIRE = "🔥"
    LAUGH = "😂"


class FeedCategory(str, Enum):
    DAILY = "daily"
    WORK = "work"
    HOBBY = "hobby"
    EVENT = "event"


class FeedPostSummary(BaseModel):
    id: str
    content: str
    created_at: str


class FeedAuthor(BaseModel):
    id: str
    username: str = ""


class TimelineFeedResponse(BaseModel):
    """One entry of GET /timeline/posts."""
    post: FeedPostSummary
    user: FeedAuthor
    likes: int = 0
    my_reaction: str | None = None


def _parse_timestamp(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.now()


def _parse_reaction(value: str | None) -> ReactionType | None:
    if value is None:
        return None
    try:
        return ReactionType(value)
    except ValueError:
        return None


class TimelineFeedItem(BaseModel):
    """A feed row ready for display; `likes` and `selected_reaction` change locally."""
    id: str
    author_name: str
    author_id: str
    content: str
    timestamp: datetime
    likes: int = 0
    replies: int = 0
    category: FeedCategory = FeedCategory.DAILY
    selected_reaction: ReactionType | None = None

    @classmethod
    def from_response(cls, response: TimelineFeedResponse) -> TimelineFeedItem:
        return cls(
            id=response.post.id,
            author_name=response.user.username,
            author_id="@" + response.user.id[:8],
            content=response.post.content,
            timestamp=_parse_timestamp(response.post.created_at),
            likes=response.likes,
            selected_reaction=_parse_reaction(response.my_reaction),
        )
