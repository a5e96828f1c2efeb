"""
VibeCalendar — User profile and analyzer.

The UserProfile is the character sheet every generation prompt is built
from: learned interests with their usual places, fixed routines, a short
"vibe" line, and the core interests picked during onboarding together with
the narrative written from them. It is persisted as a JSON file.

ProfileAnalyzer rebuilds the learned part from calendar titles and memos,
and drives the three-stage onboarding (categories → genres → keywords).
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, ValidationError

from vibecal.core import prompts
from vibecal.core.llm import complete, extract_json_object
from vibecal.data.models import CalendarEvent
from vibecal.integrations.api_models import RemoteProfile

if TYPE_CHECKING:
    from vibecal.data.db import MemoDB

logger = logging.getLogger(__name__)

DEFAULT_VIBE = "Not enough data has been learned yet."

MAX_EVENT_TITLES = 50
MAX_MEMOS = 20
LIST_SIZE = 6
MAX_LIST_ITEM_LENGTH = 30

STAGE1_FALLBACK = ["Indoor", "Outdoor", "Art & Creative", "Tech & Gadgets", "Food & Gourmet", "Sports"]
STAGE2_FALLBACK = ["Reading", "Movies", "Café hopping", "Walking", "Music", "Gaming"]

_SYSTEM_PROMPT = "You are a concise assistant. Follow the output format exactly."
_LIST_SPLIT = re.compile(r"[,\n、]")
_BULLET = re.compile(r"^\s*(?:[-*•・]|\d+[.)])\s*")


class ProfileKeyword(BaseModel):
    name: str
    category: str = ""
    locations: list[str] = Field(default_factory=list)


class UserProfile(BaseModel):
    """Learned and user-chosen traits.

    JSON example:
    {
        "keywords": [{"name": "Specialty coffee", "category": "Food", "locations": ["hidden café"]}],
        "routines": ["math class"],
        "master_keywords": ["Jazz café", "Used bookstores"],
        "master_narrative": "A person who enjoys ...",
        "vibe_description": "Calm and curious",
        "onboarding_completed": true
    }
    """
    keywords: list[ProfileKeyword] = Field(default_factory=list)
    routines: list[str] = Field(default_factory=list)
    master_keywords: list[str] = Field(default_factory=list)
    master_narrative: str = ""
    vibe_description: str = DEFAULT_VIBE
    onboarding_completed: bool = False

    @classmethod
    def empty(cls) -> UserProfile:
        return cls()


class _AnalysisResponse(BaseModel):
    routines: list[str] = Field(default_factory=list)
    keywords: list[ProfileKeyword] = Field(default_factory=list)
    vibe: str = DEFAULT_VIBE


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class ProfileStore:
    """JSON file holding the single user profile."""

    def __init__(self, path: str | None = None) -> None:
        if path is None:
            from vibecal.config import settings
            path = settings.PROFILE_PATH
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> UserProfile:
        if not self._path.exists():
            logger.info("No stored profile at %s; starting empty.", self._path)
            return UserProfile.empty()
        try:
            return UserProfile.model_validate_json(self._path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as exc:
            logger.error("Failed to load profile from %s: %s", self._path, exc)
            return UserProfile.empty()

    def save(self, profile: UserProfile) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(profile.model_dump_json(indent=2), encoding="utf-8")
        except OSError as exc:
            logger.error("Failed to save profile to %s: %s", self._path, exc)
            return False
        logger.info("Profile saved to %s", self._path)
        return True


# ---------------------------------------------------------------------------
# List parsing
# ---------------------------------------------------------------------------


def _is_instruction(item: str) -> bool:
    lowered = item.lower()
    return "example" in lowered or "sample" in lowered or item.endswith((".", ":"))


def parse_list(raw_text: str, limit: int = LIST_SIZE) -> list[str]:
    """Split a model-written list into at most `limit` clean, unique items."""
    items: list[str] = []
    for piece in _LIST_SPLIT.split(raw_text):
        item = _BULLET.sub("", piece).strip().strip('"').strip()
        if not item or len(item) > MAX_LIST_ITEM_LENGTH or _is_instruction(item):
            continue
        if item not in items:
            items.append(item)
        if len(items) == limit:
            break
    return items


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------


class ProfileAnalyzer:
    """Builds the profile from history and runs onboarding list generation."""

    def __init__(self, store: ProfileStore, memo_db: MemoDB) -> None:
        self._store = store
        self._memo_db = memo_db

    @property
    def profile(self) -> UserProfile:
        return self._store.load()

    async def analyze_and_save(self, events: list[CalendarEvent]) -> UserProfile:
        """Re-derive routines, interests and vibe from events and memos.

        Onboarding choices are carried over. If the model fails, the stored
        profile is returned unchanged.
        """
        current = self._store.load()
        titles = [event.title for event in events[:MAX_EVENT_TITLES]]
        memos = [memo.content for memo in self._memo_db.list_memos(limit=MAX_MEMOS)]
        prompt = prompts.profile_analysis_prompt(titles, memos)

        try:
            raw = await complete(_SYSTEM_PROMPT, prompt, max_tokens=1024)
            analysis = _AnalysisResponse.model_validate(extract_json_object(raw))
        except Exception as exc:
            logger.error("Profile analysis failed, keeping stored profile: %s", exc)
            return current

        updated = current.model_copy(update={
            "routines": analysis.routines,
            "keywords": analysis.keywords,
            "vibe_description": analysis.vibe or DEFAULT_VIBE,
        })
        self._store.save(updated)
        logger.info(
            "Profile analyzed: %d routine(s), %d keyword(s)",
            len(updated.routines), len(updated.keywords),
        )
        return updated

    async def generate_list(self, prompt: str, fallback: list[str]) -> list[str]:
        try:
            raw = await complete(_SYSTEM_PROMPT, prompt)
        except Exception as exc:
            logger.error("List generation failed: %s", exc)
            return list(fallback)

        items = parse_list(raw)
        if not items:
            logger.warning("List generation returned nothing usable: %r", raw[:80])
            return list(fallback)
        return items

    async def generate_stage1_categories(self) -> list[str]:
        return await self.generate_list(prompts.stage1_categories_prompt(), STAGE1_FALLBACK)

    async def generate_stage2_genres(self, selected_categories: list[str]) -> list[str]:
        return await self.generate_list(
            prompts.stage2_genres_prompt(selected_categories), STAGE2_FALLBACK,
        )

    async def generate_stage3_keywords(self, selected_genres: list[str]) -> list[str]:
        return await self.generate_list(
            prompts.stage3_keywords_prompt(selected_genres), selected_genres,
        )

    async def generate_master_narrative(self, keywords: list[str]) -> str:
        try:
            raw = await complete(_SYSTEM_PROMPT, prompts.master_narrative_prompt(keywords), max_tokens=512)
        except Exception as exc:
            logger.error("Narrative generation failed: %s", exc)
            return ""
        return raw.strip()

    def save_master_profile(self, words: list[str], narrative: str = "") -> UserProfile:
        """Store the onboarding result and mark onboarding complete."""
        profile = self._store.load()
        update: dict = {"master_keywords": list(words), "onboarding_completed": True}
        if narrative:
            update["master_narrative"] = narrative
        profile = profile.model_copy(update=update)
        self._store.save(profile)
        return profile


# ---------------------------------------------------------------------------
# Wire mapping
# ---------------------------------------------------------------------------


def to_remote(profile: UserProfile) -> RemoteProfile:
    """Map the local profile onto the backend /profile/ shape."""
    category_keywords: dict[str, list[str]] = {}
    frequent_locations: list[str] = []
    for keyword in profile.keywords:
        if keyword.category:
            category_keywords.setdefault(keyword.category, []).append(keyword.name)
        for location in keyword.locations:
            if location not in frequent_locations:
                frequent_locations.append(location)

    interests = [keyword.name for keyword in profile.keywords]
    interests.extend(word for word in profile.master_keywords if word not in interests)

    return RemoteProfile(
        interests=interests,
        category_keywords=category_keywords,
        frequent_locations=frequent_locations,
        vibe_description=profile.vibe_description,
    )
