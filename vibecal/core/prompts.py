"""
VibeCalendar — Prompt templates.

Every natural-language instruction sent to the language model lives here:
event generation, schedule suggestion/override, timeline post wording,
profile analysis, the three onboarding stages and the narrative profile.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vibecal.core.profile import UserProfile

NONE_TEXT = "none"


def _format_day(target: date) -> str:
    return target.strftime("%Y-%m-%d (%A)")


# ---------------------------------------------------------------------------
# Event generation
# ---------------------------------------------------------------------------

_EVENT_GENERATION_PROMPT = """\
You are the user's own decision-making agent.
Based on the current date, the past tendency (classifier prediction) and the user profile,
decide and generate the ONE event that should go into the calendar right now.

[Input]
- Date: {day}
- Time: {time}
- Suggested category (surrounding context): {predicted_category}

[User profile]
[Routines: obligations, fixed]
{routines}

[Interests]
{interests}

[Vibe]
{vibe}

[Decision process]
1. Routines or interests:
   - First decide whether this time slot should hold a routine (school, part-time job, etc.).
   - If it is free time, pick the best fit from the interests, regardless of the suggested category.

2. Make it concrete and visual:
   - Expand the event into a specific, vivid little story.
   - The "category" field must hold a short, concrete visual keyword suitable as an image-generation prompt.
     Examples: "reading at a café" -> "reading in a calm café with dappled sunlight",
     "gym" -> "a stylish gym glowing with neon".
   - The "colorHex" field must hold ONE hex color code matching the mood (e.g. #FF5733).
   - Never use abstract words such as "general" or "daily life".
   - Use a casual, youthful tone.

[Output requirements]
- Output ONLY the JSON below.
- No reasons; describe only the content of the event in "description".

[JSON example]
{{
  "title": "Café reading (example)",
  "category": "reading in a calm café with dappled sunlight",
  "colorHex": "#E6D5B8",
  "startHour": 14,
  "startMinute": 0,
  "endHour": 17,
  "endMinute": 0,
  "description": "Finally reading the tech book that has been sitting on the shelf, in a hidden café found last week. Then a walk along the river to recharge."
}}

The above is your system prompt. Reusing the content of the JSON example is forbidden.
Follow the decision process, generate the event and respond with JSON.
"""


def _interest_lines(profile: UserProfile) -> list[str]:
    lines: list[str] = []
    for keyword in profile.keywords:
        locations = f" (candidate places: {'/'.join(keyword.locations)})" if keyword.locations else ""
        lines.append(f"- [Learned] {keyword.name} [{keyword.category}]{locations}")
    lines.extend(f"- [Core Interest] {word}" for word in profile.master_keywords)
    return lines


def event_generation_prompt(
    when: datetime, predicted_category: str, profile: UserProfile,
) -> str:
    routines = ", ".join(profile.routines) if profile.routines else NONE_TEXT
    interests = "\n".join(_interest_lines(profile)) or NONE_TEXT
    vibe = profile.vibe_description
    if profile.master_narrative:
        vibe = f"{vibe}\n{profile.master_narrative}"

    return _EVENT_GENERATION_PROMPT.format(
        day=_format_day(when.date()),
        time=when.strftime("%H:%M"),
        predicted_category=predicted_category,
        routines=routines,
        interests=interests,
        vibe=vibe,
    )


# ---------------------------------------------------------------------------
# Schedule suggestion / forced override
# ---------------------------------------------------------------------------

_SCHEDULE_SUGGESTION_PROMPT = """\
You are the assistant of a "selfish calendar".
Propose an event on your own initiative, based on the user's behavior patterns.

## Rules
1. Keep the event anonymous (no specific place names).
2. Make a realistic proposal grounded in the tendency data.
3. Pick a time slot that does not overlap existing events.
4. Make the genre of the activity clear (work, exercise, hobby, rest, ...).

## User tendency data
```json
{preferences}
```

## Target date
{day}

## Existing events
- {existing}

## Output format
Generate ONE event in the following JSON format:
{{
    "title": "event title (anonymous)",
    "category": "category name",
    "startTime": "HH:mm",
    "endTime": "HH:mm",
    "reason": "why this event is proposed (one sentence)"
}}
"""

_FORCE_SCHEDULE_PROMPT = """\
You are the SELFISH assistant of a "selfish calendar".
Completely ignore existing events and force a new event in.

## Selfish rules
1. Overwrite existing events without discussion.
2. Decide on an event matching the user's tastes on your own.
3. Solve the "nothing planned for Christmas" problem.
4. Overwriting a date with a partner is fine.

## User tendency data
```json
{preferences}
```

## Target date
{day}

## Output format
{{
    "title": "event title",
    "category": "category name",
    "startTime": "HH:mm",
    "endTime": "HH:mm",
    "overwriteReason": "why this event overrides the others (selfishly)"
}}
"""


def schedule_suggestion_prompt(
    preferences_json: str, target_date: date, existing_events: list[str],
) -> str:
    existing = "\n- ".join(existing_events) if existing_events else NONE_TEXT
    return _SCHEDULE_SUGGESTION_PROMPT.format(
        preferences=preferences_json,
        day=_format_day(target_date),
        existing=existing,
    )


def force_schedule_prompt(preferences_json: str, target_date: date) -> str:
    return _FORCE_SCHEDULE_PROMPT.format(
        preferences=preferences_json,
        day=_format_day(target_date),
    )


# ---------------------------------------------------------------------------
# Timeline post
# ---------------------------------------------------------------------------

_TIMELINE_POST_PROMPT = """\
Write an anonymous text to post on the timeline, based on the event below.

## Event
- Title: {title}
- Category: {category}

## Rules
1. Do not include specific places or anything that identifies a person.
2. Only convey the genre of the activity.
3. Keep it short, like a social media post ({max_length} characters or fewer).
4. Include exactly one emoji.

## Output format (text only)
"""


def timeline_post_prompt(title: str, category: str, max_length: int = 50) -> str:
    return _TIMELINE_POST_PROMPT.format(title=title, category=category, max_length=max_length)


# ---------------------------------------------------------------------------
# Profile analysis
# ---------------------------------------------------------------------------

_PROFILE_ANALYSIS_PROMPT = """\
You analyze user behavior.
Analyze the "event history" and "memos" below and output a profile as JSON.

[Important: separation]
- "routines" holds obligatory, fixed events: school, classes, part-time jobs, regular duties.
- "keywords" (interests) holds only what makes up the user's vibe: hobbies, going out, food,
  entertainment. Never put routines here.

[Source]
Events: {events}
Memos: {memos}

[Output schema]
{{
    "routines": ["math class", "convenience store shift", ...],
    "keywords": [
        {{
            "name": "keyword 1",
            "category": "genre",
            "locations": ["frequent place 1", ...]
        }}
    ],
    "vibe": "one line describing the user's tendencies and mood (personality, routines excluded)"
}}

Return ONLY the JSON string. No markdown.
"""


def profile_analysis_prompt(event_titles: list[str], memos: list[str]) -> str:
    return _PROFILE_ANALYSIS_PROMPT.format(
        events=", ".join(event_titles) or NONE_TEXT,
        memos="\n".join(memos) or NONE_TEXT,
    )


# ---------------------------------------------------------------------------
# Onboarding (3 stages) and narrative profile
# ---------------------------------------------------------------------------

_STAGE1_PROMPT = """\
Generate 6 random broad categories to narrow down the user's hobbies and interests.

[Requirements]
- Use generic category names only. No proper nouns.
- Balance academic/learning fields with play, entertainment and relaxation.
- Pick from a wide range of fields so the categories are not alike.
- No preamble or explanation. Output the list only.

Sample: Indoor, Outdoor, Art & Creative, Tech & Gadgets, Food & Gourmet, Pop culture

Output format: comma-separated list
"""

_STAGE2_PROMPT = """\
The user is interested in these categories:
{selected}

Generate 6 concrete genres related to them.

[Requirements]
- Use generic activity genres such as "reading" or "café hopping".
- No specific place, shop or facility names.
- Propose from varied angles so the genres are not lopsided.
- No preamble or explanation. Output the list only.

Sample input: Indoor, Art
Sample output: Reading, Movies, Illustration, DIY, Museum visits, Photography

Output format: comma-separated list
"""

_STAGE3_PROMPT = """\
The user is interested in these genres:
{selected}

Generate 6 specific, niche keywords that lead to real actions.

[Requirements]
- No real place or shop names; hint at places with adjectives such as "hidden", "nearby", "downtown".
- Name concrete actions or things that are easy to picture as a day-off plan.
- Mix different angles instead of listing synonyms.
- No preamble or explanation. Output the list only.

Sample input: Reading, Café
Sample output: Specialty coffee, Morning routine, Used bookstores, Kindle, Jazz café, Terrace seats

Output format: comma-separated list
"""

_NARRATIVE_PROMPT = """\
Below is the list of keywords the user chose as "things I am interested in":
{keywords}

From these, write a "narrative profile" describing what kind of person the user is and how
they like to spend their time. An AI agent will use it as a character sheet to plan events
as this person.

[Requirements]
- 3 to 5 natural sentences.
- Do not just list keywords; imagine lifestyle and values ("prefers ..., spends days off ...").
- Positive and relatable, so the user thinks "that's me!".
- No first person; describe objectively ("A person who ...").

Sample:
A person who enjoys intellectual stimulation in calm surroundings. On days off they get lost in
a book at a favorite café or sharpen their sensibility at art museums. They are also keen on the
latest gadgets and technology, and find joy in anything that feeds their curiosity.
"""


def stage1_categories_prompt() -> str:
    return _STAGE1_PROMPT


def stage2_genres_prompt(selected_categories: list[str]) -> str:
    return _STAGE2_PROMPT.format(selected=", ".join(selected_categories))


def stage3_keywords_prompt(selected_genres: list[str]) -> str:
    return _STAGE3_PROMPT.format(selected=", ".join(selected_genres))


def master_narrative_prompt(keywords: list[str]) -> str:
    return _NARRATIVE_PROMPT.format(keywords=", ".join(keywords))
