"""
VibeCalendar — Telegram Bot.

The bot is the user's window into the selfish calendar: it triggers AI
generation, shows the learned profile and preferences, collects memos,
runs the three-stage onboarding and reads the shared timeline.

Security-first: unauthorized users are silently ignored.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from functools import wraps
from typing import Any, Callable, Coroutine
from zoneinfo import ZoneInfo

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
)

from vibecal.config import settings
from vibecal.core.generator import GeneratedSchedule
from vibecal.core.preferences import PreferenceHistogram
from vibecal.core.profile import UserProfile
from vibecal.integrations.api_client import APIError
from vibecal.integrations.api_models import ReactionType, TimelineFeedItem
from vibecal.ports.calendar_port import CalendarError

logger = logging.getLogger(__name__)

MAX_PICKS = 3


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def _is_allowed(user: Any) -> bool:
    return user is not None and user.id in settings.ALLOWED_USER_IDS


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Decorator that silently ignores updates from unauthorized users."""

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        if not _is_allowed(user):
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return  # Silent ignore
        return await func(update, context)

    return wrapper


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _now() -> datetime:
    """Current wall-clock time in the configured timezone, as a naive datetime."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)


def parse_when(args: list[str], now: datetime) -> datetime:
    """Resolve `/generate [YYYY-MM-DD] [HH:MM]` arguments.

    A date alone keeps the current hour; no arguments means now.
    Raises ValueError for malformed input.
    """
    day = now.date()
    at = time(now.hour, 0)
    for arg in args:
        if "-" in arg:
            day = date.fromisoformat(arg)
        elif ":" in arg:
            hour, minute = arg.split(":", 1)
            at = time(int(hour), int(minute))
        else:
            raise ValueError(f"Unrecognized argument {arg!r}")
    return datetime.combine(day, at)


def parse_picks(text: str, options: list[str]) -> list[str]:
    """Map "1, 3" or "Reading, Movies" onto the offered options."""
    picks: list[str] = []
    lowered = {option.lower(): option for option in options}
    for raw in text.replace("、", ",").split(","):
        token = raw.strip()
        if not token:
            continue
        if token.isdigit() and 1 <= int(token) <= len(options):
            choice = options[int(token) - 1]
        elif token.lower() in lowered:
            choice = lowered[token.lower()]
        else:
            raise ValueError(f"'{token}' is not one of the options")
        if choice not in picks:
            picks.append(choice)
    return picks


def format_preferences(preferences: PreferenceHistogram) -> str:
    if preferences.total_events_count == 0:
        return "No events in the last month or the next one yet."

    def _top(counts: dict[str, int]) -> str:
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
        return ", ".join(f"{key} ({value})" for key, value in ranked if value) or "-"

    lines = [
        "*Your tendencies*",
        f"Events: {preferences.total_events_count}, "
        f"average {preferences.average_duration_minutes} min",
        f"Days: {_top(preferences.weekday_frequency)}",
        f"Time of day: {_top(preferences.time_slot_preference)}",
        f"Categories: {_top(preferences.category_distribution)}",
        f"Keywords: {', '.join(preferences.frequent_keywords) or '-'}",
    ]
    if preferences.free_time_slots:
        lines.append(f"Free slots: {len(preferences.free_time_slots)} of 28")
    return "\n".join(lines)


def format_profile(profile: UserProfile) -> str:
    lines = ["*Your vibe*", profile.vibe_description]
    if profile.master_narrative:
        lines += ["", profile.master_narrative]
    if profile.master_keywords:
        lines.append(f"\nCore interests: {', '.join(profile.master_keywords)}")
    if profile.keywords:
        lines.append("Learned interests: " + ", ".join(k.name for k in profile.keywords))
    if profile.routines:
        lines.append("Routines: " + ", ".join(profile.routines))
    if not profile.onboarding_completed:
        lines.append("\nTip: run /onboard to pick your core interests.")
    return "\n".join(lines)


def format_schedule(schedule: GeneratedSchedule) -> str:
    window = f"{schedule.start_time:%Y-%m-%d %H:%M} – {schedule.end_time:%H:%M}"
    reason = schedule.overwrite_reason or schedule.reason
    text = f"*{schedule.title}* [{schedule.category}]\n{window}"
    if reason:
        text += f"\n_{reason}_"
    return text


def format_feed_item(item: TimelineFeedItem) -> str:
    reaction = f" · you: {item.selected_reaction.value}" if item.selected_reaction else ""
    return (
        f"{item.author_name} {item.author_id} · {item.timestamp:%m/%d %H:%M}\n"
        f"{item.content}\n"
        f"❤ {item.likes}{reaction}"
    )


def _reaction_keyboard(item: TimelineFeedItem) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[
        InlineKeyboardButton(reaction.value, callback_data=f"react:{item.id}:{reaction.name}")
        for reaction in ReactionType
    ]])


# ---------------------------------------------------------------------------
# Basic commands
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — welcome message and command list."""
    await update.message.reply_text(
        "Welcome to *VibeCalendar*, the calendar that fills itself in!\n\n"
        "/generate [YYYY-MM-DD] [HH:MM] — let the AI plan something\n"
        "/suggest [YYYY-MM-DD] [force] — propose an event from your tendencies\n"
        "/prefs — your calendar tendencies\n"
        "/profile — your learned vibe\n"
        "/memo <text> — add a memo, /memos to list, /delmemo <id> to delete\n"
        "/onboard — pick your core interests\n"
        "/login <email> <password>, /logout — timeline account\n"
        "/feed — read the timeline",
        parse_mode="Markdown",
    )


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_generate(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /generate — run the full pipeline and write the event."""
    service = context.bot_data["service"]
    api = context.bot_data["api"]

    now = _now()
    try:
        when = parse_when(context.args or [], now)
    except ValueError:
        await update.message.reply_text("Usage: /generate [YYYY-MM-DD] [HH:MM]")
        return

    await update.message.reply_text("Reading your calendar and thinking...")
    try:
        result = await service.generate_for(when, publish=api.auth.is_authenticated, now=now)
    except CalendarError as exc:
        logger.error("/generate calendar error: %s", exc)
        await update.message.reply_text("Couldn't save the event to your calendar. Please try again later.")
        return

    event = result.event
    end = f"{event.end:%H:%M}" if event.end else "?"
    text = (
        f"💡 *{event.title}*\n"
        f"{event.start:%Y-%m-%d %H:%M} – {end}\n\n"
        f"{result.generated.notes}"
    )
    if result.post is not None:
        text += f"\n\nPosted to the timeline: {result.post.content}"
    await update.message.reply_text(text, parse_mode="Markdown")


@authorized_only
async def cmd_suggest(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /suggest — propose an event and offer to add it."""
    service = context.bot_data["service"]
    args = list(context.args or [])
    force = "force" in args
    if force:
        args.remove("force")

    now = _now()
    try:
        target = date.fromisoformat(args[0]) if args else now.date()
    except ValueError:
        await update.message.reply_text("Usage: /suggest [YYYY-MM-DD] [force]")
        return

    schedule = await service.suggest(target, force=force, now=now)
    if schedule is None:
        await update.message.reply_text("No suggestion this time. Try again, or add 'force'.")
        return

    context.user_data["pending_schedule"] = schedule
    keyboard = InlineKeyboardMarkup([[
        InlineKeyboardButton("Add to calendar", callback_data="suggest:add"),
        InlineKeyboardButton("Skip", callback_data="suggest:skip"),
    ]])
    await update.message.reply_text(
        format_schedule(schedule), parse_mode="Markdown", reply_markup=keyboard,
    )


async def _handle_suggest_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle the Add/Skip buttons under a suggestion."""
    query = update.callback_query
    await query.answer()
    if not _is_allowed(query.from_user):
        return

    schedule: GeneratedSchedule | None = context.user_data.pop("pending_schedule", None)
    if schedule is None:
        await query.edit_message_text("This suggestion has expired.")
        return
    if query.data == "suggest:skip":
        await query.edit_message_text("Skipped.")
        return

    service = context.bot_data["service"]
    try:
        event = await service.add_schedule(schedule)
    except CalendarError as exc:
        logger.error("suggest callback calendar error: %s", exc)
        await query.edit_message_text("Couldn't add the event. Please try again later.")
        return
    await query.edit_message_text(f"✅ Added '{event.title}' at {event.start:%Y-%m-%d %H:%M}.")


@authorized_only
async def cmd_prefs(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /prefs — show the preference histogram."""
    preferences = await context.bot_data["service"].preferences(_now())
    await update.message.reply_text(format_preferences(preferences), parse_mode="Markdown")


@authorized_only
async def cmd_profile(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /profile — show the stored user profile."""
    profile = context.bot_data["service"].profile_store.load()
    await update.message.reply_text(format_profile(profile), parse_mode="Markdown")


# ---------------------------------------------------------------------------
# Memos
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_memo(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /memo <text> — store a memo for profile analysis."""
    content = " ".join(context.args or []).strip()
    if not content:
        await update.message.reply_text("Usage: /memo <text>")
        return

    memo = context.bot_data["memo_db"].add_memo(content)
    await update.message.reply_text(f"📝 Saved memo `{memo.id[:8]}`.", parse_mode="Markdown")


@authorized_only
async def cmd_memos(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /memos — list memos, newest first."""
    memos = context.bot_data["memo_db"].list_memos()
    if not memos:
        await update.message.reply_text("No memos yet. Add one with /memo <text>.")
        return

    lines = ["*Memos:*\n"]
    for memo in memos:
        lines.append(f"`{memo.id[:8]}` {memo.created_at:%m/%d} — {memo.content}")
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")


@authorized_only
async def cmd_delmemo(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /delmemo <id> — delete a memo by id or id prefix."""
    if not context.args:
        await update.message.reply_text("Usage: /delmemo <id>\nUse /memos to see IDs.")
        return

    memo_db = context.bot_data["memo_db"]
    prefix = context.args[0]
    matches = [m for m in memo_db.list_memos() if m.id.startswith(prefix)]
    if len(matches) != 1:
        await update.message.reply_text("No single memo matches that ID. Use /memos to see IDs.")
        return

    memo_db.delete_memo(matches[0].id)
    await update.message.reply_text("🗑 Memo deleted.")


# ---------------------------------------------------------------------------
# Onboarding: categories → genres → keywords
# ---------------------------------------------------------------------------


def _options_text(stage: int, options: list[str]) -> str:
    titles = {
        1: "Which areas interest you?",
        2: "Which genres sound good?",
        3: "Pick the keywords that feel like you:",
    }
    numbered = "\n".join(f"{i}. {option}" for i, option in enumerate(options, 1))
    return f"*Step {stage}/3* — {titles[stage]}\n{numbered}\n\nReply with /pick 1, 3 (up to {MAX_PICKS})."


@authorized_only
async def cmd_onboard(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /onboard — start the three-stage interest funnel."""
    analyzer = context.bot_data["service"].analyzer
    options = await analyzer.generate_stage1_categories()
    context.user_data["onboarding"] = {"stage": 1, "options": options}
    await update.message.reply_text(_options_text(1, options), parse_mode="Markdown")


@authorized_only
async def cmd_pick(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /pick — answer the current onboarding stage."""
    state = context.user_data.get("onboarding")
    if state is None:
        await update.message.reply_text("Nothing to pick right now. Start with /onboard.")
        return

    try:
        picks = parse_picks(" ".join(context.args or []), state["options"])
    except ValueError as exc:
        await update.message.reply_text(f"{exc}. Pick by number or name.")
        return
    if not picks or len(picks) > MAX_PICKS:
        await update.message.reply_text(f"Pick between 1 and {MAX_PICKS} options.")
        return

    service = context.bot_data["service"]
    analyzer = service.analyzer
    stage = state["stage"]

    if stage == 1:
        options = await analyzer.generate_stage2_genres(picks)
        context.user_data["onboarding"] = {"stage": 2, "options": options}
        await update.message.reply_text(_options_text(2, options), parse_mode="Markdown")
        return
    if stage == 2:
        options = await analyzer.generate_stage3_keywords(picks)
        context.user_data["onboarding"] = {"stage": 3, "options": options}
        await update.message.reply_text(_options_text(3, options), parse_mode="Markdown")
        return

    context.user_data.pop("onboarding", None)
    narrative = await analyzer.generate_master_narrative(picks)
    profile = analyzer.save_master_profile(picks, narrative)

    if service.timeline is not None and context.bot_data["api"].auth.is_authenticated:
        await service.timeline.sync_profile(profile)

    text = f"✨ Core interests saved: {', '.join(picks)}"
    if narrative:
        text += f"\n\n{narrative}"
    await update.message.reply_text(text)


# ---------------------------------------------------------------------------
# Timeline account and feed
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_login(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /login <email> <password>."""
    args = context.args or []
    if len(args) != 2:
        await update.message.reply_text("Usage: /login <email> <password>")
        return

    try:
        await update.message.delete()
    except TelegramError as exc:
        logger.warning("Could not delete login message: %s", exc)

    api = context.bot_data["api"]
    try:
        auth = await api.login(args[0], args[1])
    except APIError as exc:
        logger.error("/login failed: %s", exc)
        await update.effective_chat.send_message("Login failed. Check your email and password.")
        return
    await update.effective_chat.send_message(f"Logged in as {auth.user.username or auth.user.email}.")


@authorized_only
async def cmd_logout(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /logout."""
    context.bot_data["api"].logout()
    context.user_data.pop("feed", None)
    await update.message.reply_text("Logged out.")


@authorized_only
async def cmd_feed(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /feed — show the latest timeline posts with reaction buttons."""
    service = context.bot_data["service"]
    if service.timeline is None or not context.bot_data["api"].auth.is_authenticated:
        await update.message.reply_text("Log in first with /login <email> <password>.")
        return

    items = await service.timeline.fetch_feed(limit=10)
    if not items:
        await update.message.reply_text("The timeline is empty (or unreachable) right now.")
        return

    context.user_data["feed"] = {item.id: item for item in items}
    for item in items:
        await update.message.reply_text(format_feed_item(item), reply_markup=_reaction_keyboard(item))


async def _handle_reaction_callback(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle a reaction button under a feed post."""
    query = update.callback_query
    await query.answer()
    if not _is_allowed(query.from_user):
        return

    _, post_id, name = query.data.split(":", 2)
    item = context.user_data.get("feed", {}).get(post_id)
    if item is None or name not in ReactionType.__members__:
        await query.edit_message_text("This post is no longer loaded. Use /feed again.")
        return

    item = await context.bot_data["service"].timeline.react(item, ReactionType[name])
    await query.edit_message_text(format_feed_item(item), reply_markup=_reaction_keyboard(item))


# ---------------------------------------------------------------------------
# Application wiring
# ---------------------------------------------------------------------------


def build_service():
    """Create the default pipeline from settings."""
    from vibecal.adapters.calendar_factory import create_calendar_adapter
    from vibecal.core.classifier import EventPredictor
    from vibecal.core.profile import ProfileAnalyzer, ProfileStore
    from vibecal.core.timeline import TimelineService
    from vibecal.core.vibe_service import VibeService
    from vibecal.data.db import MemoDB
    from vibecal.integrations.api_client import VibeAPIClient

    memo_db = MemoDB()
    store = ProfileStore()
    api = VibeAPIClient()
    service = VibeService(
        calendar=create_calendar_adapter(),
        predictor=EventPredictor(),
        analyzer=ProfileAnalyzer(store, memo_db),
        profile_store=store,
        timeline=TimelineService(api),
    )
    return service, memo_db, api


def build_app(service=None, memo_db=None, api=None) -> Application:
    """Build and configure the Telegram Application with all handlers."""
    app = ApplicationBuilder().token(settings.TELEGRAM_BOT_TOKEN).build()

    if service is None or memo_db is None or api is None:
        default_service, default_memo_db, default_api = build_service()
        service = service or default_service
        memo_db = memo_db or default_memo_db
        api = api or default_api

    app.bot_data["service"] = service
    app.bot_data["memo_db"] = memo_db
    app.bot_data["api"] = api

    app.add_handler(CommandHandler("start", cmd_start))
    app.add_handler(CommandHandler("help", cmd_start))
    app.add_handler(CommandHandler("generate", cmd_generate))
    app.add_handler(CommandHandler("suggest", cmd_suggest))
    app.add_handler(CommandHandler("prefs", cmd_prefs))
    app.add_handler(CommandHandler("profile", cmd_profile))
    app.add_handler(CommandHandler("memo", cmd_memo))
    app.add_handler(CommandHandler("memos", cmd_memos))
    app.add_handler(CommandHandler("delmemo", cmd_delmemo))
    app.add_handler(CommandHandler("onboard", cmd_onboard))
    app.add_handler(CommandHandler("pick", cmd_pick))
    app.add_handler(CommandHandler("login", cmd_login))
    app.add_handler(CommandHandler("logout", cmd_logout))
    app.add_handler(CommandHandler("feed", cmd_feed))
    app.add_handler(CallbackQueryHandler(_handle_suggest_callback, pattern=r"^suggest:(add|skip)$"))
    app.add_handler(CallbackQueryHandler(_handle_reaction_callback, pattern=r"^react:"))

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.DEBUG if settings.DEBUG_MODE else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    if not settings.TELEGRAM_BOT_TOKEN:
        logger.critical("TELEGRAM_BOT_TOKEN is not set; cannot start the bot.")
        raise SystemExit(1)

    logger.info("Starting VibeCalendar bot...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()
