"""
VibeCalendar — Entry Point.

Single entry point: `python main.py` starts the Telegram bot.
"""

import logging

from vibecal.config import settings

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG_MODE else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from vibecal.bot.telegram_bot import main

if __name__ == "__main__":
    main()
