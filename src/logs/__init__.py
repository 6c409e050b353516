"""Project logging package.

Holds the event template catalog and the BotLogger used across the bot.
Import stdlib logging directly, never through this package name.
"""

from .event_catalog import EVENT_TEMPLATES, reload_event_templates  # noqa: F401
from .logger import BotLogger, logger  # noqa: F401

__all__ = ["BotLogger", "logger", "EVENT_TEMPLATES", "reload_event_templates"]
