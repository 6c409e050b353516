"""Structured event logger for the chat bot."""

from __future__ import annotations

import logging
import os
import sys

import colorlog

from . import event_catalog

_EVENT_NAME_WIDTH = 32
_PREFIX_WIDTH = 24


def _debug_enabled() -> bool:
    return os.environ.get("DEBUG", "false").lower() in ("true", "1", "yes")


def _console_formatter() -> logging.Formatter:
    return colorlog.ColoredFormatter(
        "%(log_color)s%(levelname)-8s%(reset)s %(message)s",
        log_colors={
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "magenta",
        },
        stream=sys.stdout,
    )


def _render_template(domain: str, action: str, context: dict[str, object]) -> str:
    """Format the catalog template for the event, or derive text from its name.

    Derived text marks ``context`` with ``derived=True``.
    """
    template = event_catalog.EVENT_TEMPLATES.get((domain, action))
    if template is None:
        context.setdefault("derived", True)
        return f"{domain.replace('_', ' ')}: {action.replace('_', ' ')}"
    try:
        return template.format(**context)
    except (KeyError, IndexError, ValueError):
        return template


class BotLogger:
    """Thin wrapper turning ``(domain, action, **context)`` into log lines.

    Human readable text comes from the event template catalog when no
    explicit ``human`` text is given. ``user`` and ``channel`` keyword
    arguments are lifted into a fixed width ``[user#channel]`` prefix.
    """

    def __init__(
        self, name: str = "twitch_chatbot", log_file: str | None = None
    ) -> None:
        self.logger = logging.getLogger(name)
        self.log_file = log_file
        self.logger.handlers.clear()
        self.logger.propagate = False
        self.logger.setLevel(logging.DEBUG if _debug_enabled() else logging.INFO)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(_console_formatter())
        self.logger.addHandler(console_handler)

        if log_file:
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(
                logging.Formatter(
                    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
                )
            )
            self.logger.addHandler(file_handler)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)

    def log_event(
        self,
        domain: str,
        action: str,
        level: int = logging.INFO,
        human: str | None = None,
        *,
        exc_info: bool = False,
        **kwargs: object,
    ) -> None:
        if human is None:
            human = _render_template(domain, action, kwargs)
        self._log(level, f"{domain}_{action}".lower(), human, exc_info=exc_info, **kwargs)

    def _log(
        self,
        level: int,
        event_name: str,
        human_text: str,
        exc_info: bool = False,
        **kwargs: object,
    ) -> None:
        user = kwargs.pop("user", None)
        channel = kwargs.pop("channel", None)
        prefix = self._build_prefix(
            user if isinstance(user, str) else None,
            channel if isinstance(channel, str) else None,
        )
        if _debug_enabled():
            msg = self._build_debug_message(event_name, prefix, human_text, kwargs)
        else:
            msg = f"{prefix} {human_text}"
        self.logger.log(level, msg, exc_info=exc_info)

    @staticmethod
    def _build_prefix(user: str | None, channel: str | None) -> str:
        user_label = user or "system"
        core = f"{user_label}#{channel}" if channel else user_label
        return f"[{core.ljust(_PREFIX_WIDTH)[:_PREFIX_WIDTH]}]"

    @staticmethod
    def _build_debug_message(
        event_name: str, prefix: str, human_text: str, kwargs: dict[str, object]
    ) -> str:
        if len(event_name) <= _EVENT_NAME_WIDTH:
            ev = event_name.ljust(_EVENT_NAME_WIDTH)
        else:
            ev = event_name[: _EVENT_NAME_WIDTH - 1] + "…"
        base = f"{ev} {prefix} {human_text}"
        context = ", ".join(f"{k}={v}" for k, v in kwargs.items())
        if context:
            base = f"{base} ({context})"
        return base


logger = BotLogger()
