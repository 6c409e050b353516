"""Spam filter with escalating timeouts and a persisted ban list.

Rules run in a fixed order (ASCII art, blacklist, caps, links, wall of text)
and the first failing rule decides the reason. Each offence moves the sender
one step along ``SpamSettings.timeouts``; once the steps are used up the
sender is banned and recorded in the banned users store.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from ..config.storage import JsonStore
from ..errors.chat import ChatErrorKind, Result
from ..errors.handling import log_error
from ..errors.internal import InternalError
from ..logs.logger import logger
from .models import AssembledMessage, MessageKind, Sender
from .spam_settings import RuleSettings, SpamSettings, apply_setting_update

_LINK_PATTERN = re.compile(r"([a-zA-Z0-9]+)\.([a-zA-Z]{2,})")
_WHITESPACE = re.compile(r"\s+")
_WILDCARD = "*"

REASON_ASCII = "excessive ascii"
REASON_BLACKLIST = "use of blacklisted word(s)"
REASON_CAPS = "excessive caps"
REASON_LINKS = "posting links"
REASON_WALL = "wall of text"


class Moderation(Protocol):
    async def timeout(self, user: str, seconds: int, reason: str) -> None: ...

    async def ban(self, user: str, reason: str) -> None: ...


class WhisperSink(Protocol):
    def whisper(self, user: str, text: str) -> None: ...


@dataclass(frozen=True, slots=True)
class SpamAction:
    """What to do with a sender after a failed check."""

    user: str
    reason: str
    timeout: int | None

    @property
    def is_ban(self) -> bool:
        return self.timeout is None


def _percent(count: int, total: int) -> int:
    return 100 * count // total if total else 0


def _is_box_drawing(byte: int) -> bool:
    return 175 < byte < 224 or byte == 254


def _exempt(sender: Sender, rule: RuleSettings) -> bool:
    return not rule.enabled or sender.meets(rule.permission)


class SpamFilter:
    def __init__(
        self,
        settings_store: JsonStore,
        banned_store: JsonStore,
        blacklist_store: JsonStore,
    ):
        self.settings_store = settings_store
        self.banned_store = banned_store
        self.blacklist_store = blacklist_store
        self.settings = SpamSettings()
        self.banned_users: list[str] = []
        self.blacklist: list[str] = []
        self._violations: dict[str, int] = {}

    def load(self) -> None:
        raw = self.settings_store.load(default=None)
        if isinstance(raw, dict):
            try:
                self.settings = SpamSettings.from_dict(raw)
            except ValueError as e:
                logger.log_event(
                    "spam", "settings_invalid", level=logging.WARNING, error=str(e)
                )
        self.banned_users = self._load_names(self.banned_store)
        self.blacklist = self._load_names(self.blacklist_store)
        logger.log_event(
            "spam",
            "loaded",
            banned=len(self.banned_users),
            blacklisted=len(self.blacklist),
        )

    @staticmethod
    def _load_names(store: JsonStore) -> list[str]:
        raw = store.load(default=[])
        if not isinstance(raw, list):
            return []
        return list(dict.fromkeys(str(v).strip() for v in raw if str(v).strip()))

    # Rule checks -------------------------------------------------------

    def violation(self, message: AssembledMessage) -> str | None:
        """Return the reason ``message`` is spam, or None when it passes."""
        if message.kind is not MessageKind.CHAT:
            return None
        settings = self.settings
        sender = message.sender
        if not settings.enabled or sender.meets(settings.permission):
            return None
        body = message.body
        checks: list[tuple[RuleSettings, Callable[[str], bool], str]] = [
            (settings.ascii, self._ascii_spam, REASON_ASCII),
            (settings.blacklist, self._blacklisted, REASON_BLACKLIST),
            (settings.caps, self._caps_spam, REASON_CAPS),
            (settings.links, self._has_link, REASON_LINKS),
            (settings.wall, self._wall_spam, REASON_WALL),
        ]
        for rule, check, reason in checks:
            if _exempt(sender, rule):
                continue
            if check(body):
                return reason
        return None

    def _ascii_spam(self, body: str) -> bool:
        rule = self.settings.ascii
        compact = _WHITESPACE.sub("", body)
        if not compact or len(compact) < rule.length:
            return False
        encoded = compact.encode("cp437", errors="replace")
        count = sum(1 for byte in encoded if _is_box_drawing(byte))
        return _percent(count, len(encoded)) > rule.percent

    def _caps_spam(self, body: str) -> bool:
        rule = self.settings.caps
        compact = _WHITESPACE.sub("", body)
        if not compact or len(compact) < rule.length:
            return False
        count = sum(1 for ch in compact if ch == ch.upper())
        return _percent(count, len(compact)) > rule.percent

    def _blacklisted(self, body: str) -> bool:
        for entry in self.blacklist:
            if entry.startswith(_WILDCARD):
                phrase = entry[len(_WILDCARD) :]
                if phrase and phrase in body:
                    return True
            elif re.search(rf"\b{re.escape(entry)}\b", body, re.IGNORECASE):
                return True
        return False

    @staticmethod
    def _has_link(body: str) -> bool:
        return _LINK_PATTERN.search(body) is not None

    def _wall_spam(self, body: str) -> bool:
        return len(body.strip()) > self.settings.wall.length

    # Escalation ----------------------------------------------------------

    def record_violation(self, user: str, reason: str) -> SpamAction:
        """Advance ``user`` one escalation step and return the resulting action."""
        key = user.lower()
        count = self._violations.get(key, 0)
        steps = self.settings.timeouts
        if count < len(steps):
            self._violations[key] = count + 1
            return SpamAction(user=user, reason=reason, timeout=steps[count])
        self._remember_ban(user)
        return SpamAction(user=user, reason=reason, timeout=None)

    def violations(self, user: str) -> int:
        return self._violations.get(user.lower(), 0)

    def _remember_ban(self, user: str) -> None:
        if any(name.lower() == user.lower() for name in self.banned_users):
            return
        self.banned_users.append(user)
        try:
            self.banned_store.save(self.banned_users)
        except OSError as e:
            log_error("Could not save banned users", e, context={"user": user})

    async def punish(
        self,
        message: AssembledMessage,
        reason: str,
        moderation: Moderation,
        whispers: WhisperSink,
    ) -> SpamAction:
        """Escalate the sender of a failed ``message`` and call the moderation API."""
        action = self.record_violation(message.sender.name, reason)
        logger.log_event(
            "spam",
            "ban" if action.is_ban else "timeout",
            level=logging.WARNING,
            user=action.user,
            channel=message.room,
            reason=reason,
            seconds=action.timeout,
        )
        try:
            if action.is_ban:
                whispers.whisper(action.user, f"Banned for {reason}.")
                await moderation.ban(action.user, f"{reason} [bot]")
            else:
                whispers.whisper(action.user, f"Timed out for {reason}. [warning]")
                await moderation.timeout(
                    action.user, int(action.timeout or 0), f"{reason} [warning - bot]"
                )
        except InternalError as e:
            log_error("Spam moderation request failed", e, context={"user": action.user})
        return action

    # Runtime configuration -----------------------------------------------

    def update_settings(self, text: str) -> Result[str]:
        result = apply_setting_update(self.settings, text)
        if not result.ok or result.value is None:
            return Result(error=result.error)
        label, updated = result.value
        try:
            self.settings_store.save(updated.to_dict())
        except OSError as e:
            log_error("Could not save spam settings", e)
            return Result.failure(ChatErrorKind.TRANSIENT_IO, "could not save spam settings")
        self.settings = updated
        logger.log_event("spam", "settings_updated", setting=label)
        return Result.success(label)

    def add_blacklisted(self, words: list[str]) -> Result[list[str]]:
        new = [w for w in dict.fromkeys(words) if w and w not in self.blacklist]
        if not new:
            return Result.failure(ChatErrorKind.EXISTS, "no new blacklisted words found")
        return self._save_blacklist(self.blacklist + new, new)

    def edit_blacklisted(self, old: str, new: str) -> Result[list[str]]:
        if not old or not new:
            return Result.failure(ChatErrorKind.SYNTAX, "expected 'old, new'")
        if old not in self.blacklist:
            return Result.failure(ChatErrorKind.MISSING, f"{old} is not blacklisted")
        updated = [w for w in self.blacklist if w != old]
        if new not in updated:
            updated.append(new)
        return self._save_blacklist(updated, [new])

    def remove_blacklisted(self, words: list[str]) -> Result[list[str]]:
        gone = [w for w in dict.fromkeys(words) if w in self.blacklist]
        if not gone:
            return Result.failure(ChatErrorKind.MISSING, "none of those words are blacklisted")
        return self._save_blacklist([w for w in self.blacklist if w not in gone], gone)

    def _save_blacklist(self, updated: list[str], changed: list[str]) -> Result[list[str]]:
        try:
            self.blacklist_store.save(updated)
        except OSError as e:
            log_error("Could not save blacklist", e)
            return Result.failure(ChatErrorKind.TRANSIENT_IO, "could not save the blacklist")
        self.blacklist = updated
        return Result.success(changed)


__all__ = [
    "SpamFilter",
    "SpamAction",
    "Moderation",
    "REASON_ASCII",
    "REASON_BLACKLIST",
    "REASON_CAPS",
    "REASON_LINKS",
    "REASON_WALL",
]
