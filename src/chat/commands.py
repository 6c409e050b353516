"""Command table backed by two line stores (permanent and runtime).

Store line format::

    !key [scope] [permission] [cooldown] response text

All three bracketed tags are optional and appear in that order. A tag is only
consumed when it parses, so a response that starts with a variable key such as
``[site]`` keeps it.
"""

from __future__ import annotations

import logging
import re

from ..config.storage import LineStore
from ..errors.chat import ChatError, ChatErrorKind, Result
from ..logs.logger import logger
from .models import Command, PermissionTier, Scope
from .variables import VariableTable

_COOLDOWN_TAG = re.compile(r"^(\d+(?:\.\d+)?)s$", re.IGNORECASE)
_COMMENT_PREFIX = "//"


def check_command_key(key: str) -> ChatError | None:
    if len(key) < 2 or not key.startswith("!"):
        return ChatError(
            ChatErrorKind.SYNTAX, "command keys start with '!' and have a name"
        )
    if any(ch in key for ch in " []"):
        return ChatError(
            ChatErrorKind.SYNTAX, "command keys cannot contain spaces or brackets"
        )
    return None


def split_key(text: str) -> tuple[str, str]:
    """Split ``"!key rest of line"`` into ``("!key", "rest of line")``."""
    key, _, rest = text.strip().partition(" ")
    return key, rest.strip()


def strip_tags(
    raw: str,
) -> tuple[Scope | None, PermissionTier | None, float | None, str]:
    """Peel the optional ``[scope] [permission] [Ns]`` tags off a response."""
    scope: Scope | None = None
    permission: PermissionTier | None = None
    cooldown: float | None = None
    stage = 0
    text = raw.strip()
    while text.startswith("[") and "]" in text and stage < 3:
        inner, _, rest = text[1:].partition("]")
        consumed = False
        if stage == 0 and (parsed_scope := Scope.parse(inner)) is not None:
            scope, stage, consumed = parsed_scope, 1, True
        elif stage <= 1 and (parsed_tier := PermissionTier.parse(inner)) is not None:
            permission, stage, consumed = parsed_tier, 2, True
        elif match := _COOLDOWN_TAG.match(inner.strip()):
            cooldown, stage, consumed = float(match.group(1)), 3, True
        if not consumed:
            break
        text = rest.strip()
    return scope, permission, cooldown, text


def _first_word(line: str) -> str:
    return line.strip().split(" ", 1)[0]


class CommandTable:
    """In-memory command lookup mirrored to the permanent and runtime stores."""

    def __init__(
        self,
        variables: VariableTable,
        permanent_store: LineStore,
        store: LineStore,
        default_cooldown: float = 0.0,
    ):
        self.variables = variables
        self.permanent_store = permanent_store
        self.store = store
        self.default_cooldown = default_cooldown
        self._commands: dict[str, Command] = {}

    def __len__(self) -> int:
        return len(self._commands)

    def exists(self, key: str) -> bool:
        return key in self._commands

    def get(self, key: str) -> Command | None:
        return self._commands.get(key)

    def keys(self) -> list[str]:
        return list(self._commands)

    def load(self) -> int:
        for store, permanent in ((self.permanent_store, True), (self.store, False)):
            for number, line in enumerate(store.read_lines(), start=1):
                stripped = line.strip()
                if not stripped or stripped.startswith(_COMMENT_PREFIX):
                    continue
                key, raw = split_key(stripped)
                result = self._build(key, raw, permanent=permanent)
                if not result.ok or result.value is None:
                    logger.log_event(
                        "commands",
                        "load_skipped",
                        level=logging.WARNING,
                        path=store.path.name,
                        line=number,
                        reason=str(result.error),
                    )
                    continue
                if key in self._commands:
                    logger.log_event(
                        "commands",
                        "load_skipped",
                        level=logging.WARNING,
                        path=store.path.name,
                        line=number,
                        reason=f"{key} already exists",
                    )
                    continue
                self._commands[key] = result.value
        logger.log_event("commands", "loaded", count=len(self._commands))
        return len(self._commands)

    def add(self, key: str, raw_response: str) -> Result[Command]:
        result = self._build(key, raw_response, permanent=False)
        if not result.ok or result.value is None:
            return result
        if key in self._commands:
            return Result.failure(ChatErrorKind.EXISTS, f"{key} already exists")
        command = result.value
        try:
            self.store.append(command.serialize())
        except OSError as e:
            return self._io_failure(key, e)
        self._commands[key] = command
        logger.log_event("commands", "added", key=key)
        return Result.success(command)

    def edit(self, key: str, raw_response: str) -> Result[Command]:
        existing = self._commands.get(key)
        if existing is None:
            problem = check_command_key(key)
            if problem:
                return Result(error=problem)
            return Result.failure(ChatErrorKind.MISSING, f"{key} does not exist")
        result = self._build(key, raw_response, permanent=existing.permanent)
        if not result.ok or result.value is None:
            return result
        command = result.value
        command.last_used = existing.last_used
        store = self.permanent_store if existing.permanent else self.store
        try:
            store.replace_first(lambda line: _first_word(line) == key, None)
            store.append(command.serialize())
        except OSError as e:
            return self._io_failure(key, e)
        self._commands[key] = command
        logger.log_event("commands", "edited", key=key)
        return Result.success(command)

    def remove(self, key: str) -> Result[Command]:
        existing = self._commands.get(key)
        if existing is None:
            return Result.failure(ChatErrorKind.MISSING, f"{key} does not exist")
        if existing.permanent:
            return Result.failure(
                ChatErrorKind.PERMANENT, f"{key} is permanent and cannot be removed"
            )
        try:
            self.store.replace_first(lambda line: _first_word(line) == key, None)
        except OSError as e:
            return self._io_failure(key, e)
        del self._commands[key]
        logger.log_event("commands", "removed", key=key)
        return Result.success(existing)

    def lookup(self, body: str) -> Command | None:
        """Return the first command whose key appears as a word of ``body``."""
        for word in body.split():
            command = self._commands.get(word)
            if command is not None:
                return command
        return None

    def _build(self, key: str, raw_response: str, *, permanent: bool) -> Result[Command]:
        problem = check_command_key(key)
        if problem:
            return Result(error=problem)
        scope, permission, cooldown, text = strip_tags(raw_response)
        response = self.variables.expand(text).strip()
        if not response:
            return Result.failure(ChatErrorKind.SYNTAX, "the response cannot be empty")
        scope = scope or Scope.BOTH
        permission = permission or PermissionTier.VIEWER
        if scope is Scope.WHISPER and permission is not PermissionTier.VIEWER:
            logger.log_event(
                "commands",
                "whisper_permission_reset",
                level=logging.WARNING,
                key=key,
                permission=permission.label,
            )
            permission = PermissionTier.VIEWER
        return Result.success(
            Command(
                key=key,
                response=response,
                permission=permission,
                scope=scope,
                permanent=permanent,
                cooldown=self.default_cooldown if cooldown is None else cooldown,
            )
        )

    @staticmethod
    def _io_failure(key: str, error: OSError) -> Result[Command]:
        logger.log_event(
            "commands", "save_failed", level=logging.ERROR, key=key, error=str(error)
        )
        return Result.failure(ChatErrorKind.TRANSIENT_IO, "could not save commands")


__all__ = ["CommandTable", "check_command_key", "split_key", "strip_tags"]
