"""Built-in chat commands.

Every handler receives the assembled message; its argument is whatever
follows the command key in the body. Commands without a built-in handler
answer with their stored response after variable expansion.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

from ..api.auth import AuthenticatedClient
from ..chat.commands import CommandTable, split_key
from ..chat.models import AssembledMessage
from ..chat.notifier import Notifier
from ..chat.quotes import QuoteBook
from ..chat.spam_filter import SpamFilter
from ..chat.variables import VariableTable, parse_definition
from ..errors.chat import ChatError, ChatErrorKind
from ..errors.internal import InternalError

Handler = Callable[[AssembledMessage], Awaitable[None]]

SONG_UNAVAILABLE = "Failed to retrieve song data"
NO_QUOTES = "There are no quotes yet!"


def command_argument(message: AssembledMessage) -> str:
    """Text after the command key, or the empty string."""
    if message.command is None:
        return ""
    key = re.escape(message.command.key)
    match = re.search(rf"(?<!\S){key}(?!\S)", message.body)
    if match is None:
        return ""
    return message.body[match.end() :].strip()


def format_duration(elapsed: timedelta) -> str:
    """``1 day, 2 hours, 5 seconds``; zero parts are left out."""
    total = max(0, int(elapsed.total_seconds()))
    days, rest = divmod(total, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    parts = [
        f"{value} {unit}{'' if value == 1 else 's'}"
        for value, unit in (
            (days, "day"),
            (hours, "hour"),
            (minutes, "minute"),
            (seconds, "second"),
        )
        if value
    ]
    return ", ".join(parts) if parts else "0 seconds"


def _unwrap_parentheses(text: str) -> str:
    text = text.strip()
    if text.startswith("(") and text.endswith(")"):
        return text[1:-1]
    return text


class CommandHandlers:  # pylint: disable=too-many-instance-attributes
    """Routes a command message to its built-in handler by lower-cased key."""

    def __init__(
        self,
        *,
        commands: CommandTable,
        variables: VariableTable,
        quotes: QuoteBook,
        spam: SpamFilter,
        notifier: Notifier,
        client: AuthenticatedClient,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.commands = commands
        self.variables = variables
        self.quotes = quotes
        self.spam = spam
        self.notifier = notifier
        self.client = client
        self._now = now
        self.routes: dict[str, Handler] = {
            "!addcommand": self.add_command,
            "!editcommand": self.edit_command,
            "!removecommand": self.remove_command,
            "!addvariable": self.add_variable,
            "!editvariable": self.edit_variable,
            "!removevariable": self.remove_variable,
            "!settitle": self.set_title,
            "!setgame": self.set_game,
            "!setdelay": self.set_delay,
            "!uptime": self.uptime,
            "!howlong": self.how_long,
            "!music": self.music,
            "!quote": self.quote,
            "!quotes": self.count_quotes,
            "!addquote": self.add_quote,
            "!setfilter": self.set_filter,
            "!commands": self.list_commands,
            "!shoutout": self.shoutout,
            "!blacklist": self.blacklist,
        }

    @property
    def broadcaster(self) -> str:
        return self.notifier.broadcaster

    async def handle(self, message: AssembledMessage) -> None:
        if message.command is None:
            return
        handler = self.routes.get(message.command.key.lower(), self.default_response)
        await handler(message)

    async def default_response(self, message: AssembledMessage) -> None:
        if message.command is None:
            return
        self.notifier.reply(message, self.variables.expand(message.command.response))

    # Commands ------------------------------------------------------------

    def _extract_variables(self, message: AssembledMessage, text: str) -> str:
        text, added, failures = self.variables.extract_definitions(text)
        user = message.sender.name
        for variable in added:
            self.notifier.success(user, "add", "variable", variable.key)
        for error in failures:
            self.notifier.failure(user, "add", "variable", "", error)
        return text

    async def add_command(self, message: AssembledMessage) -> None:
        key, raw = split_key(command_argument(message))
        raw = self._extract_variables(message, raw)
        result = self.commands.add(key, raw)
        self._report(message, "add", "command", key, result.error)

    async def edit_command(self, message: AssembledMessage) -> None:
        key, raw = split_key(command_argument(message))
        raw = self._extract_variables(message, raw)
        result = self.commands.edit(key, raw)
        self._report(message, "edit", "command", key, result.error)

    async def remove_command(self, message: AssembledMessage) -> None:
        key, _ = split_key(command_argument(message))
        result = self.commands.remove(key)
        self._report(message, "remove", "command", key, result.error)

    async def list_commands(self, message: AssembledMessage) -> None:
        self.notifier.reply(message, " ".join(self.commands.keys()))

    # Variables -----------------------------------------------------------

    async def add_variable(self, message: AssembledMessage) -> None:
        parsed = parse_definition(_unwrap_parentheses(command_argument(message)))
        if not parsed.ok or parsed.value is None:
            self._report(message, "add", "variable", "", parsed.error)
            return
        result = self.variables.add(parsed.value)
        self._report(message, "add", "variable", parsed.value.key, result.error)

    async def edit_variable(self, message: AssembledMessage) -> None:
        parsed = parse_definition(_unwrap_parentheses(command_argument(message)))
        if not parsed.ok or parsed.value is None:
            self._report(message, "edit", "variable", "", parsed.error)
            return
        result = self.variables.edit(parsed.value)
        self._report(message, "edit", "variable", parsed.value.key, result.error)

    async def remove_variable(self, message: AssembledMessage) -> None:
        key = command_argument(message).split(" ", 1)[0]
        result = self.variables.remove(key)
        self._report(message, "remove", "variable", key, result.error)

    # Quotes --------------------------------------------------------------

    async def quote(self, message: AssembledMessage) -> None:
        if not self.quotes.count():
            self.notifier.reply(message, NO_QUOTES)
            return
        argument = command_argument(message).split(" ", 1)[0]
        if not argument:
            quote = self.quotes.random_quote()
            self.notifier.reply(message, quote.serialize() if quote else NO_QUOTES)
            return
        try:
            index = int(argument)
        except ValueError:
            self._syntax(message, "retrieve", "quote", "the index must be a number", argument)
            return
        result = self.quotes.get(index)
        if result.error is not None or result.value is None:
            self._report(message, "retrieve", "quote", argument, result.error)
            return
        self.notifier.reply(message, result.value.serialize())

    async def count_quotes(self, message: AssembledMessage) -> None:
        total = self.quotes.count()
        if not total:
            self.notifier.reply(message, NO_QUOTES)
            return
        amount = "is 1 quote" if total == 1 else f"are {total} quotes"
        self.notifier.reply(
            message,
            f"There {amount}! Type \"!quote\" for a random quote or "
            f"\"!quote <index>\" for a specific one, counting from 0.",
        )

    async def add_quote(self, message: AssembledMessage) -> None:
        text = command_argument(message)
        result = self.quotes.add(text)
        name = result.value.text if result.value else text
        self._report(message, "add", "quote", name, result.error)

    # Spam filter ---------------------------------------------------------

    async def set_filter(self, message: AssembledMessage) -> None:
        text = command_argument(message)
        result = self.spam.update_settings(text)
        name = result.value or text.split(" ", 1)[0]
        self._report(message, "update", "spam setting", name, result.error)

    async def blacklist(self, message: AssembledMessage) -> None:
        action, _, rest = command_argument(message).partition(" ")
        words = [w.strip() for w in rest.split(",") if w.strip()]
        action = action.lower()
        obj = "blacklisted word(s)"
        if action == "add":
            result = self.spam.add_blacklisted(words)
        elif action == "remove":
            result = self.spam.remove_blacklisted(words)
        elif action == "edit":
            if len(words) != 2:
                self._report(
                    message,
                    "edit",
                    obj,
                    rest.strip(),
                    ChatError(ChatErrorKind.SYNTAX, "expected 'old, new'"),
                )
                return
            result = self.spam.edit_blacklisted(words[0], words[1])
            self._report(message, "edit", obj, f"{words[0]} -> {words[1]}", result.error)
            return
        else:
            self._report(
                message,
                "update",
                obj,
                action,
                ChatError(ChatErrorKind.SYNTAX, "expected add, edit or remove"),
            )
            return
        name = ", ".join(result.value) if result.value else ", ".join(words)
        self._report(message, action, obj, name, result.error)

    # Stream settings -----------------------------------------------------

    async def set_title(self, message: AssembledMessage) -> None:
        title = command_argument(message)
        if not title:
            self._syntax(message, "update", "title", "the title cannot be empty")
            return
        try:
            await self.client.update_channel(title=title)
        except InternalError:
            self._transient(message, "update", "title", title)
            return
        self.notifier.success(message.sender.name, "update", "title", title)

    async def set_game(self, message: AssembledMessage) -> None:
        game = command_argument(message)
        if not game:
            self._syntax(message, "update", "game", "the game cannot be empty")
            return
        try:
            game_id = await self.client.find_game_id(game)
            if game_id is None:
                self.notifier.failure(
                    message.sender.name,
                    "update",
                    "game",
                    game,
                    ChatError(ChatErrorKind.MISSING, "no game by that name"),
                )
                return
            await self.client.update_channel(game_id=game_id)
        except InternalError:
            self._transient(message, "update", "game", game)
            return
        self.notifier.success(message.sender.name, "update", "game", game)

    async def set_delay(self, message: AssembledMessage) -> None:
        text = command_argument(message)
        try:
            delay = int(text)
        except ValueError:
            delay = -1
        if delay < 0:
            self._syntax(
                message, "update", "delay", "the delay must be a whole number of seconds", text
            )
            return
        try:
            await self.client.update_channel(delay=delay)
        except InternalError:
            self._transient(message, "update", "delay", text)
            return
        self.notifier.success(message.sender.name, "update", "delay", str(delay))

    async def uptime(self, message: AssembledMessage) -> None:
        try:
            stream = await self.client.get_stream()
        except InternalError:
            self._transient(message, "retrieve", "uptime", self.broadcaster)
            return
        if stream is None or stream.started_at is None:
            self.notifier.reply(message, f"{self.broadcaster} is offline")
            return
        elapsed = format_duration(self._now() - stream.started_at)
        self.notifier.reply(message, f"{self.broadcaster} has been live for {elapsed}")

    async def how_long(self, message: AssembledMessage) -> None:
        user = message.sender.name
        try:
            followed = await self.client.followed_at(user)
        except InternalError:
            self._transient(message, "retrieve", "follow", user)
            return
        if followed is None:
            self.notifier.reply(message, f"{user} is not following {self.broadcaster}")
            return
        elapsed = format_duration(self._now() - followed)
        self.notifier.reply(
            message, f"{user} has been following {self.broadcaster} for {elapsed}"
        )

    async def shoutout(self, message: AssembledMessage) -> None:
        name = command_argument(message).split(" ", 1)[0].lstrip("@")
        if not name:
            self._syntax(message, "retrieve", "channel", "no channel given")
            return
        try:
            user = await self.client.get_user(name)
            channel = (
                await self.client.get_channel(str(user.get("id", ""))) if user else None
            )
        except InternalError:
            self._transient(message, "retrieve", "channel", name)
            return
        if not user:
            self.notifier.failure(
                message.sender.name,
                "retrieve",
                "channel",
                name,
                ChatError(ChatErrorKind.MISSING, "no channel by that name"),
            )
            return
        login = str(user.get("login") or name.lower())
        display = str(user.get("display_name") or login)
        text = f"Go check out {display} over at https://www.twitch.tv/{login} !"
        if channel and channel.game_name:
            text += f" They were last playing {channel.game_name}."
        self.notifier.say(text)

    async def music(self, message: AssembledMessage) -> None:
        if message.command is None:
            return
        path = Path(self.variables.expand(message.command.response).strip())
        try:
            song = path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError):
            song = ""
        self.notifier.reply(message, f"Current song: {song}" if song else SONG_UNAVAILABLE)

    # Reporting -----------------------------------------------------------

    def _report(
        self,
        message: AssembledMessage,
        operation: str,
        obj: str,
        name: str,
        error: ChatError | None,
    ) -> None:
        if error is None:
            self.notifier.success(message.sender.name, operation, obj, name)
        else:
            self.notifier.failure(message.sender.name, operation, obj, name, error)

    def _syntax(
        self,
        message: AssembledMessage,
        operation: str,
        obj: str,
        reason: str,
        name: str = "",
    ) -> None:
        self.notifier.failure(
            message.sender.name,
            operation,
            obj,
            name,
            ChatError(ChatErrorKind.SYNTAX, reason),
        )

    def _transient(
        self, message: AssembledMessage, operation: str, obj: str, name: str
    ) -> None:
        self.notifier.failure(
            message.sender.name,
            operation,
            obj,
            name,
            ChatError(ChatErrorKind.TRANSIENT_IO, f"failed to {operation} the {obj}"),
        )


__all__ = ["CommandHandlers", "command_argument", "format_duration"]
