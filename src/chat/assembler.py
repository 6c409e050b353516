"""Turn raw IRC lines into :class:`AssembledMessage` objects."""

from __future__ import annotations

from ..irc.parser import ParsedIRC, parse_irc_line
from .commands import CommandTable
from .models import AssembledMessage, MessageKind, PermissionTier, Sender
from .sender import resolve_sender

TWITCH_NOTIFY = "twitchnotify"
_KINDS = {
    "PRIVMSG": MessageKind.CHAT,
    "WHISPER": MessageKind.WHISPER,
    "USERNOTICE": MessageKind.CHAT,
}


def _room(parsed: ParsedIRC) -> str:
    if not parsed.middle:
        return ""
    if parsed.command == "WHISPER":
        return parsed.middle[0].lstrip("#")
    for token in parsed.middle:
        if token.startswith("#"):
            return token[1:]
    return parsed.middle[0]


class MessageAssembler:
    def __init__(self, commands: CommandTable, broadcaster: str, bot_name: str):
        self.commands = commands
        self.broadcaster = broadcaster
        self.bot_name = bot_name

    def assemble(self, line: str | ParsedIRC) -> AssembledMessage | None:
        """Build a message from a chat, whisper or user notice line.

        Other verbs (PING, JOIN, numerics, ...) return None.
        """
        parsed = parse_irc_line(line) if isinstance(line, str) else line
        kind = _KINDS.get(parsed.command)
        if kind is None:
            return None
        body = parsed.trailing_text.strip()
        message = AssembledMessage(
            room=_room(parsed),
            body=body,
            kind=kind,
            sender=resolve_sender(parsed.tags, parsed.prefix, self.broadcaster),
            tags=dict(parsed.tags),
        )
        if parsed.command == "USERNOTICE":
            return self._as_notice(message, self._resub_text(message))
        if (
            parsed.command == "PRIVMSG"
            and message.sender.name.lower() == TWITCH_NOTIFY
            and "just subscribed" in body
        ):
            subscriber = body.split(" ", 1)[0]
            return self._as_notice(message, f"Thank you for subscribing, {subscriber}!")
        message.command = self.commands.lookup(body)
        return message

    @staticmethod
    def _resub_text(message: AssembledMessage) -> str:
        name = message.tags.get("display-name") or message.tags.get("login", "")
        months = message.tags.get("msg-param-months") or message.tags.get(
            "msg-param-cumulative-months"
        )
        if months and months.isdigit() and int(months) > 1:
            return f"Thank you for {months} months of continued support, {name}!"
        return f"Thank you for the continued support, {name}!"

    def _as_notice(self, message: AssembledMessage, text: str) -> AssembledMessage:
        message.body = text
        message.kind = MessageKind.NOTICE
        message.sender = Sender(name=self.bot_name, tier=PermissionTier.MODERATOR)
        message.command = None
        return message


__all__ = ["MessageAssembler", "TWITCH_NOTIFY"]
