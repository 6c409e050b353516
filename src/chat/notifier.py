"""User-facing confirmations and failure notices."""

from __future__ import annotations

from typing import Protocol

from ..errors.chat import ChatError
from .models import AssembledMessage, MessageKind, PermissionTier, Sender

_PAST_TENSE = {
    "add": "added",
    "edit": "edited",
    "remove": "removed",
    "update": "updated",
}


class OutboundSink(Protocol):
    """Where outbound text goes: the broadcaster's room or a whisper."""

    def say(self, text: str) -> None: ...

    def whisper(self, user: str, text: str) -> None: ...


class Notifier:
    """Formats confirmations for chat and failures for whispers.

    Successful mutations are announced in the room; failures are whispered
    to whoever asked so the room stays quiet.
    """

    def __init__(self, sink: OutboundSink, bot_name: str, broadcaster: str):
        self.sink = sink
        self.bot_name = bot_name
        self.broadcaster = broadcaster

    @property
    def bot_sender(self) -> Sender:
        return Sender(name=self.bot_name, tier=PermissionTier.MODERATOR)

    def say(self, text: str) -> None:
        self.sink.say(text)

    def whisper(self, user: str, text: str) -> None:
        self.sink.whisper(user, text)

    def reply(self, message: AssembledMessage, text: str) -> None:
        """Answer in the room for chat messages, by whisper for whispers."""
        if message.kind is MessageKind.WHISPER:
            self.sink.whisper(message.sender.name, text)
        else:
            self.sink.say(text)

    def success(self, user: str, operation: str, obj: str, name: str) -> None:
        verb = _PAST_TENSE.get(operation, f"{operation}ed")
        self.sink.say(f'{user} successfully {verb} the {obj}, "{name}"')

    def failure(
        self, user: str, operation: str, obj: str, name: str, reason: ChatError | str
    ) -> None:
        self.sink.whisper(user, f'Failed to {operation} the {obj}, "{name}": {reason}')


__all__ = ["Notifier", "OutboundSink"]
