from __future__ import annotations

from src.chat.models import MessageKind, PermissionTier
from src.chat.notifier import Notifier
from src.errors.chat import ChatError, ChatErrorKind
from tests.fixtures.chat_fixtures import BOT_NAME, RecordingSink, make_message


def test_success_is_said_in_chat(notifier, sink):
    notifier.success("Foo", "add", "command", "!hi")
    assert sink.said == ['Foo successfully added the command, "!hi"']
    assert sink.whispers == []


def test_failure_is_whispered(notifier, sink):
    notifier.failure(
        "Foo", "remove", "command", "!rules", ChatError(ChatErrorKind.PERMANENT, "is permanent")
    )
    assert sink.whispers == [("Foo", 'Failed to remove the command, "!rules": is permanent')]
    assert sink.said == []


def test_reply_follows_message_kind(notifier, sink):
    notifier.reply(make_message("!x"), "in chat")
    notifier.reply(make_message("!x", sender="Foo", kind=MessageKind.WHISPER), "private")
    assert sink.said == ["in chat"]
    assert sink.whispers == [("Foo", "private")]


def test_bot_sender():
    sender = Notifier(RecordingSink(), BOT_NAME, "streamer").bot_sender
    assert sender.name == BOT_NAME
    assert sender.tier is PermissionTier.MODERATOR
