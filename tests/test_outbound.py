from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.irc.connection import TwitchConnection
from src.irc.outbound import IRCOutbound, format_chat, format_whisper


def _connection(name: str, sent: bool = True) -> MagicMock:
    conn = MagicMock(spec=TwitchConnection)
    conn.name = name
    conn.username = "chatbot"
    conn.write_line = AsyncMock(return_value=sent)
    return conn


def test_formats():
    assert format_chat("#streamer", "hello") == "PRIVMSG #streamer :hello"
    assert format_whisper("Foo", "psst") == "PRIVMSG #jtv :/w Foo psst"


@pytest.mark.asyncio
async def test_lines_go_to_their_connection_in_order():
    chat, whisper = _connection("chat"), _connection("whisper")
    outbound = IRCOutbound(chat, whisper, "#Streamer")
    outbound.say("first")
    outbound.whisper("Foo", "second")
    outbound.say("third")

    assert await outbound.flush_one()
    assert await outbound.flush_one()
    assert await outbound.flush_one()

    assert [c.args[0] for c in chat.write_line.await_args_list] == [
        "PRIVMSG #streamer :first",
        "PRIVMSG #streamer :third",
    ]
    whisper.write_line.assert_awaited_once_with("PRIVMSG #jtv :/w Foo second")
    assert outbound.queue.empty()


@pytest.mark.asyncio
async def test_failed_write_reported():
    chat = _connection("chat", sent=False)
    outbound = IRCOutbound(chat, _connection("whisper"), "streamer")
    outbound.say("hello")
    assert not await outbound.flush_one()
