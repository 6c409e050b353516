"""Outbound chat and whisper lines.

``say``/``whisper`` only queue the formatted line so callers on the dispatch
path never wait on a socket; ``run`` writes them out in order.
"""

from __future__ import annotations

import asyncio
import logging

from ..logs.logger import logger
from .connection import TwitchConnection

WHISPER_CHANNEL = "jtv"


def format_chat(room: str, text: str) -> str:
    return f"PRIVMSG #{room.lstrip('#')} :{text}"


def format_whisper(user: str, text: str) -> str:
    return f"PRIVMSG #{WHISPER_CHANNEL} :/w {user} {text}"


class IRCOutbound:
    def __init__(
        self,
        chat: TwitchConnection,
        whisper: TwitchConnection,
        room: str,
    ):
        self.chat = chat
        self.whisper_connection = whisper
        self.room = room.lstrip("#").lower()
        self.queue: asyncio.Queue[tuple[TwitchConnection, str]] = asyncio.Queue()

    def say(self, text: str) -> None:
        self.queue.put_nowait((self.chat, format_chat(self.room, text)))

    def whisper(self, user: str, text: str) -> None:
        self.queue.put_nowait((self.whisper_connection, format_whisper(user, text)))

    async def flush_one(self) -> bool:
        connection, line = await self.queue.get()
        try:
            sent = await connection.write_line(line)
        finally:
            self.queue.task_done()
        logger.log_event(
            "chat",
            "sent" if sent else "send_failed",
            level=logging.DEBUG if sent else logging.WARNING,
            user=connection.username,
            channel=self.room,
            line=line,
        )
        return sent

    async def run(self) -> None:
        while True:
            await self.flush_one()


__all__ = ["IRCOutbound", "format_chat", "format_whisper", "WHISPER_CHANNEL"]
