"""Read loop for one Twitch IRC connection."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable

from ..logs.logger import logger
from .connection import TwitchConnection
from .parser import parse_irc_line

LineHandler = Callable[[str], Awaitable[None] | None]


class IRCListener:
    """Owns the read loop: answers PING, reconnects on dead reads, hands off lines.

    Errors raised by the line handler are logged and the loop keeps going.
    """

    def __init__(self, connection: TwitchConnection, on_line: LineHandler):
        self.connection = connection
        self.on_line = on_line
        self.running = False

    def stop(self) -> None:
        self.running = False

    async def listen(self) -> None:
        self.running = True
        logger.log_event(
            "irc",
            "listener_start",
            user=self.connection.username,
            connection=self.connection.name,
        )
        try:
            while self.running:
                await self._process_read_cycle()
        finally:
            self.running = False
            logger.log_event(
                "irc",
                "listener_stopped",
                level=logging.WARNING,
                user=self.connection.username,
                connection=self.connection.name,
            )

    async def _process_read_cycle(self) -> None:
        if not self.connection.is_connected():
            await self.connection.reconnect()
            return
        try:
            line = await self.connection.read_line()
        except TimeoutError:
            logger.log_event(
                "irc",
                "connection_stale",
                level=logging.WARNING,
                user=self.connection.username,
            )
            await self.connection.reconnect()
            return
        if line is None:
            await self.connection.reconnect()
            return
        if line.strip():
            await self.handle_line(line)

    async def handle_line(self, line: str) -> None:
        if line.startswith("PING"):
            server = parse_irc_line(line).trailing_text or "tmi.twitch.tv"
            await self.connection.write_line(f"PONG :{server}")
            return
        logger.log_event(
            "irc", "raw", level=logging.DEBUG, user=self.connection.username, raw=line
        )
        try:
            result = self.on_line(line)
            if inspect.isawaitable(result):
                await result
        except Exception as e:  # noqa: BLE001
            logger.log_event(
                "irc",
                "message_handler_error",
                level=logging.ERROR,
                user=self.connection.username,
                error=str(e),
                error_type=type(e).__name__,
            )


__all__ = ["IRCListener", "LineHandler"]
