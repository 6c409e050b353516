"""Line-oriented Twitch IRC connection with login and reconnect backoff."""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from collections.abc import Awaitable, Callable
from enum import Enum, auto

from ..constants import (
    BACKOFF_BASE_DELAY,
    BACKOFF_JITTER_FACTOR,
    BACKOFF_MAX_DELAY,
    BACKOFF_MULTIPLIER,
    IRC_CHAT_SERVER,
    IRC_CONNECT_TIMEOUT,
    IRC_PORT,
    IRC_READ_TIMEOUT,
)
from ..logs.logger import logger

OpenConnection = Callable[
    [str, int], Awaitable[tuple[asyncio.StreamReader, asyncio.StreamWriter]]
]

CAPABILITIES = ("twitch.tv/membership", "twitch.tv/tags", "twitch.tv/commands")


class ConnectionState(Enum):
    DISCONNECTED = auto()
    CONNECTING = auto()
    AUTHENTICATING = auto()
    READY = auto()
    RECONNECTING = auto()


class TwitchConnection:  # pylint: disable=too-many-instance-attributes
    """One socket to a Twitch IRC server.

    ``channel`` is joined after login when given; the whisper connection
    leaves it empty.
    """

    def __init__(
        self,
        username: str,
        token: str,
        channel: str | None = None,
        *,
        server: str = IRC_CHAT_SERVER,
        port: int = IRC_PORT,
        open_connection: OpenConnection | None = None,
        name: str = "chat",
    ):
        self.username = username.lower()
        self.token = token if token.startswith("oauth:") else f"oauth:{token}"
        self.channel = channel.lower().lstrip("#") if channel else None
        self.server = server
        self.port = port
        self.name = name
        self._open_connection = open_connection or asyncio.open_connection
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self.state = ConnectionState.DISCONNECTED
        self.consecutive_failures = 0
        self.last_reconnect_attempt = 0.0
        self._reconnect_lock = asyncio.Lock()

    def _set_state(self, new_state: ConnectionState) -> None:
        if self.state != new_state:
            logger.log_event(
                "irc",
                "state_change",
                level=logging.DEBUG,
                user=self.username,
                connection=self.name,
                old_state=self.state.name,
                new_state=new_state.name,
            )
            self.state = new_state

    def is_connected(self) -> bool:
        return self.state is ConnectionState.READY and self.writer is not None

    async def connect(self) -> bool:
        try:
            self._set_state(ConnectionState.CONNECTING)
            logger.log_event(
                "irc",
                "connect_start",
                user=self.username,
                connection=self.name,
                server=self.server,
                port=self.port,
            )
            self.reader, self.writer = await asyncio.wait_for(
                self._open_connection(self.server, self.port),
                timeout=IRC_CONNECT_TIMEOUT,
            )
            self._set_state(ConnectionState.AUTHENTICATING)
            await self._send_line(f"PASS {self.token}")
            await self._send_line(f"NICK {self.username}")
            await self._send_line(f"USER {self.username} 8 * :{self.username}")
            for capability in CAPABILITIES:
                await self._send_line(f"CAP REQ :{capability}")
            if self.channel:
                await self._send_line(f"JOIN #{self.channel}")
            self._set_state(ConnectionState.READY)
            logger.log_event(
                "irc",
                "connect_success",
                user=self.username,
                channel=self.channel,
                connection=self.name,
            )
            return True
        except TimeoutError:
            logger.log_event(
                "irc",
                "connect_timeout",
                level=logging.ERROR,
                user=self.username,
                timeout=IRC_CONNECT_TIMEOUT,
            )
        except OSError as e:
            logger.log_event(
                "irc",
                "connect_network_error",
                level=logging.ERROR,
                user=self.username,
                error=str(e),
            )
        await self.disconnect()
        return False

    async def read_line(self) -> str | None:
        """Return the next line without its CRLF, or None when the socket died.

        Raises:
            TimeoutError: nothing arrived within ``IRC_READ_TIMEOUT``.
        """
        if not self.reader:
            return None
        try:
            data = await asyncio.wait_for(self.reader.readline(), timeout=IRC_READ_TIMEOUT)
        except (OSError, asyncio.IncompleteReadError, asyncio.LimitOverrunError) as e:
            logger.log_event(
                "irc",
                "connection_reset",
                level=logging.ERROR,
                user=self.username,
                error=str(e),
            )
            self._set_state(ConnectionState.DISCONNECTED)
            return None
        if not data:
            logger.log_event(
                "irc", "connection_lost", level=logging.ERROR, user=self.username
            )
            self._set_state(ConnectionState.DISCONNECTED)
            return None
        return data.decode("utf-8", errors="ignore").rstrip("\r\n")

    async def write_line(self, line: str) -> bool:
        if not self.is_connected():
            logger.log_event(
                "irc", "write_skipped", level=logging.WARNING, user=self.username, line=line
            )
            return False
        try:
            await self._send_line(line)
        except OSError as e:
            logger.log_event(
                "irc",
                "write_failed",
                level=logging.ERROR,
                user=self.username,
                error=str(e),
            )
            self._set_state(ConnectionState.DISCONNECTED)
            return False
        return True

    async def _send_line(self, message: str) -> None:
        if self.writer:
            self.writer.write(f"{message}\r\n".encode())
            await self.writer.drain()

    async def disconnect(self) -> None:
        if self.writer:
            try:
                self.writer.close()
                await self.writer.wait_closed()
            except OSError as e:
                logger.log_event(
                    "irc",
                    "disconnect_error",
                    level=logging.DEBUG,
                    user=self.username,
                    error=str(e),
                )
            finally:
                self.writer = None
                self.reader = None
        self._set_state(ConnectionState.DISCONNECTED)

    async def reconnect(self) -> bool:
        async with self._reconnect_lock:
            self._set_state(ConnectionState.RECONNECTING)
            delay = self._calculate_backoff_delay(self.consecutive_failures)
            elapsed = time.monotonic() - self.last_reconnect_attempt
            if elapsed < delay:
                logger.log_event(
                    "irc",
                    "reconnect_backoff_wait",
                    level=logging.WARNING,
                    user=self.username,
                    remaining_wait=round(delay - elapsed, 2),
                    attempt=self.consecutive_failures + 1,
                )
                await asyncio.sleep(delay - elapsed)
            await self.disconnect()
            self.last_reconnect_attempt = time.monotonic()
            success = await self.connect()
            if success:
                self.consecutive_failures = 0
                logger.log_event("irc", "reconnect_success", user=self.username)
            else:
                self.consecutive_failures += 1
                logger.log_event(
                    "irc",
                    "reconnect_failed",
                    level=logging.ERROR,
                    user=self.username,
                    attempt=self.consecutive_failures,
                )
            return success

    @staticmethod
    def _calculate_backoff_delay(consecutive_failures: int) -> float:
        if consecutive_failures == 0:
            return 0.0
        delay = BACKOFF_BASE_DELAY * (BACKOFF_MULTIPLIER ** (consecutive_failures - 1))
        delay = min(delay, BACKOFF_MAX_DELAY)
        jitter = (
            delay * BACKOFF_JITTER_FACTOR * (secrets.SystemRandom().random() * 2 - 1)
        )
        return max(0.0, delay + jitter)


__all__ = ["TwitchConnection", "ConnectionState", "CAPABILITIES"]
