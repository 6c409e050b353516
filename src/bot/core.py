"""ChatBot: composes the tables, connections and dispatcher for one channel."""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Callable
from pathlib import Path

from ..api.auth import AuthenticatedClient
from ..chat.assembler import MessageAssembler
from ..chat.commands import CommandTable
from ..chat.models import AssembledMessage
from ..chat.notifier import Notifier
from ..chat.quotes import QuoteBook
from ..chat.spam_filter import SpamFilter
from ..chat.variables import VariableTable
from ..config.storage import JsonStore, LineStore
from ..constants import (
    BANNED_USERS_FILE,
    BLACKLIST_FILE,
    BOT_DATA_DIR,
    COMMANDS_FILE,
    DEFAULT_COMMAND_COOLDOWN_SECONDS,
    IRC_CHAT_SERVER,
    IRC_PORT,
    IRC_WHISPER_SERVER,
    PERMANENT_COMMANDS_FILE,
    QUOTES_FILE,
    SPAM_SETTINGS_FILE,
    VARIABLES_FILE,
)
from ..irc.connection import TwitchConnection
from ..irc.listener import IRCListener
from ..irc.outbound import IRCOutbound
from .dispatcher import Dispatcher
from .handlers import CommandHandlers


class ChatBot:  # pylint: disable=too-many-instance-attributes
    """One bot account serving one broadcaster's channel.

    Attributes:
        bot: Authenticated client of the bot account (chat and whispers).
        broadcaster: Authenticated client of the broadcaster (channel
            updates and moderation).
        chat: IRC connection joined to the broadcaster's room.
        whisper: IRC connection used for sending and receiving whispers.
        dispatcher: Queue drain loop running gated commands.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        bot: AuthenticatedClient,
        broadcaster: AuthenticatedClient,
        *,
        data_dir: str | Path = BOT_DATA_DIR,
        chat: TwitchConnection | None = None,
        whisper: TwitchConnection | None = None,
        read_operator_line: Callable[[], str] | None = None,
    ):
        self.bot = bot
        self.broadcaster = broadcaster
        bot_name = bot.login.lower()
        channel = broadcaster.login.lower()

        self.chat = chat or TwitchConnection(
            bot_name,
            bot.access_token,
            channel,
            server=IRC_CHAT_SERVER,
            port=IRC_PORT,
            name="chat",
        )
        self.whisper = whisper or TwitchConnection(
            bot_name,
            bot.access_token,
            None,
            server=IRC_WHISPER_SERVER,
            port=IRC_PORT,
            name="whisper",
        )
        self.outbound = IRCOutbound(self.chat, self.whisper, channel)
        self.notifier = Notifier(self.outbound, bot_name, channel)

        data = Path(data_dir)
        self.variables = VariableTable(JsonStore(data / VARIABLES_FILE))
        self.commands = CommandTable(
            self.variables,
            LineStore(data / PERMANENT_COMMANDS_FILE),
            LineStore(data / COMMANDS_FILE),
            DEFAULT_COMMAND_COOLDOWN_SECONDS,
        )
        self.quotes = QuoteBook(LineStore(data / QUOTES_FILE), channel)
        self.spam = SpamFilter(
            JsonStore(data / SPAM_SETTINGS_FILE),
            JsonStore(data / BANNED_USERS_FILE),
            JsonStore(data / BLACKLIST_FILE),
        )
        self.assembler = MessageAssembler(self.commands, channel, bot_name)
        self.handlers = CommandHandlers(
            commands=self.commands,
            variables=self.variables,
            quotes=self.quotes,
            spam=self.spam,
            notifier=self.notifier,
            client=broadcaster,
        )
        self.dispatcher = Dispatcher(
            self.handlers, self.notifier, enforcer=self.moderate
        )
        self.listeners = [
            IRCListener(self.chat, self.on_line),
            IRCListener(self.whisper, self.on_line),
        ]
        self._read_operator_line = read_operator_line or sys.stdin.readline
        self.running = False
        self._tasks: list[asyncio.Task[None]] = []

    def load(self) -> None:
        """Preload every store; bad records are logged and skipped."""
        self.variables.load()
        self.commands.load()
        self.quotes.load()
        self.spam.load()

    async def on_line(self, line: str) -> None:
        """Assemble one raw line and queue it for the dispatch loop.

        Spam is only detected here. Escalation and the moderation calls run
        on the dispatch loop through ``moderate``.
        """
        message = self.assembler.assemble(line)
        if message is None:
            return
        reason = None if message.is_notice else self.spam.violation(message)
        if reason is not None:
            self.dispatcher.flag(message, reason)
            return
        self.dispatcher.enqueue(message)

    async def moderate(self, message: AssembledMessage, reason: str) -> None:
        await self.spam.punish(message, reason, self.broadcaster, self.notifier)

    async def operator_input(self) -> None:
        """Say every line typed on the console in chat as the bot."""
        loop = asyncio.get_running_loop()
        while self.running:
            line = await loop.run_in_executor(None, self._read_operator_line)
            if not line:
                logging.info("⌨️ Operator input closed")
                return
            text = line.strip()
            if text:
                self.notifier.say(text)

    async def start(self) -> bool:
        """Load stores and open both IRC connections."""
        logging.info(
            f"▶️ Starting chat bot user={self.bot.login} channel={self.broadcaster.login}"
        )
        self.load()
        for connection in (self.chat, self.whisper):
            if not await connection.connect():
                logging.error(f"❌ Failed to connect {connection.name} connection")
                return False
        self.running = True
        return True

    async def run(self) -> None:
        if not await self.start():
            await self.stop()
            return
        self._tasks = [
            *(asyncio.create_task(listener.listen()) for listener in self.listeners),
            asyncio.create_task(self.outbound.run()),
            asyncio.create_task(self.dispatcher.run()),
            asyncio.create_task(self.operator_input()),
        ]
        try:
            await asyncio.gather(*self._tasks)
        finally:
            await self.stop()

    async def stop(self) -> None:
        logging.warning(f"🛑 Stopping chat bot user={self.bot.login}")
        self.running = False
        self.dispatcher.stop()
        for listener in self.listeners:
            listener.stop()
        for task in self._tasks:
            if not task.done():
                task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        for connection in (self.chat, self.whisper):
            await connection.disconnect()


__all__ = ["ChatBot"]
