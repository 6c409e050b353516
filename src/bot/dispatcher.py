"""Chat and whisper queues with cooldown, permission and scope gates."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

from ..chat.models import AssembledMessage, MessageKind, Scope
from ..chat.notifier import Notifier
from ..constants import (
    CHAT_QUEUE_DELAY_SECONDS,
    DISPATCH_TICK_SECONDS,
    WHISPER_QUEUE_DELAY_SECONDS,
)
from ..logging_config import log_structured_error
from ..logs.logger import logger


class CommandRouter(Protocol):
    async def handle(self, message: AssembledMessage) -> None: ...


Enforcer = Callable[[AssembledMessage, str], Awaitable[object]]


@dataclass(slots=True)
class _Lane:
    name: str
    delay: float
    queue: asyncio.Queue[AssembledMessage] = field(default_factory=asyncio.Queue)
    last_sent: float | None = None

    def ready(self, now: float) -> bool:
        return self.last_sent is None or now - self.last_sent >= self.delay


class Dispatcher:
    """Drains one message per queue per tick once that queue's delay has passed.

    A message whose command is still cooling down is answered with a whisper
    and dropped without spending the queue's delay, so the next queued
    message may run in the same tick. Messages flagged by the spam filter
    are handed to ``enforcer`` at the start of every tick, ahead of commands.
    """

    def __init__(
        self,
        router: CommandRouter,
        notifier: Notifier,
        *,
        chat_delay: float = CHAT_QUEUE_DELAY_SECONDS,
        whisper_delay: float = WHISPER_QUEUE_DELAY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        enforcer: Enforcer | None = None,
    ):
        self.router = router
        self.notifier = notifier
        self.enforcer = enforcer
        self.flagged: asyncio.Queue[tuple[AssembledMessage, str]] = asyncio.Queue()
        self.chat = _Lane("chat", chat_delay)
        self.whispers = _Lane("whisper", whisper_delay)
        self._clock = clock
        self._sleep = sleep
        self.running = False

    def enqueue(self, message: AssembledMessage) -> None:
        """Queue a command message; notices go straight to chat."""
        if message.is_notice:
            self.notifier.say(message.body)
            return
        if message.command is None:
            return
        lane = self.whispers if message.kind is MessageKind.WHISPER else self.chat
        lane.queue.put_nowait(message)

    def flag(self, message: AssembledMessage, reason: str) -> None:
        """Queue a spam message for moderation on the next tick."""
        self.flagged.put_nowait((message, reason))

    def pending(self) -> int:
        return self.chat.queue.qsize() + self.whispers.queue.qsize()

    async def tick(self) -> None:
        await self._moderate()
        for lane in (self.chat, self.whispers):
            await self._drain(lane)

    async def run(self) -> None:
        self.running = True
        try:
            while self.running:
                await self.tick()
                await self._sleep(DISPATCH_TICK_SECONDS)
        finally:
            self.running = False

    def stop(self) -> None:
        self.running = False

    async def _moderate(self) -> None:
        while not self.flagged.empty():
            message, reason = self.flagged.get_nowait()
            if self.enforcer is None:
                continue
            try:
                await self.enforcer(message, reason)
            except Exception as e:  # noqa: BLE001
                log_structured_error(
                    "moderation",
                    f"Spam enforcement for {message.sender.name} failed",
                    exception=e,
                    context={"reason": reason},
                )

    async def _drain(self, lane: _Lane) -> None:
        now = self._clock()
        if not lane.ready(now):
            return
        while not lane.queue.empty():
            message = lane.queue.get_nowait()
            if self._cooling_down(message, now):
                continue
            lane.last_sent = now
            await self.process(message, now)
            return

    def _cooling_down(self, message: AssembledMessage, now: float) -> bool:
        command = message.command
        if command is None:
            return True
        remaining = command.remaining_cooldown(now)
        if remaining <= 0:
            return False
        self.notifier.whisper(
            message.sender.name,
            f"{command.key} has a {command.cooldown:.2f} second cooldown and can be "
            f"used in {remaining:.2f} second(s)",
        )
        return True

    async def process(self, message: AssembledMessage, now: float | None = None) -> bool:
        """Gate and run one command message. Returns True when a handler ran."""
        command = message.command
        if command is None:
            return False
        if not message.sender.meets(command.permission):
            self.notifier.whisper(
                message.sender.name,
                f"You need to be a(n) {command.permission.label} to use {command.key}",
            )
            return False
        if command.scope is not Scope.BOTH and message.kind.value != command.scope.value:
            self.notifier.say(
                f"{command.key} can only be used through a {command.scope.value} message"
            )
            return False

        command.last_used = self._clock() if now is None else now
        logger.log_event(
            "dispatch",
            "command",
            level=logging.DEBUG,
            user=message.sender.name,
            channel=message.room,
            key=command.key,
            kind=message.kind.value,
        )
        try:
            await self.router.handle(message)
        except Exception as e:  # noqa: BLE001
            log_structured_error(
                "handler",
                f"Command {command.key} failed",
                exception=e,
                context={"user": message.sender.name, "body": message.body},
            )
            self.notifier.whisper(
                message.sender.name, f"Something went wrong while running {command.key}"
            )
        return True


__all__ = ["Dispatcher", "CommandRouter"]
