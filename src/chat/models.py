"""Chat domain models shared by the tables, the assembler and the dispatcher."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum


class PermissionTier(IntEnum):
    VIEWER = 0
    SUBSCRIBER = 1
    MODERATOR = 2
    GLOBAL_MOD = 3
    ADMIN = 4
    STAFF = 5
    BROADCASTER = 6

    @classmethod
    def parse(cls, value: str | None) -> PermissionTier | None:
        """Map a tier name or IRC ``user-type`` value to a tier.

        Returns None for empty or unknown values.
        """
        if not value:
            return None
        key = value.strip().lower()
        return _TIER_ALIASES.get(key)

    @property
    def label(self) -> str:
        return self.name.lower()


_TIER_ALIASES: dict[str, PermissionTier] = {
    tier.name.lower(): tier for tier in PermissionTier
}
_TIER_ALIASES.update(
    {
        "mod": PermissionTier.MODERATOR,
        "sub": PermissionTier.SUBSCRIBER,
        "globalmod": PermissionTier.GLOBAL_MOD,
    }
)


class Scope(Enum):
    """Message kinds a command may be invoked from."""

    CHAT = "chat"
    WHISPER = "whisper"
    BOTH = "both"

    @classmethod
    def parse(cls, value: str | None) -> Scope | None:
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class MessageKind(Enum):
    CHAT = "chat"
    WHISPER = "whisper"
    NOTICE = "notice"


@dataclass(frozen=True, slots=True)
class Sender:
    name: str
    tier: PermissionTier = PermissionTier.VIEWER

    def meets(self, requirement: PermissionTier) -> bool:
        return self.tier >= requirement


@dataclass(slots=True)
class Variable:
    key: str
    value: str

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "value": self.value}


@dataclass(slots=True)
class Command:
    key: str
    response: str
    permission: PermissionTier = PermissionTier.VIEWER
    scope: Scope = Scope.BOTH
    permanent: bool = False
    cooldown: float = 0.0
    last_used: float | None = None

    def remaining_cooldown(self, now: float) -> float:
        """Seconds left before the command may run again (0 when ready)."""
        if self.cooldown <= 0 or self.last_used is None:
            return 0.0
        return max(0.0, self.cooldown - (now - self.last_used))

    def serialize(self) -> str:
        """Render as a store line: ``!key [scope] [permission] [Ns] response``.

        Default tags are left out unless the response itself starts with a
        bracket, in which case all three are written so loading the line
        cannot mistake the response's first word for a tag.
        """
        explicit = self.response.startswith("[")
        parts = [self.key]
        if explicit or self.scope is not Scope.BOTH:
            parts.append(f"[{self.scope.value}]")
        if explicit or self.permission is not PermissionTier.VIEWER:
            parts.append(f"[{self.permission.label}]")
        if explicit or self.cooldown > 0:
            parts.append(f"[{self.cooldown:g}s]")
        parts.append(self.response)
        return " ".join(parts)


@dataclass(frozen=True, slots=True)
class Quote:
    text: str
    attribution: str = ""

    def serialize(self) -> str:
        return f"{self.text} {self.attribution}".strip()


@dataclass(slots=True)
class AssembledMessage:
    room: str
    body: str
    kind: MessageKind
    sender: Sender
    command: Command | None = None
    tags: dict[str, str] = field(default_factory=dict)

    @property
    def is_notice(self) -> bool:
        return self.kind is MessageKind.NOTICE


__all__ = [
    "PermissionTier",
    "Scope",
    "MessageKind",
    "Sender",
    "Variable",
    "Command",
    "Quote",
    "AssembledMessage",
]
