"""Expected chat-level failures returned as values.

Table operations (commands, variables, quotes, spam settings) never raise for
malformed user input or missing entries. They return a :class:`Result` whose
``error`` names what went wrong so handlers can notify the invoker.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ChatErrorKind(Enum):
    SYNTAX = "syntax"
    EXISTS = "exists"
    MISSING = "missing"
    PERMANENT = "permanent"
    PERMISSION = "permission"
    SCOPE = "scope"
    TRANSIENT_IO = "transient_io"
    SERIALIZATION = "serialization"


@dataclass(frozen=True, slots=True)
class ChatError:
    kind: ChatErrorKind
    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    """Outcome of a table operation: a value or a :class:`ChatError`."""

    value: T | None = None
    error: ChatError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ChatErrorKind, message: str) -> Result[T]:
        return cls(error=ChatError(kind, message))


__all__ = ["ChatErrorKind", "ChatError", "Result"]
