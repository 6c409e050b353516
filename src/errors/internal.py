"""Internal error hierarchy for transport and REST failures.

Raised inside network boundaries only. Raw aiohttp / JSON / socket errors are
wrapped into one of these before they reach handlers or retry logic.

Classes:
  InternalError        - Base for all internal errors.
  NetworkError         - Transient network/IO issues (safe to retry).
  OAuthError           - Authentication / authorization related failures.
  ParsingError         - Response parsing / client request issues.
  RateLimitError       - Explicit rate limiting signalled by Twitch.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass


class InternalError(Exception):
    """Base class for internal errors carrying optional structured data.

    Args:
        message: Descriptive error message.
        data: Optional mapping of additional context, copied on construction.
    """

    data: dict[str, object]

    def __init__(
        self, message: str, *, data: Mapping[str, object] | None = None
    ) -> None:
        super().__init__(message)
        self.data = dict(data) if data else {}


class NetworkError(InternalError):
    """Connection resets, timeouts and other retryable transport failures."""


class OAuthError(InternalError):
    """Rejected or expired credentials. Not retried."""


class ParsingError(InternalError):
    """Unexpected payload shape or a 4xx caused by the request itself."""


@dataclass
class RateLimitContext:
    remaining: int | None = None
    reset_at: float | None = None


class RateLimitError(InternalError):
    """Twitch answered 429."""

    def __init__(
        self, message: str = "Rate limited", *, context: RateLimitContext | None = None
    ):
        super().__init__(message, data={"rate_limit": context})


__all__ = [
    "InternalError",
    "NetworkError",
    "OAuthError",
    "ParsingError",
    "RateLimitError",
    "RateLimitContext",
]
