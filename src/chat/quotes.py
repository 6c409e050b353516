"""Quote book stored one quote per line as ``"text" - <broadcaster> <date>``."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from datetime import date

from ..config.storage import LineStore
from ..errors.chat import ChatErrorKind, Result
from ..logs.logger import logger
from .models import Quote

_ATTRIBUTION_SEPARATOR = '" - '


def wrap_quote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        return text
    inner = text.strip('"')
    return f'"{inner}"'


def parse_quote_line(line: str) -> Quote | None:
    line = line.strip()
    if not line:
        return None
    head, sep, tail = line.rpartition(_ATTRIBUTION_SEPARATOR)
    if sep and head.startswith('"'):
        return Quote(text=f'{head}"', attribution=f"- {tail.strip()}")
    return Quote(text=wrap_quote(line))


class QuoteBook:
    def __init__(
        self,
        store: LineStore,
        broadcaster: str,
        *,
        today: Callable[[], date] = date.today,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.broadcaster = broadcaster
        self._today = today
        self._rng = rng or random.Random()
        self._quotes: list[Quote] = []

    def __len__(self) -> int:
        return len(self._quotes)

    def load(self) -> int:
        for line in self.store.read_lines():
            quote = parse_quote_line(line)
            if quote is None or self._contains(quote.text):
                continue
            self._quotes.append(quote)
        logger.log_event("quotes", "loaded", count=len(self._quotes))
        return len(self._quotes)

    def add(self, text: str) -> Result[Quote]:
        if not text.strip().strip('"').strip():
            return Result.failure(ChatErrorKind.SYNTAX, "the quote cannot be empty")
        wrapped = wrap_quote(text)
        if self._contains(wrapped):
            return Result.failure(ChatErrorKind.EXISTS, "that quote already exists")
        quote = Quote(
            text=wrapped,
            attribution=f"- {self.broadcaster} {self._today().isoformat()}",
        )
        try:
            self.store.append(quote.serialize())
        except OSError as e:
            logger.log_event("quotes", "save_failed", level=logging.ERROR, error=str(e))
            return Result.failure(ChatErrorKind.TRANSIENT_IO, "could not save quotes")
        self._quotes.append(quote)
        logger.log_event("quotes", "added", quote=wrapped)
        return Result.success(quote)

    def count(self) -> int:
        return len(self._quotes)

    def get(self, index: int) -> Result[Quote]:
        """Quote at zero-based ``index`` in the order the book holds them."""
        if not 0 <= index < len(self._quotes):
            return Result.failure(
                ChatErrorKind.MISSING,
                f"pick a number from 0 to {len(self._quotes) - 1}"
                if self._quotes
                else "there are no quotes yet",
            )
        return Result.success(self._quotes[index])

    def random_quote(self) -> Quote | None:
        if not self._quotes:
            return None
        return self._rng.choice(self._quotes)

    def _contains(self, text: str) -> bool:
        return any(q.text == text for q in self._quotes)


__all__ = ["QuoteBook", "parse_quote_line", "wrap_quote"]
