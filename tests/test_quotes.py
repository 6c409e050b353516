from __future__ import annotations

import random
from datetime import date

from src.chat.quotes import QuoteBook, parse_quote_line, wrap_quote
from src.config.storage import LineStore
from src.errors.chat import ChatErrorKind


def _book(tmp_path, **kwargs):
    return QuoteBook(
        LineStore(tmp_path / "quotes.txt"),
        "streamer",
        today=lambda: date(2024, 5, 1),
        **kwargs,
    )


def test_wrap_quote():
    assert wrap_quote("hello") == '"hello"'
    assert wrap_quote('"hello"') == '"hello"'
    assert wrap_quote('hello"') == '"hello"'


def test_parse_quote_line_with_attribution():
    quote = parse_quote_line('"so it goes" - streamer 2024-05-01')
    assert quote.text == '"so it goes"'
    assert quote.attribution == "- streamer 2024-05-01"


def test_add_wraps_and_attributes(tmp_path):
    book = _book(tmp_path)
    result = book.add("never give up")
    assert result.ok
    assert result.value.text == '"never give up"'
    assert (tmp_path / "quotes.txt").read_text() == (
        '"never give up" - streamer 2024-05-01\n'
    )


def test_add_rejects_duplicates_and_empty(tmp_path):
    book = _book(tmp_path)
    book.add("once")
    assert book.add('"once"').error.kind is ChatErrorKind.EXISTS
    assert book.add("  ").error.kind is ChatErrorKind.SYNTAX
    assert len(book) == 1


def test_load_dedupes(tmp_path):
    (tmp_path / "quotes.txt").write_text('"a" - x 2020-01-01\n"a" - y 2021-01-01\nb\n\n')
    book = _book(tmp_path)
    assert book.load() == 2


def test_random_quote(tmp_path):
    book = _book(tmp_path, rng=random.Random(1))
    assert book.random_quote() is None
    book.add("only one")
    assert book.random_quote().text == '"only one"'


def test_get_by_index(tmp_path):
    book = _book(tmp_path)
    assert book.get(0).error.kind is ChatErrorKind.MISSING
    book.add("first")
    book.add("second")
    assert book.count() == 2
    assert book.get(1).value.text == '"second"'
    assert book.get(-1).error.kind is ChatErrorKind.MISSING
    assert str(book.get(2).error) == "pick a number from 0 to 1"
