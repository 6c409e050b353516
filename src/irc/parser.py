"""IRC line tokenizer.

Splits one raw Twitch IRC line into tags, prefix, verb and parameters.
Malformed input never raises; missing pieces come back empty.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..logs.logger import logger


@dataclass(slots=True)
class ParsedIRC:
    raw: str
    tags: dict[str, str] = field(default_factory=dict)
    prefix: str = ""
    command: str = ""
    params: str = ""
    middle: list[str] = field(default_factory=list)
    trailing: list[str] = field(default_factory=list)

    @property
    def trailing_text(self) -> str:
        return " ".join(self.trailing)

    @property
    def nick(self) -> str:
        """Nickname portion of a ``nick!user@host`` prefix."""
        if "!" not in self.prefix:
            return ""
        return self.prefix.split("!", 1)[0]


def parse_irc_line(raw_line: str) -> ParsedIRC:
    line = raw_line.rstrip("\r\n")
    parsed = ParsedIRC(raw=line)

    if line.startswith("@"):
        tags_part, _, line = line.partition(" ")
        parsed.tags = _parse_tags(tags_part[1:])

    line = line.lstrip(" ")
    if line.startswith(":"):
        prefix, _, line = line[1:].partition(" ")
        parsed.prefix = prefix

    verb, _, params = line.lstrip(" ").partition(" ")
    parsed.command = verb
    parsed.params = params
    parsed.middle, parsed.trailing = _split_params(params)
    return parsed


def _parse_tags(raw_tags: str) -> dict[str, str]:
    tags: dict[str, str] = {}
    for segment in raw_tags.split(";"):
        if not segment:
            continue
        if "=" not in segment:
            logger.log_event(
                "irc", "tag_skipped", level=logging.DEBUG, segment=segment
            )
            continue
        key, value = segment.split("=", 1)
        tags[key] = value
    return tags


def _split_params(params: str) -> tuple[list[str], list[str]]:
    if ":" not in params:
        return params.split(), []
    before, after = params.split(":", 1)
    return before.strip().split(), after.split()


__all__ = ["ParsedIRC", "parse_irc_line"]
