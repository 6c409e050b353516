"""IRC subsystem package.

Contains the line tokenizer, the connection wrapper, the read loop and the
outbound line queue for the Twitch chat and whisper servers.
"""

from .connection import ConnectionState, TwitchConnection  # noqa: F401
from .listener import IRCListener  # noqa: F401
from .outbound import IRCOutbound, format_chat, format_whisper  # noqa: F401
from .parser import ParsedIRC, parse_irc_line  # noqa: F401

__all__ = [
    "ConnectionState",
    "TwitchConnection",
    "IRCListener",
    "IRCOutbound",
    "ParsedIRC",
    "parse_irc_line",
    "format_chat",
    "format_whisper",
]
