"""Chat domain: tables, spam filter, message assembly and notifications."""

from .assembler import MessageAssembler
from .commands import CommandTable
from .models import (
    AssembledMessage,
    Command,
    MessageKind,
    PermissionTier,
    Quote,
    Scope,
    Sender,
    Variable,
)
from .notifier import Notifier
from .quotes import QuoteBook
from .spam_filter import SpamFilter
from .variables import VariableTable

__all__ = [
    "AssembledMessage",
    "Command",
    "CommandTable",
    "MessageAssembler",
    "MessageKind",
    "Notifier",
    "PermissionTier",
    "Quote",
    "QuoteBook",
    "Scope",
    "Sender",
    "SpamFilter",
    "Variable",
    "VariableTable",
]
