"""Bot package (composition root, dispatcher, built-in commands)."""

from .core import ChatBot
from .dispatcher import Dispatcher
from .handlers import CommandHandlers

__all__ = ["ChatBot", "CommandHandlers", "Dispatcher"]
