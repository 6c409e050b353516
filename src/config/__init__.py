"""Configuration package exports.

Login file model and loader plus the file stores backing the chat tables.
"""

from .loader import load_login
from .model import LoginConfig
from .storage import JsonStore, LineStore, atomic_write_text

__all__ = [
    "JsonStore",
    "LineStore",
    "LoginConfig",
    "atomic_write_text",
    "load_login",
]
