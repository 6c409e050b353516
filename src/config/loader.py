"""Login file loading."""

from __future__ import annotations

import logging
import os
import sys

from pydantic import ValidationError

from ..constants import TWITCH_LOGIN_FILE
from .model import LoginConfig
from .storage import JsonStore

_INSTRUCTIONS = (
    '📄 Create {path} containing {{"client_id": "...", "bot_token": "...", '
    '"broadcaster_token": "..."}}'
)


def load_login(path: str | None = None) -> LoginConfig:
    """Read and validate the login file.

    Raises:
        SystemExit: the file is missing, unreadable or lacks a field.
    """
    path = path or os.environ.get("TWITCH_LOGIN_FILE", TWITCH_LOGIN_FILE)
    raw = JsonStore(path).load(default=None)
    if not isinstance(raw, dict):
        logging.error(f"📁 No usable login file found at {path}")
        logging.error(_INSTRUCTIONS.format(path=path))
        sys.exit(1)
    try:
        login = LoginConfig.from_dict(raw)
    except ValidationError as e:
        missing = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        logging.error(f"⚠️ Login file {path} is missing or has invalid fields: {missing}")
        logging.error(_INSTRUCTIONS.format(path=path))
        sys.exit(1)
    logging.info("✅ Login configuration loaded")
    return login


__all__ = ["load_login"]
