"""
Tunables for the Twitch chat bot.

Every value below can be overridden by an environment variable of the same name.
"""

import os


def _get_env_int(name: str, default: int) -> int:
    """Integer override from the environment; bad values fall back to ``default``."""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        print(f"Warning: {name}='{value}' is not an integer, using {default}")
        return default


def _get_env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        print(f"Warning: {name}='{value}' is not a number, using {default}")
        return default


def _get_env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value else default


# IRC connection constants
IRC_CHAT_SERVER = _get_env_str("IRC_CHAT_SERVER", "irc.chat.twitch.tv")
IRC_WHISPER_SERVER = _get_env_str("IRC_WHISPER_SERVER", "irc.chat.twitch.tv")
IRC_PORT = _get_env_int("IRC_PORT", 6667)
IRC_CONNECT_TIMEOUT = _get_env_int(
    "IRC_CONNECT_TIMEOUT", 15
)  # Seconds allowed for the TCP handshake
IRC_READ_TIMEOUT = _get_env_int(
    "IRC_READ_TIMEOUT", 360
)  # Twitch pings roughly every 5 minutes; silence beyond this is a dead socket

# Reconnect backoff
BACKOFF_BASE_DELAY = _get_env_float("BACKOFF_BASE_DELAY", 1.0)
BACKOFF_MULTIPLIER = _get_env_float("BACKOFF_MULTIPLIER", 2.0)
BACKOFF_MAX_DELAY = _get_env_float("BACKOFF_MAX_DELAY", 60.0)
BACKOFF_JITTER_FACTOR = _get_env_float("BACKOFF_JITTER_FACTOR", 0.1)

# Dispatch scheduling
CHAT_QUEUE_DELAY_SECONDS = _get_env_float(
    "CHAT_QUEUE_DELAY_SECONDS", 0.5
)  # 0.3s is the global-ban threshold for chat, leave room for the broadcaster
WHISPER_QUEUE_DELAY_SECONDS = _get_env_float(
    "WHISPER_QUEUE_DELAY_SECONDS", 0.4
)  # Whispers start getting dropped below 0.3s
DISPATCH_TICK_SECONDS = _get_env_float(
    "DISPATCH_TICK_SECONDS", 0.05
)  # Sleep between dispatcher ticks
DEFAULT_COMMAND_COOLDOWN_SECONDS = _get_env_float(
    "DEFAULT_COMMAND_COOLDOWN_SECONDS", 0.0
)  # Cooldown applied when a command line carries no cooldown tag

# Persistence
BOT_DATA_DIR = _get_env_str("BOT_DATA_DIR", "data")
PERMANENT_COMMANDS_FILE = "commands_permanent.txt"
COMMANDS_FILE = "commands.txt"
VARIABLES_FILE = "variables.json"
QUOTES_FILE = "quotes.txt"
SPAM_SETTINGS_FILE = "spam_settings.json"
BANNED_USERS_FILE = "banned_users.json"
BLACKLIST_FILE = "blacklist.json"

# Credentials
TWITCH_LOGIN_FILE = _get_env_str("TWITCH_LOGIN_FILE", "login.json")

# Network/HTTP constants
HTTP_REQUEST_TIMEOUT_SECONDS = _get_env_int(
    "HTTP_REQUEST_TIMEOUT_SECONDS", 30
)  # Default HTTP request timeout
OPERATION_MAX_ATTEMPTS = _get_env_int(
    "OPERATION_MAX_ATTEMPTS", 3
)  # Max attempts for a single REST call
RETRY_MAX_BACKOFF_SECONDS = _get_env_int(
    "RETRY_MAX_BACKOFF_SECONDS", 60
)  # Maximum backoff time in seconds
