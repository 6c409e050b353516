import os

import pytest

# Set test-friendly defaults for constants that affect test performance
os.environ.setdefault("BACKOFF_BASE_DELAY", "0")
os.environ.setdefault("BACKOFF_MAX_DELAY", "0")
os.environ.setdefault("RETRY_MAX_BACKOFF_SECONDS", "0")

import src.logging_config as logging_config  # noqa: E402

# The shutdown summary would log to pytest's closed capture stream
logging_config._summary_registered = True

from src.chat.commands import CommandTable  # noqa: E402
from src.chat.notifier import Notifier  # noqa: E402
from src.chat.quotes import QuoteBook  # noqa: E402
from src.chat.spam_filter import SpamFilter  # noqa: E402
from src.chat.variables import VariableTable  # noqa: E402
from src.config.storage import JsonStore, LineStore  # noqa: E402
from tests.fixtures.chat_fixtures import BOT_NAME, BROADCASTER, RecordingSink  # noqa: E402


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def notifier(sink):
    return Notifier(sink, BOT_NAME, BROADCASTER)


@pytest.fixture
def variables(tmp_path):
    return VariableTable(JsonStore(tmp_path / "variables.json"))


@pytest.fixture
def commands(tmp_path, variables):
    return CommandTable(
        variables,
        LineStore(tmp_path / "commands_permanent.txt"),
        LineStore(tmp_path / "commands.txt"),
    )


@pytest.fixture
def quotes(tmp_path):
    return QuoteBook(LineStore(tmp_path / "quotes.txt"), BROADCASTER)


@pytest.fixture
def spam(tmp_path):
    return SpamFilter(
        JsonStore(tmp_path / "spam_settings.json"),
        JsonStore(tmp_path / "banned_users.json"),
        JsonStore(tmp_path / "blacklist.json"),
    )
