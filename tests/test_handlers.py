from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.api.auth import AuthenticatedClient, ChannelInfo, StreamInfo
from src.bot.handlers import (
    NO_QUOTES,
    SONG_UNAVAILABLE,
    CommandHandlers,
    command_argument,
    format_duration,
)
from src.chat.commands import CommandTable
from src.chat.models import MessageKind, PermissionTier, Variable
from src.config.storage import LineStore
from src.errors.internal import NetworkError
from tests.fixtures.chat_fixtures import make_message

PERMANENT_COMMANDS = Path(__file__).parent.parent / "data" / "commands_permanent.txt"
NOW = datetime(2024, 5, 1, 11, 30, 5, tzinfo=UTC)


@pytest.fixture
def table(tmp_path, variables):
    permanent = tmp_path / "commands_permanent.txt"
    permanent.write_text(PERMANENT_COMMANDS.read_text(encoding="utf-8"), encoding="utf-8")
    table = CommandTable(variables, LineStore(permanent), LineStore(tmp_path / "commands.txt"))
    table.load()
    return table


@pytest.fixture
def client():
    mock = MagicMock(spec=AuthenticatedClient)
    mock.update_channel = AsyncMock()
    mock.find_game_id = AsyncMock(return_value="33")
    mock.get_stream = AsyncMock(return_value=None)
    mock.followed_at = AsyncMock(return_value=None)
    mock.get_user = AsyncMock(return_value=None)
    mock.get_channel = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def handlers(table, variables, quotes, spam, notifier, client):
    return CommandHandlers(
        commands=table,
        variables=variables,
        quotes=quotes,
        spam=spam,
        notifier=notifier,
        client=client,
        now=lambda: NOW,
    )


def mod_message(body, table, **kwargs):
    kwargs.setdefault("sender", "Foo")
    kwargs.setdefault("tier", PermissionTier.MODERATOR)
    return make_message(body, commands=table, **kwargs)


class TestHelpers:
    def test_command_argument(self, table):
        assert command_argument(mod_message("!addcommand !hi Hello there", table)) == "!hi Hello there"
        assert command_argument(mod_message("hey !commands", table)) == ""

    def test_format_duration(self):
        assert format_duration(timedelta(hours=1, minutes=30, seconds=5)) == (
            "1 hour, 30 minutes, 5 seconds"
        )
        assert format_duration(timedelta(days=2)) == "2 days"
        assert format_duration(timedelta(0)) == "0 seconds"


class TestCommandHandlers:
    @pytest.mark.asyncio
    async def test_add_then_use_command(self, handlers, table, sink):
        await handlers.handle(mod_message("!addcommand !hi Hello there", table))
        assert sink.said == ['Foo successfully added the command, "!hi"']

        message = make_message("!hi", commands=table)
        assert message.command.key == "!hi"
        await handlers.handle(message)
        assert sink.said[-1] == "Hello there"

    @pytest.mark.asyncio
    async def test_add_with_inline_variable(self, handlers, table, variables, sink):
        await handlers.handle(
            mod_message("!addcommand !site Visit (key: [site] | value: example.com)", table)
        )
        assert sink.said == [
            'Foo successfully added the variable, "[site]"',
            'Foo successfully added the command, "!site"',
        ]
        assert variables.get("[site]").value == "example.com"
        assert table.get("!site").response == "Visit example.com"

    @pytest.mark.asyncio
    async def test_add_duplicate_is_whispered(self, handlers, table, sink):
        await handlers.handle(mod_message("!addcommand !hi Hello", table))
        await handlers.handle(mod_message("!addcommand !hi Again", table))
        assert sink.whispers == [("Foo", 'Failed to add the command, "!hi": !hi already exists')]

    @pytest.mark.asyncio
    async def test_edit_command(self, handlers, table, sink):
        await handlers.handle(mod_message("!addcommand !hi Hello", table))
        await handlers.handle(mod_message("!editcommand !hi Howdy", table))
        assert sink.said[-1] == 'Foo successfully edited the command, "!hi"'
        assert table.get("!hi").response == "Howdy"

    @pytest.mark.asyncio
    async def test_remove_permanent_refused(self, handlers, table, sink):
        await handlers.handle(mod_message("!removecommand !quote", table))
        assert table.exists("!quote")
        user, text = sink.whispers[0]
        assert user == "Foo"
        assert text.startswith('Failed to remove the command, "!quote"')

    @pytest.mark.asyncio
    async def test_list_commands(self, handlers, table, sink):
        await handlers.handle(mod_message("!commands", table))
        assert sink.said[0].startswith("!addcommand !editcommand")


class TestVariableHandlers:
    @pytest.mark.asyncio
    async def test_add_edit_remove(self, handlers, table, variables, sink):
        await handlers.handle(mod_message("!addvariable key: [a] | value: one", table))
        await handlers.handle(mod_message("!editvariable ([a], two)", table))
        assert variables.get("[a]").value == "two"
        await handlers.handle(mod_message("!removevariable [a]", table))
        assert "[a]" not in variables
        assert sink.said == [
            'Foo successfully added the variable, "[a]"',
            'Foo successfully edited the variable, "[a]"',
            'Foo successfully removed the variable, "[a]"',
        ]

    @pytest.mark.asyncio
    async def test_bad_definition(self, handlers, table, sink):
        await handlers.handle(mod_message("!addvariable nonsense", table))
        assert sink.whispers[0][1].startswith('Failed to add the variable, ""')


class TestStreamHandlers:
    @pytest.mark.asyncio
    async def test_set_title(self, handlers, table, client, sink):
        message = mod_message("!settitle Speedrun night", table, tier=PermissionTier.BROADCASTER)
        await handlers.handle(message)
        client.update_channel.assert_awaited_once_with(title="Speedrun night")
        assert sink.said == ['Foo successfully updated the title, "Speedrun night"']

    @pytest.mark.asyncio
    async def test_set_title_rest_failure(self, handlers, table, client, sink):
        client.update_channel.side_effect = NetworkError("down")
        await handlers.handle(mod_message("!settitle Speedrun night", table))
        assert sink.whispers == [
            ("Foo", 'Failed to update the title, "Speedrun night": failed to update the title')
        ]

    @pytest.mark.asyncio
    async def test_set_game(self, handlers, table, client, sink):
        await handlers.handle(mod_message("!setgame Celeste", table))
        client.find_game_id.assert_awaited_once_with("Celeste")
        client.update_channel.assert_awaited_once_with(game_id="33")
        assert sink.said == ['Foo successfully updated the game, "Celeste"']

    @pytest.mark.asyncio
    async def test_set_game_unknown(self, handlers, table, client, sink):
        client.find_game_id.return_value = None
        await handlers.handle(mod_message("!setgame Nope", table))
        client.update_channel.assert_not_awaited()
        assert sink.whispers[0][1] == 'Failed to update the game, "Nope": no game by that name'

    @pytest.mark.asyncio
    async def test_set_delay(self, handlers, table, client, sink):
        await handlers.handle(mod_message("!setdelay 30", table))
        client.update_channel.assert_awaited_once_with(delay=30)
        await handlers.handle(mod_message("!setdelay soon", table))
        assert client.update_channel.await_count == 1
        assert sink.whispers[0][1].startswith('Failed to update the delay, "soon"')

    @pytest.mark.asyncio
    async def test_uptime_live(self, handlers, table, client, sink):
        client.get_stream.return_value = StreamInfo(
            title="t", game_name="g", started_at=NOW - timedelta(hours=1, minutes=30, seconds=5)
        )
        await handlers.handle(make_message("!uptime", commands=table))
        assert sink.said == ["streamer has been live for 1 hour, 30 minutes, 5 seconds"]

    @pytest.mark.asyncio
    async def test_uptime_offline_by_whisper(self, handlers, table, sink):
        await handlers.handle(
            make_message("!uptime", sender="Foo", kind=MessageKind.WHISPER, commands=table)
        )
        assert sink.whispers == [("Foo", "streamer is offline")]

    @pytest.mark.asyncio
    async def test_how_long(self, handlers, table, client, sink):
        client.followed_at.return_value = NOW - timedelta(days=3)
        await handlers.handle(make_message("!howlong", sender="Fan", commands=table))
        client.followed_at.assert_awaited_once_with("Fan")
        assert sink.said == ["Fan has been following streamer for 3 days"]

    @pytest.mark.asyncio
    async def test_how_long_not_following(self, handlers, table, sink):
        await handlers.handle(make_message("!howlong", sender="Fan", commands=table))
        assert sink.said == ["Fan is not following streamer"]

    @pytest.mark.asyncio
    async def test_shoutout(self, handlers, table, client, sink):
        client.get_user.return_value = {"id": "2002", "login": "friend", "display_name": "Friend"}
        client.get_channel.return_value = ChannelInfo(
            title="Speedruns", game_id="33", game_name="Celeste", delay=0
        )
        await handlers.handle(mod_message("!shoutout @friend", table))
        client.get_channel.assert_awaited_once_with("2002")
        assert sink.said == [
            "Go check out Friend over at https://www.twitch.tv/friend ! "
            "They were last playing Celeste."
        ]

    @pytest.mark.asyncio
    async def test_shoutout_unknown(self, handlers, table, sink):
        await handlers.handle(mod_message("!shoutout ghost", table))
        assert sink.said == []
        assert sink.whispers[0][1] == 'Failed to retrieve the channel, "ghost": no channel by that name'


class TestMusic:
    @pytest.mark.asyncio
    async def test_current_song(self, handlers, table, tmp_path, sink):
        song = tmp_path / "song.txt"
        song.write_text("Artist - Track\n", encoding="utf-8")
        table.get("!music").response = str(song)
        await handlers.handle(make_message("!music", commands=table))
        assert sink.said == ["Current song: Artist - Track"]

    @pytest.mark.asyncio
    async def test_missing_song_file(self, handlers, table, tmp_path, sink):
        table.get("!music").response = str(tmp_path / "missing.txt")
        await handlers.handle(make_message("!music", commands=table))
        assert sink.said == [SONG_UNAVAILABLE]


class TestQuoteHandlers:
    @pytest.mark.asyncio
    async def test_no_quotes(self, handlers, table, sink):
        await handlers.handle(make_message("!quote", commands=table))
        assert sink.said == [NO_QUOTES]

    @pytest.mark.asyncio
    async def test_add_then_quote(self, handlers, table, sink):
        await handlers.handle(mod_message("!addquote stay hydrated", table))
        assert sink.said[0] == 'Foo successfully added the quote, ""stay hydrated""'
        await handlers.handle(make_message("!quote", commands=table))
        assert sink.said[1].startswith('"stay hydrated" - streamer ')

    @pytest.mark.asyncio
    async def test_quote_by_index(self, handlers, table, quotes, sink):
        quotes.add("first")
        quotes.add("second")
        await handlers.handle(make_message("!quote 1", commands=table))
        assert sink.said[0].startswith('"second" - streamer ')

    @pytest.mark.asyncio
    async def test_quote_index_out_of_range(self, handlers, table, quotes, sink):
        quotes.add("first")
        await handlers.handle(make_message("!quote 5", sender="Foo", commands=table))
        assert sink.said == []
        assert sink.whispers == [
            ("Foo", 'Failed to retrieve the quote, "5": pick a number from 0 to 0')
        ]

    @pytest.mark.asyncio
    async def test_quote_index_not_a_number(self, handlers, table, quotes, sink):
        quotes.add("first")
        await handlers.handle(make_message("!quote two", sender="Foo", commands=table))
        assert sink.whispers == [
            ("Foo", 'Failed to retrieve the quote, "two": the index must be a number')
        ]

    @pytest.mark.asyncio
    async def test_quote_count(self, handlers, table, quotes, sink):
        await handlers.handle(make_message("!quotes", commands=table))
        quotes.add("first")
        await handlers.handle(make_message("!quotes", commands=table))
        quotes.add("second")
        await handlers.handle(make_message("!quotes", commands=table))
        assert sink.said[0] == NO_QUOTES
        assert sink.said[1].startswith("There is 1 quote! ")
        assert sink.said[2].startswith("There are 2 quotes! ")


class TestSpamHandlers:
    @pytest.mark.asyncio
    async def test_set_filter(self, handlers, table, spam, sink):
        await handlers.handle(mod_message("!setfilter Caps percent: 90", table))
        assert spam.settings.caps.percent == 90
        assert sink.said == ['Foo successfully updated the spam setting, "Caps"']

    @pytest.mark.asyncio
    async def test_set_filter_invalid(self, handlers, table, sink):
        await handlers.handle(mod_message("!setfilter Bogus on: yes", table))
        assert sink.whispers[0][1].startswith('Failed to update the spam setting, "Bogus"')

    @pytest.mark.asyncio
    async def test_blacklist_commands(self, handlers, table, spam, sink, tmp_path):
        await handlers.handle(mod_message("!blacklist add foo, bar", table))
        await handlers.handle(mod_message("!blacklist edit foo, baz", table))
        await handlers.handle(mod_message("!blacklist remove bar", table))
        assert spam.blacklist == ["baz"]
        assert json.loads((tmp_path / "blacklist.json").read_text()) == ["baz"]
        assert sink.said == [
            'Foo successfully added the blacklisted word(s), "foo, bar"',
            'Foo successfully edited the blacklisted word(s), "foo -> baz"',
            'Foo successfully removed the blacklisted word(s), "bar"',
        ]

    @pytest.mark.asyncio
    async def test_blacklist_unknown_action(self, handlers, table, sink):
        await handlers.handle(mod_message("!blacklist purge all", table))
        assert sink.whispers[0][1].endswith("expected add, edit or remove")


@pytest.mark.asyncio
async def test_default_response_expands_variables(handlers, table, variables, sink):
    table.add("!site", "Visit [site]")
    variables.add(Variable("[site]", "example.com"))
    await handlers.handle(make_message("!site", commands=table))
    assert sink.said == ["Visit example.com"]
