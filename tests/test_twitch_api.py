from __future__ import annotations

import asyncio
from typing import Any

import pytest

from src.api.twitch import VALIDATE_URL, TwitchAPI, raise_for_status
from src.errors.internal import NetworkError, OAuthError, ParsingError, RateLimitError
from tests.fixtures.helix_responses import STREAM_LIVE, VALIDATE_BOT


class _Resp:
    def __init__(self, status: int, payload: dict[str, Any] | list[Any] | None, headers: dict[str, str] | None = None):
        self.status = status
        self._payload = payload
        self.headers = headers or {}

    async def json(self) -> Any:  # noqa: D401
        await asyncio.sleep(0)
        if self._payload is None:
            raise ValueError("no body")
        return self._payload


class _Session:
    def __init__(self):
        self.requests: list[tuple[str, str, dict[str, Any]]] = []
        self._queue: list[_Resp] = []

    def queue(self, resp: _Resp) -> None:
        self._queue.append(resp)

    def request(self, method: str, url: str, headers=None, params=None, json=None, timeout=None):  # noqa: A002
        self.requests.append((method, url, {"headers": headers, "params": params, "json": json}))
        resp = self._queue.pop(0)

        class _CM:
            async def __aenter__(self_inner):  # noqa: ANN001
                return resp

            async def __aexit__(self_inner, exc_type, exc, tb):  # noqa: ANN001
                return False

        return _CM()

    def get(self, url: str, headers=None, params=None):  # noqa: D401
        return self.request("GET", url, headers=headers, params=params)


def test_request_headers_and_body() -> None:
    session = _Session()
    session.queue(_Resp(204, None))
    api = TwitchAPI(session)  # type: ignore[arg-type]
    data, status, _ = asyncio.run(
        api.request(
            "PATCH",
            "channels",
            access_token="AT",
            client_id="CID",
            params={"broadcaster_id": "1001"},
            json_body={"title": "New"},
        )
    )
    assert (data, status) == ({}, 204)
    method, url, meta = session.requests[0]
    assert method == "PATCH"
    assert url == "https://api.twitch.tv/helix/channels"
    assert meta["headers"]["Authorization"] == "Bearer AT"
    assert meta["headers"]["Client-Id"] == "CID"
    assert meta["json"] == {"title": "New"}


def test_unparsable_body_becomes_empty() -> None:
    session = _Session()
    session.queue(_Resp(200, None))
    api = TwitchAPI(session)  # type: ignore[arg-type]
    data, status, _ = asyncio.run(api.request("GET", "users", access_token="AT", client_id="CID"))
    assert (data, status) == ({}, 200)


def test_get_rows_returns_data() -> None:
    session = _Session()
    session.queue(_Resp(200, {"data": [*STREAM_LIVE["data"], "junk"]}))
    api = TwitchAPI(session)  # type: ignore[arg-type]
    rows = asyncio.run(api.get_rows("streams", access_token="AT", client_id="CID"))
    assert rows == STREAM_LIVE["data"]


@pytest.mark.parametrize(
    ("status", "error"),
    [
        (401, OAuthError),
        (429, RateLimitError),
        (404, ParsingError),
        (503, NetworkError),
    ],
)
def test_get_rows_status_errors(status: int, error: type[Exception]) -> None:
    session = _Session()
    session.queue(_Resp(status, {"message": "nope"}))
    api = TwitchAPI(session)  # type: ignore[arg-type]
    with pytest.raises(error):
        asyncio.run(api.get_rows("users", access_token="AT", client_id="CID"))


def test_rate_limit_headers_captured() -> None:
    with pytest.raises(RateLimitError) as info:
        raise_for_status(
            429, {"Ratelimit-Remaining": "0", "Ratelimit-Reset": "1700000000"}, "GET users"
        )
    context = info.value.data["rate_limit"]
    assert context.remaining == 0
    assert context.reset_at == 1700000000.0


def test_validate_token() -> None:
    session = _Session()
    session.queue(_Resp(200, VALIDATE_BOT))
    session.queue(_Resp(401, {"message": "invalid access token"}))
    api = TwitchAPI(session)  # type: ignore[arg-type]
    assert asyncio.run(api.validate_token("good")) == VALIDATE_BOT
    assert asyncio.run(api.validate_token("bad")) is None
    _, url, meta = session.requests[0]
    assert url == VALIDATE_URL
    assert meta["headers"] == {"Authorization": "OAuth good"}


def test_session_required() -> None:
    with pytest.raises(ValueError):
        TwitchAPI(None)  # type: ignore[arg-type]
