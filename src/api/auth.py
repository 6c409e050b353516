"""Credential-bearing wrapper around the stateless :class:`TwitchAPI`.

One instance per token. The broadcaster's instance performs channel updates
and moderation on the broadcaster's own channel.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..errors.handling import with_retry
from ..errors.internal import OAuthError, ParsingError
from .twitch import TwitchAPI, raise_for_status


def _parse_time(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class StreamInfo:
    title: str
    game_name: str
    started_at: datetime | None


@dataclass(frozen=True, slots=True)
class ChannelInfo:
    title: str
    game_id: str
    game_name: str
    delay: int


class AuthenticatedClient:
    """Helix calls made as one authenticated Twitch user."""

    def __init__(
        self,
        api: TwitchAPI,
        *,
        client_id: str,
        access_token: str,
        login: str,
        user_id: str,
    ):
        self.api = api
        self.client_id = client_id
        self.access_token = access_token
        self.login = login
        self.user_id = user_id

    @classmethod
    async def authenticate(
        cls, api: TwitchAPI, client_id: str, access_token: str
    ) -> AuthenticatedClient:
        """Validate ``access_token`` and bind the identity it belongs to.

        Raises:
            OAuthError: the token was rejected or carries no identity.
        """
        payload = await with_retry(
            lambda: api.validate_token(access_token), "Twitch token validation"
        )
        if not payload or not payload.get("login") or not payload.get("user_id"):
            raise OAuthError("Token validation failed; generate a new token")
        return cls(
            api,
            client_id=client_id,
            access_token=access_token,
            login=str(payload["login"]),
            user_id=str(payload["user_id"]),
        )

    async def _rows(
        self, endpoint: str, params: dict[str, Any] | list[tuple[str, str]]
    ) -> list[dict[str, Any]]:
        return await with_retry(
            lambda: self.api.get_rows(
                endpoint,
                access_token=self.access_token,
                client_id=self.client_id,
                params=params,
            ),
            f"GET {endpoint}",
        )

    async def _send(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        context = f"{method} {endpoint}"

        async def operation() -> dict[str, Any]:
            data, status, headers = await self.api.request(
                method,
                endpoint,
                access_token=self.access_token,
                client_id=self.client_id,
                params=params,
                json_body=json_body,
            )
            raise_for_status(status, headers, context)
            return data

        return await with_retry(operation, context)

    # ---- lookups ----
    async def get_user(self, login: str) -> dict[str, Any] | None:
        rows = await self._rows("users", {"login": login.lower().lstrip("@")})
        return rows[0] if rows else None

    async def get_stream(self) -> StreamInfo | None:
        rows = await self._rows("streams", {"user_id": self.user_id})
        if not rows:
            return None
        row = rows[0]
        return StreamInfo(
            title=str(row.get("title", "")),
            game_name=str(row.get("game_name", "")),
            started_at=_parse_time(row.get("started_at")),
        )

    async def get_channel(self, broadcaster_id: str | None = None) -> ChannelInfo | None:
        rows = await self._rows(
            "channels", {"broadcaster_id": broadcaster_id or self.user_id}
        )
        if not rows:
            return None
        row = rows[0]
        return ChannelInfo(
            title=str(row.get("title", "")),
            game_id=str(row.get("game_id", "")),
            game_name=str(row.get("game_name", "")),
            delay=int(row.get("delay") or 0),
        )

    async def find_game_id(self, name: str) -> str | None:
        rows = await self._rows("games", {"name": name})
        return str(rows[0]["id"]) if rows and rows[0].get("id") else None

    async def followed_at(self, login: str) -> datetime | None:
        user = await self.get_user(login)
        if not user:
            return None
        rows = await self._rows(
            "channels/followers",
            {"broadcaster_id": self.user_id, "user_id": str(user.get("id", ""))},
        )
        return _parse_time(rows[0].get("followed_at")) if rows else None

    # ---- channel settings ----
    async def update_channel(
        self,
        *,
        title: str | None = None,
        game_id: str | None = None,
        delay: int | None = None,
    ) -> None:
        body: dict[str, Any] = {}
        if title is not None:
            body["title"] = title
        if game_id is not None:
            body["game_id"] = game_id
        if delay is not None:
            body["delay"] = delay
        if body:
            await self._send(
                "PATCH", "channels", params={"broadcaster_id": self.user_id}, json_body=body
            )

    # ---- moderation ----
    async def _user_id(self, login: str) -> str:
        user = await self.get_user(login)
        if not user or not user.get("id"):
            raise ParsingError(f"Unknown Twitch user '{login}'")
        return str(user["id"])

    async def timeout(self, user: str, seconds: int, reason: str) -> None:
        await self._ban(user, reason, duration=seconds)

    async def ban(self, user: str, reason: str) -> None:
        await self._ban(user, reason, duration=None)

    async def _ban(self, user: str, reason: str, *, duration: int | None) -> None:
        data: dict[str, Any] = {"user_id": await self._user_id(user), "reason": reason}
        if duration is not None:
            data["duration"] = duration
        await self._send(
            "POST",
            "moderation/bans",
            params={"broadcaster_id": self.user_id, "moderator_id": self.user_id},
            json_body={"data": data},
        )

    async def unban(self, user: str) -> None:
        await self._send(
            "DELETE",
            "moderation/bans",
            params={
                "broadcaster_id": self.user_id,
                "moderator_id": self.user_id,
                "user_id": await self._user_id(user),
            },
        )

    async def mod(self, user: str) -> None:
        await self._send(
            "POST",
            "moderation/moderators",
            params={"broadcaster_id": self.user_id, "user_id": await self._user_id(user)},
        )

    async def unmod(self, user: str) -> None:
        await self._send(
            "DELETE",
            "moderation/moderators",
            params={"broadcaster_id": self.user_id, "user_id": await self._user_id(user)},
        )


__all__ = ["AuthenticatedClient", "StreamInfo", "ChannelInfo"]
