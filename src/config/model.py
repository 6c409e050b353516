from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, field_validator


class LoginConfig(BaseModel):
    """Credentials read from the login file.

    Attributes:
        client_id: Twitch application client ID.
        bot_token: OAuth token of the bot account (chat and whispers).
        broadcaster_token: OAuth token of the broadcaster (channel updates
            and moderation).
    """

    client_id: str = Field(min_length=1)
    bot_token: str = Field(min_length=1)
    broadcaster_token: str = Field(min_length=1)

    @field_validator("client_id", "bot_token", "broadcaster_token", mode="before")
    @classmethod
    def strip_value(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("bot_token", "broadcaster_token")
    @classmethod
    def strip_oauth_prefix(cls, v: str) -> str:
        """Store bare tokens; IRC adds ``oauth:`` back when logging in."""
        if v.lower().startswith("oauth:"):
            v = v[len("oauth:") :]
        if not v:
            raise ValueError("token must not be empty")
        return v

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LoginConfig:
        return cls.model_validate(dict(data))

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()
