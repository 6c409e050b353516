"""Spam filter settings tree and the ``!setfilter`` update parser."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    ValidationError,
)

from ..errors.chat import ChatErrorKind, Result
from .models import PermissionTier


def _coerce_tier(value: Any) -> PermissionTier:
    if isinstance(value, PermissionTier):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return PermissionTier(value)
    tier = PermissionTier.parse(str(value))
    if tier is None:
        raise ValueError(f"unknown permission tier '{value}'")
    return tier


Tier = Annotated[
    PermissionTier,
    BeforeValidator(_coerce_tier),
    PlainSerializer(lambda tier: tier.label, return_type=str),
]


class RuleSettings(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    enabled: bool = True
    permission: Tier = PermissionTier.MODERATOR


class AsciiSettings(RuleSettings):
    length: int = Field(default=10, ge=0)
    percent: int = Field(default=50, ge=0, le=100)


class CapsSettings(RuleSettings):
    length: int = Field(default=10, ge=0)
    percent: int = Field(default=70, ge=0, le=100)


class LinksSettings(RuleSettings):
    permission: Tier = PermissionTier.SUBSCRIBER


class WallSettings(RuleSettings):
    length: int = Field(default=300, ge=1)


class BlacklistSettings(RuleSettings):
    pass


class SpamSettings(BaseModel):
    """Master switch, exempt tier and escalation steps plus one block per rule.

    Serialized with the rule blocks under ``ASCII``, ``Caps``, ``Links``,
    ``Wall`` and ``Blacklist``; tiers are stored by name.
    """

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    enabled: bool = True
    permission: Tier = PermissionTier.MODERATOR
    timeouts: list[Annotated[int, Field(ge=1)]] = Field(
        default_factory=lambda: [60, 300, 600]
    )
    ascii: AsciiSettings = Field(default_factory=AsciiSettings, alias="ASCII")
    caps: CapsSettings = Field(default_factory=CapsSettings, alias="Caps")
    links: LinksSettings = Field(default_factory=LinksSettings, alias="Links")
    wall: WallSettings = Field(default_factory=WallSettings, alias="Wall")
    blacklist: BlacklistSettings = Field(
        default_factory=BlacklistSettings, alias="Blacklist"
    )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SpamSettings:
        return cls.model_validate(data)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


RULE_NAMES: dict[str, str] = {
    "ascii": "ASCII",
    "caps": "Caps",
    "links": "Links",
    "wall": "Wall",
    "blacklist": "Blacklist",
}
_TOP_LEVEL_FIELDS = ("enabled", "permission", "timeouts")


def _parse_fields(text: str) -> dict[str, Any] | None:
    fields: dict[str, Any] = {}
    for part in text.split("|"):
        if not part.strip():
            continue
        name, sep, value = part.partition(":")
        if not sep:
            return None
        name = name.strip().lower()
        value = value.strip()
        if name == "timeouts":
            fields[name] = [v.strip() for v in value.split(",") if v.strip()]
        else:
            fields[name] = value
    return fields or None


def apply_setting_update(
    settings: SpamSettings, text: str
) -> Result[tuple[str, SpamSettings]]:
    """Parse a ``!setfilter`` argument and return an updated copy of ``settings``.

    Accepted forms::

        Caps enabled: false | percent: 60
        enabled: true
        permission: subscriber
        timeouts: 30, 120, 600

    Returns:
        The label of the changed block and the new settings.
    """
    text = text.strip()
    head, _, rest = text.partition(" ")
    head = head.rstrip(":").lower()
    data = settings.to_dict()

    if head in RULE_NAMES:
        label = RULE_NAMES[head]
        fields = _parse_fields(rest)
        if fields is None:
            return Result.failure(
                ChatErrorKind.SYNTAX, f"expected '{label} field: value | field: value'"
            )
        unknown = set(fields) - set(data[label])
        if unknown:
            return Result.failure(
                ChatErrorKind.SYNTAX,
                f"{label} has no setting named {', '.join(sorted(unknown))}",
            )
        data[label].update(fields)
    elif head in _TOP_LEVEL_FIELDS:
        label = head
        fields = _parse_fields(text)
        if fields is None or set(fields) - set(_TOP_LEVEL_FIELDS):
            return Result.failure(
                ChatErrorKind.SYNTAX, "expected 'enabled|permission|timeouts: value'"
            )
        data.update(fields)
    else:
        return Result.failure(
            ChatErrorKind.SYNTAX,
            f"unknown spam setting '{head}'" if head else "no spam setting given",
        )

    try:
        updated = SpamSettings.from_dict(data)
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ()))
        return Result.failure(
            ChatErrorKind.SERIALIZATION, f"invalid value for {where}: {first.get('msg')}"
        )
    return Result.success((label, updated))


__all__ = [
    "SpamSettings",
    "AsciiSettings",
    "CapsSettings",
    "LinksSettings",
    "WallSettings",
    "BlacklistSettings",
    "apply_setting_update",
    "RULE_NAMES",
]
