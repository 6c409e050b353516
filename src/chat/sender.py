"""Resolve who sent a line and what they are allowed to do."""

from __future__ import annotations

from collections.abc import Mapping

from .models import PermissionTier, Sender


def name_from_prefix(prefix: str) -> str:
    """Return the nick of a ``nick!user@host`` prefix (leading ``:`` optional)."""
    prefix = prefix.lstrip(":")
    if "!" not in prefix:
        return ""
    return prefix.split("!", 1)[0]


def resolve_sender(
    tags: Mapping[str, str], prefix: str, broadcaster: str
) -> Sender:
    """Build a :class:`Sender` from IRC tags and prefix.

    ``display-name`` wins over the prefix nick. ``user-type`` picks the tier
    (viewer when empty or unknown); a viewer with ``subscriber=1`` is a
    subscriber. The broadcaster is recognised by name since Twitch leaves
    their ``user-type`` empty.
    """
    name = tags.get("display-name") or name_from_prefix(prefix)
    tier = PermissionTier.parse(tags.get("user-type")) or PermissionTier.VIEWER
    if tier is PermissionTier.VIEWER and tags.get("subscriber") == "1":
        tier = PermissionTier.SUBSCRIBER
    if name and broadcaster and name.lower() == broadcaster.lower():
        tier = PermissionTier.BROADCASTER
    return Sender(name=name, tier=tier)


__all__ = ["resolve_sender", "name_from_prefix"]
