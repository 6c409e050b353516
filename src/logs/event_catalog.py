"""Human readable text for ``(domain, action)`` log events.

Templates live in ``event_templates.json`` as ``{domain: {action: text}}``
and are formatted with the event's keyword context.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

EVENT_TEMPLATES: dict[tuple[str, str], str] = {}
DEFAULT_PATH = Path(__file__).with_name("event_templates.json")


def _flatten(raw: Any) -> dict[tuple[str, str], str]:
    if not isinstance(raw, dict):
        return {}
    return {
        (domain, action): text
        for domain, actions in raw.items()
        if isinstance(domain, str) and isinstance(actions, dict)
        for action, text in actions.items()
        if isinstance(action, str) and isinstance(text, str)
    }


def _load_event_templates(path: Path) -> dict[tuple[str, str], str]:
    """Read and flatten the template file.

    A missing or broken file yields a single ``("app", "load_error")`` entry
    so logging keeps working with derived text.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {("app", "load_error"): "Event templates file missing"}
    except (OSError, ValueError) as e:
        return {("app", "load_error"): f"Failed to load event templates: {e}"[:200]}
    return _flatten(raw)


def reload_event_templates(path: Path | None = None) -> None:
    global EVENT_TEMPLATES  # noqa: PLW0603
    EVENT_TEMPLATES = _load_event_templates(path or DEFAULT_PATH)


reload_event_templates()

__all__ = ["EVENT_TEMPLATES", "reload_event_templates"]
