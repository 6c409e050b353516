"""Variable table and the ``[key]`` / ``(definition)`` template language.

A variable key is a bracketed token such as ``[name]``. Any outbound text has
every known key replaced by its value. Chat input may also define variables
inline with a parenthesised definition, which is registered and replaced by
its key:

    ``!addcommand !so Follow (key: [site] | value: example.com) now``
    ``!addcommand !so Follow ([site], example.com) now``
"""

from __future__ import annotations

import logging
import re

from ..config.storage import JsonStore
from ..errors.chat import ChatError, ChatErrorKind, Result
from ..logs.logger import logger
from .models import Variable

_DEFINITION_SPAN = re.compile(r"\(([^()]*)\)")
_KEY_FORBIDDEN = set(" {}[]()")
_VALUE_FORBIDDEN = set("{}[]()")


def check_variable_syntax(variable: Variable) -> ChatError | None:
    """Return why ``variable`` cannot be stored, or None when it is valid."""
    key, value = variable.key, variable.value
    if not key or not value:
        return ChatError(ChatErrorKind.SYNTAX, "key and value must not be empty")
    if len(key) < 3 or not (key.startswith("[") and key.endswith("]")):
        return ChatError(
            ChatErrorKind.SYNTAX, "key must be wrapped in square brackets"
        )
    if _KEY_FORBIDDEN.intersection(key[1:-1]):
        return ChatError(
            ChatErrorKind.SYNTAX,
            "key must not contain spaces, brackets, braces or parentheses",
        )
    if _VALUE_FORBIDDEN.intersection(value):
        return ChatError(
            ChatErrorKind.SYNTAX,
            "value must not contain brackets, braces or parentheses",
        )
    return None


def _unquote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] == '"':
        return text[1:-1].strip()
    return text


def parse_definition(content: str) -> Result[Variable]:
    """Parse ``key: [k] | value: v`` or ``[k], v`` into a :class:`Variable`.

    Both halves may be wrapped in double quotes.
    """
    content = content.strip()
    if "|" in content:
        fields: dict[str, str] = {}
        for part in content.split("|"):
            name, sep, raw = part.partition(":")
            if not sep:
                return Result.failure(
                    ChatErrorKind.SERIALIZATION, f"expected 'field: value' in '{part.strip()}'"
                )
            fields[_unquote(name).lower()] = _unquote(raw)
        if "key" not in fields or "value" not in fields:
            return Result.failure(
                ChatErrorKind.SERIALIZATION, "definition needs both key and value"
            )
        return Result.success(Variable(fields["key"], fields["value"]))
    key, sep, value = content.partition(",")
    if not sep:
        return Result.failure(
            ChatErrorKind.SERIALIZATION,
            "expected 'key: [name] | value: text' or '[name], text'",
        )
    return Result.success(Variable(_unquote(key), _unquote(value)))


class VariableTable:
    """Keyed variables kept in insertion order and mirrored to a JSON store."""

    def __init__(self, store: JsonStore):
        self.store = store
        self._variables: dict[str, Variable] = {}

    def __len__(self) -> int:
        return len(self._variables)

    def __contains__(self, key: object) -> bool:
        return key in self._variables

    def get(self, key: str) -> Variable | None:
        return self._variables.get(key)

    def values(self) -> list[Variable]:
        return list(self._variables.values())

    def load(self) -> int:
        """Populate the table from the store, skipping invalid records."""
        raw = self.store.load(default=[])
        if not isinstance(raw, list):
            logger.log_event(
                "variables", "load_invalid", level=logging.WARNING, path=str(self.store.path)
            )
            return 0
        for record in raw:
            if not isinstance(record, dict):
                logger.log_event(
                    "variables", "load_skipped", level=logging.WARNING, record=record
                )
                continue
            variable = Variable(str(record.get("key", "")), str(record.get("value", "")))
            problem = check_variable_syntax(variable)
            if problem or variable.key in self._variables:
                logger.log_event(
                    "variables",
                    "load_skipped",
                    level=logging.WARNING,
                    record=record,
                    reason=str(problem or "duplicate key"),
                )
                continue
            self._variables[variable.key] = variable
        logger.log_event("variables", "loaded", count=len(self._variables))
        return len(self._variables)

    def expand(self, text: str) -> str:
        """Replace every known key in ``text`` with its value."""
        for key, variable in self._variables.items():
            if key in text:
                text = text.replace(key, variable.value)
        return text

    def add(self, variable: Variable) -> Result[Variable]:
        problem = check_variable_syntax(variable)
        if problem:
            return Result(error=problem)
        if variable.key in self._variables:
            return Result.failure(
                ChatErrorKind.EXISTS, f"{variable.key} already exists"
            )
        self._variables[variable.key] = variable
        if not self._persist():
            del self._variables[variable.key]
            return Result.failure(ChatErrorKind.TRANSIENT_IO, "could not save variables")
        logger.log_event("variables", "added", key=variable.key)
        return Result.success(variable)

    def edit(self, variable: Variable) -> Result[Variable]:
        problem = check_variable_syntax(variable)
        if problem:
            return Result(error=problem)
        previous = self._variables.get(variable.key)
        if previous is None:
            return Result.failure(
                ChatErrorKind.MISSING, f"{variable.key} does not exist"
            )
        self._variables[variable.key] = variable
        if not self._persist():
            self._variables[variable.key] = previous
            return Result.failure(ChatErrorKind.TRANSIENT_IO, "could not save variables")
        logger.log_event("variables", "edited", key=variable.key)
        return Result.success(variable)

    def remove(self, key: str) -> Result[Variable]:
        key = key.strip()
        if key not in self._variables:
            return Result.failure(ChatErrorKind.MISSING, f"{key} does not exist")
        snapshot = dict(self._variables)
        removed = self._variables.pop(key)
        if not self._persist():
            self._variables = snapshot
            return Result.failure(ChatErrorKind.TRANSIENT_IO, "could not save variables")
        logger.log_event("variables", "removed", key=key)
        return Result.success(removed)

    def extract_definitions(
        self, text: str
    ) -> tuple[str, list[Variable], list[ChatError]]:
        """Register inline ``(definition)`` spans and swap them for their keys.

        Spans that fail to parse or to register stay in the text unchanged.

        Returns:
            The rewritten text, the variables added, and the failures met.
        """
        added: list[Variable] = []
        failures: list[ChatError] = []
        pieces: list[str] = []
        cursor = 0
        for match in _DEFINITION_SPAN.finditer(text):
            content = match.group(1)
            pieces.append(text[cursor : match.start()])
            cursor = match.end()
            if not content.strip():
                pieces.append(match.group(0))
                continue
            parsed = parse_definition(content)
            result = self.add(parsed.value) if parsed.ok and parsed.value else parsed
            if result.ok and result.value is not None:
                added.append(result.value)
                pieces.append(result.value.key)
                continue
            if result.error:
                failures.append(result.error)
                logger.log_event(
                    "variables",
                    "definition_rejected",
                    level=logging.DEBUG,
                    span=match.group(0),
                    reason=str(result.error),
                )
            pieces.append(match.group(0))
        pieces.append(text[cursor:])
        return "".join(pieces), added, failures

    def _persist(self) -> bool:
        try:
            self.store.save([v.to_dict() for v in self._variables.values()])
        except OSError as e:
            logger.log_event(
                "variables", "save_failed", level=logging.ERROR, error=str(e)
            )
            return False
        return True


__all__ = [
    "VariableTable",
    "check_variable_syntax",
    "parse_definition",
]
