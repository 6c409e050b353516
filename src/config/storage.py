"""File-backed stores for the chat tables.

Every mutation rewrites the whole file through a temp file in the same
directory followed by ``os.replace`` so a crash never leaves half a file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any


def _prepare_dir(path: Path) -> None:
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)


def atomic_write_text(path: str | os.PathLike[str], text: str) -> None:
    """Replace ``path`` with ``text`` atomically.

    Raises:
        OSError: the temp file could not be written or moved into place.
    """
    target = Path(path)
    _prepare_dir(target)
    temp_path: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            dir=target.parent,
            prefix=f".{target.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        ) as tmp:
            temp_path = tmp.name
            tmp.write(text)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(temp_path, target)
    except OSError as e:
        if temp_path and os.path.exists(temp_path):
            try:
                os.unlink(temp_path)
            except OSError:
                pass
        logging.error(f"💥 Atomic save failed for {target.name}: {type(e).__name__}")
        raise


class JsonStore:
    """A JSON document rewritten wholesale on save."""

    def __init__(self, path: str | os.PathLike[str]):
        self.path = Path(path)

    def load(self, default: Any = None) -> Any:
        """Return the parsed document, or ``default`` when missing or corrupt."""
        try:
            with self.path.open(encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return default
        except (OSError, ValueError) as e:
            logging.error(f"💥 Could not read {self.path.name}: {e}")
            return default

    def save(self, data: Any) -> None:
        atomic_write_text(self.path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


class LineStore:
    """A UTF-8 text file holding one record per line."""

    def __init__(self, path: str | os.PathLike[str]):
        self.path = Path(path)

    def read_lines(self) -> list[str]:
        try:
            with self.path.open(encoding="utf-8") as f:
                return [line.rstrip("\r\n") for line in f]
        except FileNotFoundError:
            return []

    def rewrite(self, lines: Iterable[str]) -> None:
        body = "".join(f"{line}\n" for line in lines)
        atomic_write_text(self.path, body)

    def append(self, line: str) -> None:
        lines = self.read_lines()
        lines.append(line)
        self.rewrite(lines)

    def replace_first(
        self, match: Callable[[str], bool], replacement: str | None
    ) -> bool:
        """Replace (or drop when ``replacement`` is None) the first matching line.

        Returns False when no line matched; the file is left untouched.
        """
        lines = self.read_lines()
        for index, line in enumerate(lines):
            if match(line):
                if replacement is None:
                    del lines[index]
                else:
                    lines[index] = replacement
                self.rewrite(lines)
                return True
        return False


__all__ = ["atomic_write_text", "JsonStore", "LineStore"]
