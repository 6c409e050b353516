from __future__ import annotations

from unittest.mock import patch

import pytest

from src.config.storage import JsonStore, LineStore, atomic_write_text


class TestAtomicWrite:
    def test_creates_parent_dirs(self, tmp_path):
        target = tmp_path / "nested" / "file.txt"
        atomic_write_text(target, "hello")
        assert target.read_text(encoding="utf-8") == "hello"

    def test_failed_replace_leaves_original_and_no_temp(self, tmp_path):
        target = tmp_path / "file.txt"
        target.write_text("original", encoding="utf-8")
        with patch("src.config.storage.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                atomic_write_text(target, "new")
        assert target.read_text(encoding="utf-8") == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["file.txt"]


class TestJsonStore:
    def test_round_trip(self, tmp_path):
        store = JsonStore(tmp_path / "data.json")
        store.save({"key": "[a]", "value": "ünïcode"})
        assert store.load() == {"key": "[a]", "value": "ünïcode"}

    def test_missing_and_corrupt_return_default(self, tmp_path):
        store = JsonStore(tmp_path / "data.json")
        assert store.load(default=[]) == []
        store.path.write_text("{oops", encoding="utf-8")
        assert store.load(default=[]) == []


class TestLineStore:
    def test_append_and_read(self, tmp_path):
        store = LineStore(tmp_path / "lines.txt")
        assert store.read_lines() == []
        store.append("one")
        store.append("two")
        assert store.read_lines() == ["one", "two"]

    def test_replace_first_match(self, tmp_path):
        store = LineStore(tmp_path / "lines.txt")
        store.rewrite(["!a x", "!b y", "!a z"])
        assert store.replace_first(lambda line: line.startswith("!a"), "!a new")
        assert store.read_lines() == ["!a new", "!b y", "!a z"]

    def test_drop_first_match(self, tmp_path):
        store = LineStore(tmp_path / "lines.txt")
        store.rewrite(["!a x", "!b y"])
        assert store.replace_first(lambda line: line.startswith("!b"), None)
        assert store.read_lines() == ["!a x"]

    def test_no_match_leaves_file(self, tmp_path):
        store = LineStore(tmp_path / "lines.txt")
        store.rewrite(["!a x"])
        assert not store.replace_first(lambda line: False, None)
        assert store.read_lines() == ["!a x"]
