from __future__ import annotations

import json
import sqlite3
from pathlib import Path

import pytest

from mux_engine.entry_store.api import Entry
from mux_engine.entry_store.json_repository import JsonEntryRepository
from mux_engine.entry_store.sqlite_repository import SqliteEntryRepository
from mux_engine.errors import EntryStoreError, UnknownEntryError


def _entries() -> list[Entry]:
    return [
        Entry(nickname="app", path="/src/app/CMakeLists.txt", patterns=("^debug", "arm$")),
        Entry(nickname="lib", path="/src/lib/CMakeLists.txt"),
        Entry(nickname="", path="/src/tool/CMakeLists.txt", patterns=("rel",)),
    ]


def test_sqlite_repository_roundtrip_preserves_order_and_patterns(tmp_path: Path) -> None:
    """Entries saved should load back in the same order with identical patterns."""
    repo = SqliteEntryRepository(db_path=tmp_path / "entries.sqlite")
    repo.save_entries(_entries())

    loaded = SqliteEntryRepository(db_path=tmp_path / "entries.sqlite").load_entries()

    assert [e.path for e in loaded] == [e.path for e in _entries()]
    assert [e.patterns for e in loaded] == [e.patterns for e in _entries()]
    assert [e.nickname for e in loaded] == ["app", "lib", ""]


def test_sqlite_save_patterns_touches_only_one_entry(tmp_path: Path) -> None:
    repo = SqliteEntryRepository(db_path=tmp_path / "entries.sqlite")
    repo.save_entries(_entries())

    repo.save_patterns(Entry(nickname="ignored", path="/src/lib/CMakeLists.txt", patterns=("x",)))
    loaded = repo.load_entries()

    assert loaded[1].patterns == ("x",)
    assert loaded[1].nickname == "lib"
    assert loaded[0].patterns == ("^debug", "arm$")


def test_sqlite_save_patterns_for_unknown_entry_raises(tmp_path: Path) -> None:
    repo = SqliteEntryRepository(db_path=tmp_path / "entries.sqlite")
    with pytest.raises(UnknownEntryError):
        repo.save_patterns(Entry(nickname="x", path="/nowhere/CMakeLists.txt", patterns=("a",)))


def test_sqlite_rejects_store_with_other_schema_version(tmp_path: Path) -> None:
    db = tmp_path / "entries.sqlite"
    SqliteEntryRepository(db_path=db).save_entries(_entries())
    conn = sqlite3.connect(db)
    conn.execute("UPDATE store_meta SET value = '2' WHERE key = 'schema_version'")
    conn.commit()
    conn.close()

    with pytest.raises(EntryStoreError):
        SqliteEntryRepository(db_path=db)


def test_json_repository_roundtrip(tmp_path: Path) -> None:
    repo = JsonEntryRepository(json_path=tmp_path / "entries.json")
    repo.save_entries(_entries())

    payload = json.loads((tmp_path / "entries.json").read_text(encoding="utf-8"))
    assert payload["schema_version"] == "buildmux_entries_v1"
    assert [e.to_record() for e in repo.load_entries()] == [e.to_record() for e in _entries()]


def test_json_repository_missing_file_is_empty(tmp_path: Path) -> None:
    assert JsonEntryRepository(json_path=tmp_path / "absent.json").load_entries() == []


def test_json_repository_accepts_legacy_records(tmp_path: Path) -> None:
    """A bare list without patterns, with a bad record and a duplicate, still loads."""
    path = tmp_path / "entries.json"
    path.write_text(
        json.dumps(
            [
                {"nickname": "old", "path": "/src/old/CMakeLists.txt"},
                {"nickname": "nulls", "path": "/src/n/CMakeLists.txt", "patterns": None},
                {"nickname": "broken", "path": ""},
                "not a record",
                {"nickname": "dupe", "path": "/src/old/./CMakeLists.txt", "patterns": ["x"]},
            ]
        ),
        encoding="utf-8",
    )

    loaded = JsonEntryRepository(json_path=path).load_entries()

    assert [e.nickname for e in loaded] == ["old", "nulls"]
    assert all(e.patterns == () for e in loaded)


def test_json_repository_corrupt_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "entries.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(EntryStoreError):
        JsonEntryRepository(json_path=path).load_entries()


def test_json_repository_undecodable_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "entries.json"
    path.write_bytes(b'{"entries": [\xff\xfe]}')
    with pytest.raises(EntryStoreError):
        JsonEntryRepository(json_path=path).load_entries()


def test_json_save_patterns_for_unknown_entry_raises(tmp_path: Path) -> None:
    repo = JsonEntryRepository(json_path=tmp_path / "entries.json")
    repo.save_entries(_entries())
    with pytest.raises(UnknownEntryError):
        repo.save_patterns(Entry(nickname="x", path="/nowhere/CMakeLists.txt"))
