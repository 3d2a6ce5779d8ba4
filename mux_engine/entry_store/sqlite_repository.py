"""
SQLite implementation of EntryRepository.

This module owns the default on-disk persistence format for registered
entries.

Threading
---------
A connection is opened per operation and closed before returning, so the
repository object itself may be shared. Serializing writers is the job of the
entry store service, not of this module.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from ..errors import EntryStoreError, UnknownEntryError, ValidationError
from .api import Entry, EntryRepository
from .schema import SCHEMA_V1, SCHEMA_VERSION


def _ensure_schema(conn: sqlite3.Connection) -> None:
    """
    Record the schema version, refusing stores written with a different one.

    Raises
    ------
    EntryStoreError
        If the store declares a schema version this module does not write.
    """
    row = conn.execute("SELECT value FROM store_meta WHERE key = 'schema_version'").fetchone()
    if row is None:
        conn.execute(
            "INSERT INTO store_meta(key, value) VALUES('schema_version', ?)",
            (SCHEMA_VERSION,),
        )
        return
    if str(row["value"]) != SCHEMA_VERSION:
        raise EntryStoreError(
            f"Unsupported entry store schema version {row['value']!r} "
            f"(expected {SCHEMA_VERSION!r})"
        )


@dataclass(frozen=True, slots=True)
class SqliteEntryRepository(EntryRepository):
    """
    SQLite-backed EntryRepository.

    Parameters
    ----------
    db_path:
        Path to the SQLite database.

    Notes
    -----
    The database file is created if absent. The parent directory is created as
    needed.
    """

    db_path: Path

    def __post_init__(self) -> None:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._transaction() as conn:
                conn.executescript(SCHEMA_V1)
                _ensure_schema(conn)
        except (OSError, sqlite3.Error) as exc:
            raise EntryStoreError(f"Cannot open entry store {self.db_path}: {exc}") from exc

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def load_entries(self) -> list[Entry]:
        """See EntryRepository.load_entries."""
        try:
            with self._transaction() as conn:
                rows = conn.execute(
                    "SELECT path_key, path, nickname FROM entries ORDER BY position ASC, rowid ASC"
                ).fetchall()
                pattern_rows = conn.execute(
                    "SELECT path_key, pattern FROM patterns ORDER BY path_key ASC, position ASC"
                ).fetchall()
        except sqlite3.Error as exc:
            raise EntryStoreError(f"Failed to read entry store {self.db_path}: {exc}") from exc

        by_key: dict[str, list[str]] = {}
        for r in pattern_rows:
            by_key.setdefault(str(r["path_key"]), []).append(str(r["pattern"]))

        entries: list[Entry] = []
        seen: set[str] = set()
        for r in rows:
            try:
                entry = Entry(
                    nickname=str(r["nickname"]),
                    path=str(r["path"]),
                    patterns=tuple(by_key.get(str(r["path_key"]), ())),
                )
            except ValidationError:
                continue
            # Keys written on a case-sensitive platform may collide here.
            if entry.key in seen:
                continue
            seen.add(entry.key)
            entries.append(entry)
        return entries

    def save_entries(self, entries: Sequence[Entry]) -> None:
        """See EntryRepository.save_entries."""
        try:
            with self._transaction() as conn:
                conn.execute("DELETE FROM patterns")
                conn.execute("DELETE FROM entries")
                for idx, entry in enumerate(entries):
                    conn.execute(
                        "INSERT INTO entries(path_key, path, nickname, position) VALUES(?, ?, ?, ?)",
                        (entry.key, entry.path, entry.nickname, idx),
                    )
                    _insert_patterns(conn, entry)
        except sqlite3.Error as exc:
            raise EntryStoreError(f"Failed to write entry store {self.db_path}: {exc}") from exc

    def save_patterns(self, entry: Entry) -> None:
        """See EntryRepository.save_patterns."""
        try:
            with self._transaction() as conn:
                row = conn.execute(
                    "SELECT path_key FROM entries WHERE path_key = ?", (entry.key,)
                ).fetchone()
                if row is None:
                    raise UnknownEntryError(f"Unknown entry: {entry.path}")
                conn.execute("DELETE FROM patterns WHERE path_key = ?", (entry.key,))
                _insert_patterns(conn, entry)
        except sqlite3.Error as exc:
            raise EntryStoreError(f"Failed to write entry store {self.db_path}: {exc}") from exc


def _insert_patterns(conn: sqlite3.Connection, entry: Entry) -> None:
    for idx, pat in enumerate(entry.patterns):
        conn.execute(
            "INSERT INTO patterns(path_key, position, pattern) VALUES(?, ?, ?)",
            (entry.key, idx, pat),
        )
