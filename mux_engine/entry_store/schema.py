"""SQLite schema for the entry store.

Notes
-----
Entries and their patterns carry explicit `position` columns. Row order in
SQLite is not a stable contract, and the collection order is user-visible.
"""

from __future__ import annotations

SCHEMA_V1 = """
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS store_meta (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS entries (
    path_key TEXT PRIMARY KEY,
    path     TEXT NOT NULL,
    nickname TEXT NOT NULL,
    position INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_entries_position ON entries(position);

CREATE TABLE IF NOT EXISTS patterns (
    path_key TEXT NOT NULL,
    position INTEGER NOT NULL,
    pattern  TEXT NOT NULL,
    PRIMARY KEY (path_key, position),
    FOREIGN KEY (path_key) REFERENCES entries(path_key) ON DELETE CASCADE
);
"""

SCHEMA_VERSION = "1"
