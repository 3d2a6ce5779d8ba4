"""
JSON implementation of EntryRepository.

Document format
---------------
    {
      "schema_version": "buildmux_entries_v1",
      "entries": [
        {"nickname": "app", "path": "/src/app/CMakeLists.txt", "patterns": ["^debug"]}
      ]
    }

Compatibility
-------------
- A bare top-level list of records is accepted as a legacy document.
- A record without `patterns` (or with `patterns: null`) loads with an empty
  pattern list.
- Records whose path cannot be normalized are skipped with a warning.
- Duplicate records by path key keep the first occurrence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Sequence

from ..errors import EntryStoreError, UnknownEntryError, ValidationError
from ..json_io import read_json, write_json_atomic
from .api import Entry, EntryRepository
from .patterns import normalize_patterns

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "buildmux_entries_v1"


def entry_from_record(record: Mapping[str, Any]) -> Entry:
    """
    Build an Entry from a persisted record.

    Raises
    ------
    ValidationError
        If the record has no usable path.
    """
    raw_patterns = record.get("patterns")
    if isinstance(raw_patterns, str):
        raw_patterns = [raw_patterns]
    elif not isinstance(raw_patterns, (list, tuple)):
        raw_patterns = None

    nickname = record.get("nickname")
    return Entry(
        nickname=str(nickname) if nickname is not None else "",
        path=record.get("path"),  # type: ignore[arg-type]
        patterns=normalize_patterns(raw_patterns),
    )


def entries_from_payload(payload: Any) -> list[Entry]:
    """
    Parse a persisted document into ordered, de-duplicated entries.

    Raises
    ------
    EntryStoreError
        If the document shape is not recognized.
    """
    if payload is None:
        return []
    if isinstance(payload, list):
        records = payload
    elif isinstance(payload, dict):
        records = payload.get("entries", [])
        if not isinstance(records, list):
            raise EntryStoreError("Entry document field 'entries' must be a list.")
    else:
        raise EntryStoreError("Entry document must be an object or a list.")

    out: list[Entry] = []
    seen: set[str] = set()
    for idx, record in enumerate(records):
        if not isinstance(record, dict):
            logger.warning("Skipping entry record %d: not an object", idx)
            continue
        try:
            entry = entry_from_record(record)
        except ValidationError as exc:
            logger.warning("Skipping entry record %d: %s", idx, exc)
            continue
        if entry.key in seen:
            logger.warning("Skipping duplicate entry record %d for %s", idx, entry.path)
            continue
        seen.add(entry.key)
        out.append(entry)
    return out


def entries_to_payload(entries: Sequence[Entry]) -> dict[str, Any]:
    """Convert entries to the persisted document shape."""
    return {
        "schema_version": SCHEMA_VERSION,
        "entries": [e.to_record() for e in entries],
    }


@dataclass(frozen=True, slots=True)
class JsonEntryRepository(EntryRepository):
    """
    JSON-file-backed EntryRepository.

    Parameters
    ----------
    json_path:
        Path to the JSON document. Created on first save.
    """

    json_path: Path

    def load_entries(self) -> list[Entry]:
        """See EntryRepository.load_entries."""
        return entries_from_payload(read_json(self.json_path))

    def save_entries(self, entries: Sequence[Entry]) -> None:
        """See EntryRepository.save_entries."""
        write_json_atomic(self.json_path, entries_to_payload(entries))

    def save_patterns(self, entry: Entry) -> None:
        """See EntryRepository.save_patterns."""
        entries = self.load_entries()
        for idx, existing in enumerate(entries):
            if existing.key == entry.key:
                entries[idx] = Entry(
                    nickname=existing.nickname, path=existing.path, patterns=entry.patterns
                )
                self.save_entries(entries)
                return
        raise UnknownEntryError(f"Unknown entry: {entry.path}")
