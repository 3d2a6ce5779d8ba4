"""
Entry store service.

The single owner of the ordered entry collection for one session. All
mutation goes through this object.

Ordering guarantees
-------------------
- Mutations are serialized by one re-entrant writer lock.
- Every mutation is persisted through the repository before its notification
  is published, and the notification is published while the lock is held, so
  mutations and notifications are totally ordered.
- Readers always receive copies.
- If persistence fails, the in-memory collection is left unchanged and the
  repository error propagates.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from typing import Iterable, Sequence

from ..errors import UnknownEntryError, ValidationError
from ..events import ChangeBus, Topic
from ..paths import path_key
from .api import Entry, EntryRepository
from .patterns import normalize_patterns

logger = logging.getLogger(__name__)


class EntryStore:
    """
    Ordered, uniquely-keyed collection of entries.

    Parameters
    ----------
    repository:
        Durable backend. The collection is loaded from it on construction.
    bus:
        Bus receiving Entries-Changed notifications.
    """

    def __init__(self, repository: EntryRepository, bus: ChangeBus) -> None:
        self._repository = repository
        self._bus = bus
        self._lock = threading.RLock()
        self._entries: list[Entry] = list(repository.load_entries())

    # ---------- Reads ----------
    def list_entries(self) -> list[Entry]:
        """Return a snapshot copy of the collection in order."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def index_of(self, path: str) -> int:
        """Return the position of `path`, or -1 if not registered."""
        key = path_key(path)
        with self._lock:
            for idx, entry in enumerate(self._entries):
                if entry.key == key:
                    return idx
        return -1

    def get(self, path: str) -> Entry | None:
        """Return the entry registered for `path`, if any."""
        key = path_key(path)
        with self._lock:
            return next((e for e in self._entries if e.key == key), None)

    def require(self, path: str) -> Entry:
        """
        Return the entry registered for `path`.

        Raises
        ------
        UnknownEntryError
            If no entry is registered for `path`.
        """
        entry = self.get(path)
        if entry is None:
            raise UnknownEntryError(f"No entry registered for {path}")
        return entry

    # ---------- Mutations ----------
    def _commit(self, updated: list[Entry]) -> None:
        self._repository.save_entries(updated)
        self._entries = updated
        self._bus.publish(Topic.ENTRIES_CHANGED)

    def add_or_replace(self, entry: Entry) -> None:
        """
        Insert `entry`, or replace the entry with the same path in place.

        Raises
        ------
        ValidationError
            If `entry` is not an Entry with a usable path.
        """
        if not isinstance(entry, Entry):
            raise ValidationError(f"Expected an Entry, got {type(entry).__name__}.")
        entry = replace(entry, patterns=normalize_patterns(entry.patterns))

        with self._lock:
            updated = list(self._entries)
            for idx, existing in enumerate(updated):
                if existing.key == entry.key:
                    updated[idx] = entry
                    logger.debug("Replacing entry at %d: %s", idx, entry.path)
                    break
            else:
                updated.append(entry)
                logger.debug("Adding entry: %s", entry.path)
            self._commit(updated)

    def remove_by_path(self, path: str) -> bool:
        """
        Remove the entry registered for `path`.

        Returns
        -------
        bool
            True if an entry was removed. No notification is published otherwise.
        """
        try:
            key = path_key(path)
        except ValidationError:
            return False

        with self._lock:
            updated = [e for e in self._entries if e.key != key]
            if len(updated) == len(self._entries):
                return False
            self._commit(updated)
            return True

    def reorder(self, from_index: int, delta: int) -> bool:
        """
        Move the entry at `from_index` by `delta` positions.

        Returns
        -------
        bool
            False (and no notification) when either position is out of bounds or
            `delta` is zero.
        """
        with self._lock:
            to_index = from_index + delta
            size = len(self._entries)
            if delta == 0 or not (0 <= from_index < size) or not (0 <= to_index < size):
                return False
            updated = list(self._entries)
            moved = updated.pop(from_index)
            updated.insert(to_index, moved)
            self._commit(updated)
            return True

    def rename(self, path: str, nickname: str) -> Entry:
        """
        Change the nickname of a registered entry.

        Raises
        ------
        ValidationError
            If the new nickname is empty.
        UnknownEntryError
            If no entry is registered for `path`.
        """
        cleaned = (nickname or "").strip()
        if not cleaned:
            raise ValidationError("Nickname must not be empty.")
        with self._lock:
            renamed = replace(self.require(path), nickname=cleaned)
            self.add_or_replace(renamed)
            return renamed

    def set_patterns(self, path: str, patterns: Iterable[str], *, notify: bool = False) -> Entry:
        """
        Replace the pattern list of a registered entry without reordering.

        The new list is durable on return. Notification is suppressed unless
        `notify` is True, so rapid pattern edits do not churn observers.

        Raises
        ------
        UnknownEntryError
            If no entry is registered for `path`.
        """
        with self._lock:
            current = self.require(path)
            updated_entry = replace(current, patterns=normalize_patterns(patterns))
            self._repository.save_patterns(updated_entry)
            self._entries = [
                updated_entry if e.key == current.key else e for e in self._entries
            ]
            if notify:
                self._bus.publish(Topic.ENTRIES_CHANGED)
            return updated_entry

    # ---------- Pattern-list editing ----------
    def add_pattern(self, path: str, pattern: str) -> Entry:
        """Append one pattern. Blank patterns are rejected."""
        cleaned = (pattern or "").strip()
        if not cleaned:
            raise ValidationError("Pattern must not be empty.")
        with self._lock:
            current = self.require(path)
            return self.set_patterns(path, (*current.patterns, cleaned))

    def edit_pattern(self, path: str, index: int, pattern: str) -> Entry:
        """Replace the pattern at `index`."""
        cleaned = (pattern or "").strip()
        if not cleaned:
            raise ValidationError("Pattern must not be empty.")
        with self._lock:
            patterns = list(self.require(path).patterns)
            _check_index(patterns, index)
            patterns[index] = cleaned
            return self.set_patterns(path, patterns)

    def remove_pattern(self, path: str, index: int) -> Entry:
        """Remove the pattern at `index`."""
        with self._lock:
            patterns = list(self.require(path).patterns)
            _check_index(patterns, index)
            del patterns[index]
            return self.set_patterns(path, patterns)

    def move_pattern(self, path: str, index: int, delta: int) -> bool:
        """Move the pattern at `index` by `delta`. Out-of-bounds moves are no-ops."""
        with self._lock:
            patterns = list(self.require(path).patterns)
            target = index + delta
            if delta == 0 or not (0 <= index < len(patterns)) or not (0 <= target < len(patterns)):
                return False
            patterns.insert(target, patterns.pop(index))
            self.set_patterns(path, patterns)
            return True


def _check_index(patterns: Sequence[str], index: int) -> None:
    if not (0 <= index < len(patterns)):
        raise ValidationError(f"Pattern index {index} is out of range (0..{len(patterns) - 1}).")
