"""
Entry store public API.

This module defines the typed domain objects and the persistence surface that
the entry store service is allowed to call. Collaborators (CLI, GUI) speak only
in `Entry` objects and never see SQLite or JSON details.

Notes
-----
- An entry's identity is its normalized path. Nickname and patterns are
  payload and never participate in equality.
- Patterns are regular expressions matched against host profile names.
  Their order is significant for display only; matching treats them as a set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Sequence

from ..paths import normalize_path, path_key


@dataclass(frozen=True, slots=True, eq=False)
class Entry:
    """
    One registered build root.

    Attributes
    ----------
    nickname:
        Display label. Not required to be unique.
    path:
        Absolute path of the build root file. Normalized on construction.
    patterns:
        Ordered regular expressions used to enable host profiles.

    Raises
    ------
    ValidationError
        On construction, if `path` is empty or cannot be normalized.
    """

    nickname: str
    path: str
    patterns: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "nickname", "" if self.nickname is None else str(self.nickname))
        object.__setattr__(self, "path", normalize_path(self.path))
        object.__setattr__(self, "patterns", tuple(str(p) for p in (self.patterns or ())))

    @property
    def key(self) -> str:
        """Equality key derived from the normalized path."""
        return path_key(self.path)

    @property
    def title(self) -> str:
        """Display title: the nickname, falling back to the path."""
        return self.nickname.strip() or self.path

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Entry):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return self.title

    def to_record(self) -> dict[str, object]:
        """Return the persisted record shape: nickname, path, patterns."""
        return {"nickname": self.nickname, "path": self.path, "patterns": list(self.patterns)}


class EntryRepository(Protocol):
    """
    Persistence API for the ordered entry collection.

    Implementations must make every save durable before returning.
    """

    def load_entries(self) -> list[Entry]:
        """
        Load all entries in persisted order.

        Raises
        ------
        EntryStoreError
            If the persisted collection cannot be read.
        """
        raise NotImplementedError

    def save_entries(self, entries: Sequence[Entry]) -> None:
        """
        Replace the persisted collection with `entries`, preserving order.

        Raises
        ------
        EntryStoreError
            If the collection cannot be written.
        """
        raise NotImplementedError

    def save_patterns(self, entry: Entry) -> None:
        """
        Persist only the pattern list of an already-stored entry.

        Raises
        ------
        UnknownEntryError
            If the entry is not present in the store.
        """
        raise NotImplementedError
