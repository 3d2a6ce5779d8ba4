"""
Quick-pick model: the numbered chooser behind a keyboard-triggered popup.

Only the first `limit` entries are offered, numbered from 1. The active entry
is preselected; repeated presses of the trigger key cycle the selection.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .entry_store.api import Entry
from .errors import ValidationError
from .paths import paths_equal

DEFAULT_LIMIT = 9


@dataclass(frozen=True, slots=True)
class QuickPickItem:
    ordinal: int
    title: str
    path: str
    is_active: bool


def quick_pick_items(
    entries: Sequence[Entry], active_path: str | None, limit: int = DEFAULT_LIMIT
) -> list[QuickPickItem]:
    """Build chooser rows for the first `limit` entries."""
    items: list[QuickPickItem] = []
    for idx, entry in enumerate(list(entries)[: max(0, limit)]):
        items.append(
            QuickPickItem(
                ordinal=idx + 1,
                title=entry.title,
                path=entry.path,
                is_active=active_path is not None and paths_equal(active_path, entry.path),
            )
        )
    return items


def preselected_index(items: Sequence[QuickPickItem]) -> int:
    """Index of the active item, or 0."""
    return next((i for i, item in enumerate(items) if item.is_active), 0)


def next_index(current: int, size: int) -> int:
    """Advance a selection by one row, wrapping around."""
    if size <= 0:
        return 0
    return (max(0, current) + 1) % size


def entry_for_ordinal(
    entries: Sequence[Entry], ordinal: int, limit: int = DEFAULT_LIMIT
) -> Entry:
    """
    Return the entry shown at 1-based `ordinal` in the chooser.

    Raises
    ------
    ValidationError
        If `ordinal` is not offered by the chooser.
    """
    offered = list(entries)[: max(0, limit)]
    if not offered:
        raise ValidationError("No entries registered.")
    if not (1 <= ordinal <= len(offered)):
        raise ValidationError(f"Choose an entry between 1 and {len(offered)}.")
    return offered[ordinal - 1]
