"""Target resolution: stored path -> openable target."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from ..errors import ValidationError
from ..paths import normalize_path


class TargetResolver(Protocol):
    """Maps a stored path string to a target object the host can load."""

    def resolve(self, path: str) -> Any | None:
        """Return the target for `path`, or None if it cannot be located."""
        ...


@dataclass(frozen=True, slots=True)
class FileSystemResolver:
    """Resolves paths to existing regular files on the local filesystem."""

    def resolve(self, path: str) -> Path | None:
        try:
            candidate = Path(normalize_path(path))
        except ValidationError:
            return None
        return candidate if candidate.is_file() else None
