"""
Active-selection tracker.

Holds at most one "currently active" build root path for the session. The
value is not persisted; a new session re-detects it from the host.
"""

from __future__ import annotations

import logging
import threading

from .events import ChangeBus, Topic
from .paths import normalize_path, path_key, paths_equal

logger = logging.getLogger(__name__)


class ActiveSelectionTracker:
    """
    Session-scoped holder of the active build root path.

    Setting the current value again is a no-op; any other change publishes
    Selection-Changed synchronously.
    """

    def __init__(self, bus: ChangeBus) -> None:
        self._bus = bus
        self._lock = threading.RLock()
        self._active: str | None = None

    def get_active(self) -> str | None:
        with self._lock:
            return self._active

    def is_active(self, path: str) -> bool:
        with self._lock:
            return self._active is not None and paths_equal(self._active, path)

    def set_active(self, path: str | None) -> bool:
        """
        Set or clear the active path.

        Parameters
        ----------
        path:
            New active path, or None to clear.

        Returns
        -------
        bool
            True if the value changed and a notification was published.

        Raises
        ------
        ValidationError
            If `path` is not None and cannot be normalized.
        """
        normalized = normalize_path(path) if path is not None else None
        with self._lock:
            if normalized is None and self._active is None:
                return False
            if (
                normalized is not None
                and self._active is not None
                and path_key(normalized) == path_key(self._active)
            ):
                return False
            self._active = normalized
            logger.debug("Active build root is now %s", normalized)
            self._bus.publish(Topic.ACTIVE_SELECTION_CHANGED)
            return True
