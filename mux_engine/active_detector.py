"""
Best-effort detection of the host's currently loaded build root.

On session start the tracker is empty. The detector asks the host which build
root it has loaded and seeds the tracker, retrying a bounded number of times
because the host may still be initializing. Every attempt first checks whether
the tracker was set by other means (e.g. a user activation) and stops if so.
Failures are silent apart from debug logging.
"""

from __future__ import annotations

import logging
from typing import Any

from .errors import ValidationError
from .host import capabilities
from .scheduling import Scheduler
from .selection import ActiveSelectionTracker

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 5
DEFAULT_SPACING_MS = 200


class ActiveDetector:
    """Seeds an ActiveSelectionTracker from the host, with bounded retries."""

    def __init__(self, host: Any, tracker: ActiveSelectionTracker, scheduler: Scheduler) -> None:
        self._host = host
        self._tracker = tracker
        self._scheduler = scheduler
        self.attempts_made = 0

    def detect_once(self) -> bool:
        """Try once to detect and set the active build root. Returns True on success."""
        self.attempts_made += 1
        try:
            found = capabilities.detect_current_build_root(self._host)
            if found is None:
                return False
            self._tracker.set_active(found)
        except (ValidationError, OSError) as exc:
            logger.debug("Detecting the active build root failed: %s", exc)
            return False
        return True

    def detect_best_effort(
        self, attempts: int = DEFAULT_ATTEMPTS, spacing_ms: int = DEFAULT_SPACING_MS
    ) -> None:
        """
        Try now, then up to `attempts` more times spaced `spacing_ms` apart.

        Stops as soon as the tracker holds a value, however it got there.
        """
        if self._tracker.get_active() is not None:
            return
        if self.detect_once():
            return
        if attempts > 0:
            self._scheduler.call_later(
                spacing_ms, lambda: self.detect_best_effort(attempts - 1, spacing_ms)
            )
