"""
Activation orchestration: make one entry the active build root.

State machine per request
-------------------------
    RESOLVING -> LOADING -> ACTIVATING -> ENABLING_PROFILES -> DONE
    RESOLVING / LOADING -> FAILED

- RESOLVING runs on the caller's turn. A path that cannot be resolved, or a
  host without a load operation, fails synchronously with a user-facing error.
- LOADING, ACTIVATING and scheduling of ENABLING_PROFILES run on a later turn,
  so the caller's UI action has finished dispatching before the host is
  touched.
- ENABLING_PROFILES waits `settle_delay_ms` after the load request. This is a
  heuristic: the host's own load step may be asynchronous and is not awaited.
  Re-running the pass later is always safe because enabling is idempotent.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Any, Callable

from .entry_store.api import Entry
from .errors import HostCapabilityMissingError, TargetNotFoundError
from .host import capabilities
from .host.resolver import TargetResolver
from .profile_enabler import EnableReport, ProfileEnabler
from .scheduling import Scheduler
from .selection import ActiveSelectionTracker

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_DELAY_MS = 100

StateListener = Callable[["ActivationState"], None]


class ActivationState(str, Enum):
    """States of one activation request."""

    RESOLVING = "resolving"
    LOADING = "loading"
    ACTIVATING = "activating"
    ENABLING_PROFILES = "enabling_profiles"
    DONE = "done"
    FAILED = "failed"


class ActivationOrchestrator:
    """
    Sequences resolve, load, activate and profile enabling for an entry.

    Parameters
    ----------
    host:
        Host object providing the load capability.
    resolver:
        Maps stored paths to loadable targets.
    tracker:
        Receives the resolved path once the load was issued.
    enabler:
        Runs the profile-enabling pass.
    scheduler:
        Loop used for the later turns.
    settle_delay_ms:
        Delay between the load request and the profile-enabling pass.
    """

    def __init__(
        self,
        *,
        host: Any,
        resolver: TargetResolver,
        tracker: ActiveSelectionTracker,
        enabler: ProfileEnabler,
        scheduler: Scheduler,
        settle_delay_ms: int = DEFAULT_SETTLE_DELAY_MS,
    ) -> None:
        self._host = host
        self._resolver = resolver
        self._tracker = tracker
        self._enabler = enabler
        self._scheduler = scheduler
        self._settle_delay_ms = max(0, int(settle_delay_ms))

    def activate(
        self,
        entry: Entry,
        listener: StateListener | None = None,
        on_profiles_enabled: Callable[[EnableReport], None] | None = None,
    ) -> None:
        """
        Make `entry` the active build root.

        Parameters
        ----------
        entry:
            Entry to activate.
        listener:
            Optional observer of state transitions.
        on_profiles_enabled:
            Optional callback receiving the profile-enabling report. Not called
            when the entry has no patterns.

        Raises
        ------
        TargetNotFoundError
            If the entry's path cannot be resolved.
        HostCapabilityMissingError
            If the host exposes no load operation.
        """

        def _enter(state: ActivationState) -> None:
            logger.debug("Activation of %s: %s", entry.path, state.value)
            if listener is not None:
                try:
                    listener(state)
                except Exception:
                    logger.exception("Activation listener failed")

        _enter(ActivationState.RESOLVING)
        target = self._resolver.resolve(entry.path)
        if target is None:
            _enter(ActivationState.FAILED)
            raise TargetNotFoundError(f"Cannot locate file:\n{entry.path}")

        loader = capabilities.find_loader(self._host)
        if loader is None:
            _enter(ActivationState.LOADING)
            _enter(ActivationState.FAILED)
            raise HostCapabilityMissingError("The host offers no operation to load a build root.")

        patterns = entry.patterns

        def _load_and_activate() -> None:
            _enter(ActivationState.LOADING)
            try:
                result = loader.value(target)
            except Exception:
                logger.exception("Host failed to load %s", entry.path)
                _enter(ActivationState.FAILED)
                return
            if result is False:
                logger.warning("Host reported a failed load for %s", entry.path)
                _enter(ActivationState.FAILED)
                return

            _enter(ActivationState.ACTIVATING)
            self._tracker.set_active(
                os.fspath(target) if isinstance(target, (str, os.PathLike)) else entry.path
            )

            _enter(ActivationState.ENABLING_PROFILES)
            self._enabler.schedule(
                patterns, on_done=on_profiles_enabled, delay_ms=self._settle_delay_ms
            )
            _enter(ActivationState.DONE)

        self._scheduler.call_later(0, _load_and_activate)
