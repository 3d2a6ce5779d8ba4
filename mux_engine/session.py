"""
Session: the explicitly constructed set of services for one workspace.

A session owns the entry store, the active-selection tracker and the bus for
its lifetime and hands them to collaborators by reference. Nothing in the
engine looks these up from global state.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

from .active_detector import ActiveDetector
from .activation import ActivationOrchestrator, StateListener
from .entry_store.api import Entry, EntryRepository
from .entry_store.json_repository import JsonEntryRepository
from .entry_store.service import EntryStore
from .entry_store.sqlite_repository import SqliteEntryRepository
from .errors import ValidationError
from .events import ChangeBus, SubscriptionScope, Topic
from .host import capabilities
from .host.file_host import JsonWorkspaceHost
from .host.resolver import FileSystemResolver, TargetResolver
from .paths import WorkspacePaths, ensure_workspace_directories, resolve_workspace_paths
from .profile_enabler import EnableReport, ProfileEnabler
from .quick_pick import (
    QuickPickItem,
    entry_for_ordinal,
    next_index,
    preselected_index,
    quick_pick_items,
)
from .scheduling import Scheduler, SerialScheduler
from .selection import ActiveSelectionTracker
from .settings import MuxSettings, load_settings

logger = logging.getLogger(__name__)


def open_repository(paths: WorkspacePaths, backend: str) -> EntryRepository:
    """Create the entry repository selected by `backend`."""
    if backend == "json":
        return JsonEntryRepository(json_path=paths.json_store_path)
    if backend == "sqlite":
        return SqliteEntryRepository(db_path=paths.sqlite_store_path)
    raise ValidationError(f"Unknown store backend: {backend!r}")


class MuxSession:
    """
    Services for one workspace and one host.

    Parameters
    ----------
    repository:
        Durable backend for the entry collection.
    host:
        Host object; integration points are discovered by probing.
    scheduler:
        Single-threaded loop for deferred work.
    settings:
        Timing and chooser defaults.
    resolver:
        Target resolution; defaults to local files.
    """

    def __init__(
        self,
        *,
        repository: EntryRepository,
        host: Any,
        scheduler: Scheduler,
        settings: MuxSettings | None = None,
        resolver: TargetResolver | None = None,
    ) -> None:
        self.settings = settings or MuxSettings.defaults()
        self.host = host
        self.scheduler = scheduler
        self.bus = ChangeBus()
        self.store = EntryStore(repository, self.bus)
        self.tracker = ActiveSelectionTracker(self.bus)
        self.enabler = ProfileEnabler(host, scheduler)
        self.orchestrator = ActivationOrchestrator(
            host=host,
            resolver=resolver or FileSystemResolver(),
            tracker=self.tracker,
            enabler=self.enabler,
            scheduler=scheduler,
            settle_delay_ms=self.settings.activation_settle_ms,
        )
        self.detector = ActiveDetector(host, self.tracker, scheduler)
        self.scope = SubscriptionScope()
        self._host_unsubscribe: Callable[[], None] | None = None
        self._closed = False

    def start(self) -> None:
        """Track host-driven loads and try to detect the active build root."""
        self._host_unsubscribe = capabilities.add_load_listener(self.host, self._on_host_loaded)
        self.detector.detect_best_effort(
            attempts=self.settings.detect_attempts, spacing_ms=self.settings.detect_spacing_ms
        )

    def _on_host_loaded(self, target: Any) -> None:
        try:
            self.tracker.set_active(target)
        except ValidationError as exc:
            logger.debug("Ignoring host load of unusable target %r: %s", target, exc)

    def subscribe(self, topic: Topic, callback: Callable[[], None]) -> None:
        """Subscribe for the lifetime of this session."""
        self.bus.subscribe(topic, callback, scope=self.scope)

    def activate(
        self,
        path: str,
        listener: StateListener | None = None,
        on_profiles_enabled: Callable[[EnableReport], None] | None = None,
    ) -> Entry:
        """Activate the entry registered for `path`. See ActivationOrchestrator.activate."""
        entry = self.store.require(path)
        self.orchestrator.activate(entry, listener=listener, on_profiles_enabled=on_profiles_enabled)
        return entry

    def activate_index(
        self,
        ordinal: int,
        listener: StateListener | None = None,
        on_profiles_enabled: Callable[[EnableReport], None] | None = None,
    ) -> Entry:
        """Activate the entry shown at 1-based `ordinal` in the quick-pick chooser."""
        entry = entry_for_ordinal(
            self.store.list_entries(), ordinal, limit=self.settings.quick_pick_limit
        )
        self.orchestrator.activate(entry, listener=listener, on_profiles_enabled=on_profiles_enabled)
        return entry

    def activate_next(
        self,
        listener: StateListener | None = None,
        on_profiles_enabled: Callable[[EnableReport], None] | None = None,
    ) -> Entry:
        """
        Activate the quick-pick row after the active one, wrapping around.

        With no active row the first row is activated.

        Raises
        ------
        ValidationError
            If no entries are registered.
        """
        items = self.quick_pick()
        if not items:
            raise ValidationError("No build roots are registered.")
        if any(item.is_active for item in items):
            target = next_index(preselected_index(items), len(items))
        else:
            target = 0
        return self.activate_index(
            items[target].ordinal, listener=listener, on_profiles_enabled=on_profiles_enabled
        )

    def quick_pick(self) -> list[QuickPickItem]:
        return quick_pick_items(
            self.store.list_entries(),
            self.tracker.get_active(),
            limit=self.settings.quick_pick_limit,
        )

    def close(self) -> None:
        """Dispose subscriptions and host listeners. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self.scope.close()
        if self._host_unsubscribe is not None:
            try:
                self._host_unsubscribe()
            except Exception:
                logger.debug("Removing the host load listener failed", exc_info=True)
            self._host_unsubscribe = None

    def __enter__(self) -> "MuxSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_session(
    workspace: str,
    *,
    data_root: Path | None = None,
    host: Any | None = None,
    scheduler: Scheduler | None = None,
    settings: MuxSettings | None = None,
) -> MuxSession:
    """
    Build a session for a named workspace under the data root.

    The reference file-backed host and a SerialScheduler are used unless
    others are supplied. The session is not started.
    """
    paths = resolve_workspace_paths(workspace, data_root=data_root)
    ensure_workspace_directories(paths)
    settings = settings or load_settings(data_root=paths.data_root)
    return MuxSession(
        repository=open_repository(paths, settings.store_backend),
        host=host if host is not None else JsonWorkspaceHost(paths.host_state_path),
        scheduler=scheduler or SerialScheduler(),
        settings=settings,
    )
