"""
Deferred execution ("invoke later") for the single-threaded loop.

Notes
-----
Engine code never sleeps on the caller's turn. Work that must run after the
current turn (for example, after a host load has had a chance to start) is
submitted to a Scheduler. Callers provide the Scheduler, which keeps timing
deterministic in tests.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Protocol

from PySide6.QtCore import QTimer

logger = logging.getLogger(__name__)

Task = Callable[[], None]


class Scheduler(Protocol):
    """A single-threaded FIFO loop that runs tasks on a later turn."""

    def call_later(self, delay_ms: int, task: Task) -> None:
        """
        Run `task` on a later turn, no earlier than `delay_ms` from now.

        Tasks with equal due times run in submission order.
        """
        ...


def _run_guarded(task: Task) -> None:
    try:
        task()
    except Exception:
        logger.exception("Deferred task failed")


@dataclass(frozen=True, slots=True)
class QtScheduler:
    """Scheduler that defers onto the running Qt event loop via QTimer."""

    def call_later(self, delay_ms: int, task: Task) -> None:
        QTimer.singleShot(max(0, int(delay_ms)), lambda: _run_guarded(task))


@dataclass(slots=True)
class SerialScheduler:
    """
    Deterministic single-threaded loop for command-line use and tests.

    Tasks are queued by due time (then submission order) and executed by
    `run_until_idle`, which sleeps until each task is due.

    Attributes
    ----------
    time_source:
        Monotonic clock in seconds.
    sleep:
        Sleep function in seconds.
    """

    time_source: Callable[[], float] = time.monotonic
    sleep: Callable[[float], None] = time.sleep
    _queue: list[tuple[float, int, Task]] = field(default_factory=list)
    _counter: itertools.count = field(default_factory=itertools.count)

    def call_later(self, delay_ms: int, task: Task) -> None:
        due = self.time_source() + max(0, int(delay_ms)) / 1000.0
        heapq.heappush(self._queue, (due, next(self._counter), task))

    @property
    def pending(self) -> int:
        return len(self._queue)

    def run_next(self) -> bool:
        """Run the earliest task, sleeping until it is due. Returns False if idle."""
        if not self._queue:
            return False
        due, _seq, task = heapq.heappop(self._queue)
        wait = due - self.time_source()
        if wait > 0:
            self.sleep(wait)
        _run_guarded(task)
        return True

    def run_until_idle(self, max_tasks: int = 10_000) -> int:
        """
        Run tasks, including ones they submit, until the queue is empty.

        Returns
        -------
        int
            Number of tasks executed.
        """
        ran = 0
        while ran < max_tasks and self.run_next():
            ran += 1
        if self._queue:
            logger.warning("Scheduler stopped with %d task(s) still pending", len(self._queue))
        return ran
