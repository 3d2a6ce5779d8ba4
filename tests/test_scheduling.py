from __future__ import annotations

import logging

import pytest
from PySide6.QtCore import QCoreApplication, QEventLoop, QTimer

from mux_engine.scheduling import QtScheduler, SerialScheduler

from support import ManualClock


def test_serial_scheduler_orders_by_due_time_then_submission(
    scheduler: SerialScheduler, clock: ManualClock
) -> None:
    ran: list[str] = []
    scheduler.call_later(100, lambda: ran.append("late"))
    scheduler.call_later(0, lambda: ran.append("first"))
    scheduler.call_later(0, lambda: ran.append("second"))

    assert scheduler.run_until_idle() == 3
    assert ran == ["first", "second", "late"]
    assert clock.now == pytest.approx(0.1)


def test_serial_scheduler_runs_tasks_submitted_by_tasks(
    scheduler: SerialScheduler, clock: ManualClock
) -> None:
    ran: list[float] = []

    def _chain(remaining: int) -> None:
        ran.append(clock.now)
        if remaining:
            scheduler.call_later(200, lambda: _chain(remaining - 1))

    scheduler.call_later(0, lambda: _chain(2))
    scheduler.run_until_idle()

    assert ran == pytest.approx([0.0, 0.2, 0.4])
    assert scheduler.pending == 0


def test_serial_scheduler_isolates_failing_tasks(
    scheduler: SerialScheduler, caplog: pytest.LogCaptureFixture
) -> None:
    ran: list[int] = []

    def _boom() -> None:
        raise ValueError("task bug")

    scheduler.call_later(0, _boom)
    scheduler.call_later(0, lambda: ran.append(1))

    with caplog.at_level(logging.ERROR):
        scheduler.run_until_idle()

    assert ran == [1]
    assert "Deferred task failed" in caplog.text


def test_serial_scheduler_never_runs_on_the_callers_turn(scheduler: SerialScheduler) -> None:
    ran: list[int] = []
    scheduler.call_later(0, lambda: ran.append(1))
    assert ran == []
    assert scheduler.run_next() is True
    assert scheduler.run_next() is False


def test_qt_scheduler_defers_onto_the_event_loop(qt_app: QCoreApplication) -> None:
    ran: list[int] = []
    loop = QEventLoop()

    def _task() -> None:
        ran.append(1)
        loop.quit()

    QtScheduler().call_later(0, _task)
    assert ran == []

    QTimer.singleShot(2000, loop.quit)
    loop.exec()

    assert ran == [1]
