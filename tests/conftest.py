from __future__ import annotations

from pathlib import Path

import pytest
from PySide6.QtCore import QCoreApplication

from mux_engine.events import ChangeBus
from mux_engine.scheduling import SerialScheduler

from support import ManualClock


@pytest.fixture(scope="session")
def qt_app() -> QCoreApplication:
    return QCoreApplication.instance() or QCoreApplication([])


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def scheduler(clock: ManualClock) -> SerialScheduler:
    return SerialScheduler(time_source=clock.time, sleep=clock.sleep)


@pytest.fixture
def bus() -> ChangeBus:
    return ChangeBus()


@pytest.fixture
def build_root(tmp_path: Path) -> Path:
    """An existing CMakeLists.txt in a project folder named 'app'."""
    root = tmp_path / "src" / "app" / "CMakeLists.txt"
    root.parent.mkdir(parents=True)
    root.write_text("project(app)\n", encoding="utf-8")
    return root
