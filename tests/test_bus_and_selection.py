from __future__ import annotations

import logging

import pytest
import shiboken6
from PySide6.QtCore import QObject

from mux_engine.errors import ValidationError
from mux_engine.events import ChangeBus, SubscriptionScope, Topic
from mux_engine.selection import ActiveSelectionTracker

from support import Recorder


def test_publish_reaches_only_the_topic_subscribers(bus: ChangeBus) -> None:
    hits: list[str] = []
    bus.subscribe(Topic.ENTRIES_CHANGED, lambda: hits.append("entries"))
    bus.subscribe(Topic.ACTIVE_SELECTION_CHANGED, lambda: hits.append("active"))

    bus.publish(Topic.ENTRIES_CHANGED)

    assert hits == ["entries"]


def test_closed_subscription_receives_nothing(bus: ChangeBus) -> None:
    hits: list[int] = []
    sub = bus.subscribe(Topic.ENTRIES_CHANGED, lambda: hits.append(1))
    bus.publish(Topic.ENTRIES_CHANGED)

    sub.close()
    sub.close()
    bus.publish(Topic.ENTRIES_CHANGED)

    assert hits == [1]
    assert sub.closed


def test_failing_subscriber_does_not_affect_others(
    bus: ChangeBus, caplog: pytest.LogCaptureFixture
) -> None:
    hits: list[int] = []

    def _boom() -> None:
        raise RuntimeError("subscriber bug")

    bus.subscribe(Topic.ENTRIES_CHANGED, _boom)
    bus.subscribe(Topic.ENTRIES_CHANGED, lambda: hits.append(1))

    with caplog.at_level(logging.ERROR):
        bus.publish(Topic.ENTRIES_CHANGED)

    assert hits == [1]
    assert "subscriber bug" in caplog.text


def test_scope_closes_all_its_subscriptions(bus: ChangeBus) -> None:
    hits: list[int] = []
    with SubscriptionScope() as scope:
        bus.subscribe(Topic.ENTRIES_CHANGED, lambda: hits.append(1), scope=scope)
        bus.subscribe(Topic.ACTIVE_SELECTION_CHANGED, lambda: hits.append(2), scope=scope)
        bus.publish(Topic.ENTRIES_CHANGED)

    bus.publish(Topic.ENTRIES_CHANGED)
    bus.publish(Topic.ACTIVE_SELECTION_CHANGED)

    assert hits == [1]
    assert scope.closed


def test_scope_bound_to_owner_closes_when_owner_is_destroyed(bus: ChangeBus) -> None:
    hits: list[int] = []
    owner = QObject()
    scope = SubscriptionScope(owner)
    bus.subscribe(Topic.ENTRIES_CHANGED, lambda: hits.append(1), scope=scope)

    shiboken6.delete(owner)
    bus.publish(Topic.ENTRIES_CHANGED)

    assert hits == []
    assert scope.closed


def test_subscribing_into_a_closed_scope_is_inert(bus: ChangeBus) -> None:
    hits: list[int] = []
    scope = SubscriptionScope()
    scope.close()

    sub = bus.subscribe(Topic.ENTRIES_CHANGED, lambda: hits.append(1), scope=scope)
    bus.publish(Topic.ENTRIES_CHANGED)

    assert sub.closed
    assert hits == []


def test_tracker_notifies_only_on_change(bus: ChangeBus) -> None:
    tracker = ActiveSelectionTracker(bus)
    rec = Recorder(bus)

    assert tracker.set_active(None) is False
    assert tracker.set_active("/src/app/CMakeLists.txt") is True
    assert tracker.set_active("/src/app/./CMakeLists.txt") is False
    assert tracker.set_active("/src/lib/CMakeLists.txt") is True
    assert tracker.set_active(None) is True

    assert rec.counts[Topic.ACTIVE_SELECTION_CHANGED] == 3
    assert tracker.get_active() is None


def test_tracker_stores_normalized_paths(bus: ChangeBus) -> None:
    tracker = ActiveSelectionTracker(bus)
    tracker.set_active("/src/app/sub/../CMakeLists.txt")

    assert tracker.get_active() == "/src/app/CMakeLists.txt"
    assert tracker.is_active("/src/app/CMakeLists.txt")
    assert not tracker.is_active("/src/lib/CMakeLists.txt")


def test_tracker_rejects_unusable_paths(bus: ChangeBus) -> None:
    tracker = ActiveSelectionTracker(bus)
    with pytest.raises(ValidationError):
        tracker.set_active("")
    assert tracker.get_active() is None
