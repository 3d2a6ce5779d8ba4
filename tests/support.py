"""Test doubles shared across test modules."""

from __future__ import annotations

from mux_engine.events import ChangeBus, Topic


class ManualClock:
    """Monotonic clock that only advances when the scheduler sleeps."""

    def __init__(self) -> None:
        self.now = 0.0
        self.slept: list[float] = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.slept.append(seconds)
        self.now += seconds


class Recorder:
    """Counts publications per topic."""

    def __init__(self, bus: ChangeBus) -> None:
        self.counts = {topic: 0 for topic in Topic}
        self.subscriptions = [
            bus.subscribe(topic, lambda t=topic: self._hit(t)) for topic in Topic
        ]

    def _hit(self, topic: Topic) -> None:
        self.counts[topic] += 1
