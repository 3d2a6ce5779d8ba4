"""
In-process change notification bus.

Two payload-free topics are published: the entry collection changed, and the
active selection changed. Subscribers re-read the store or tracker when
notified.

Threading model
--------------
- Topics are Qt signals on a single QObject.
- Subscriptions use `Qt.ConnectionType.DirectConnection`, so delivery is
  synchronous on whichever thread published. Subscribers that touch widgets
  must re-dispatch onto the GUI thread themselves.
- A subscriber that raises is logged and skipped; the publisher never sees
  the exception.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from PySide6.QtCore import QObject, Qt, Signal, SignalInstance

logger = logging.getLogger(__name__)


class Topic(str, Enum):
    """Notification topics published on the bus."""

    ENTRIES_CHANGED = "entries_changed"
    ACTIVE_SELECTION_CHANGED = "active_selection_changed"


class ChangeBus(QObject):
    """Topic-based publish/subscribe built on Qt signals."""

    entries_changed = Signal()
    active_selection_changed = Signal()

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        # Open subscriptions stay referenced until closed.
        self._live: set[Subscription] = set()

    def _signal_for(self, topic: Topic) -> SignalInstance:
        if topic is Topic.ENTRIES_CHANGED:
            return self.entries_changed
        if topic is Topic.ACTIVE_SELECTION_CHANGED:
            return self.active_selection_changed
        raise ValueError(f"Unknown topic: {topic!r}")

    def publish(self, topic: Topic) -> None:
        """Deliver `topic` to all current subscribers, synchronously."""
        self._signal_for(topic).emit()

    def subscribe(
        self,
        topic: Topic,
        callback: Callable[[], None],
        scope: "SubscriptionScope | None" = None,
    ) -> "Subscription":
        """
        Subscribe `callback` to `topic`.

        Parameters
        ----------
        topic:
            Topic to receive.
        callback:
            Zero-argument callable invoked on each publication.
        scope:
            Optional owning scope. Closing the scope closes the subscription.

        Returns
        -------
        Subscription
            Handle that disconnects the callback when closed.
        """
        sub = Subscription(self._signal_for(topic), topic, callback, on_close=self._live.discard)
        self._live.add(sub)
        if scope is not None:
            scope.add(sub)
        return sub


class Subscription:
    """A live connection between one callback and one topic."""

    def __init__(
        self,
        signal: SignalInstance,
        topic: Topic,
        callback: Callable[[], None],
        on_close: Callable[["Subscription"], None] | None = None,
    ) -> None:
        self._signal = signal
        self._on_close = on_close
        self._callback = callback
        self.topic = topic
        self._closed = False
        # Keep one bound-method object so that disconnect matches connect.
        self._slot = self._deliver
        self._signal.connect(self._slot, type=Qt.ConnectionType.DirectConnection)

    @property
    def closed(self) -> bool:
        return self._closed

    def _deliver(self) -> None:
        if self._closed:
            return
        try:
            self._callback()
        except Exception:
            logger.exception("Subscriber for %s failed", self.topic.value)

    def close(self) -> None:
        """Disconnect. Closing twice is harmless."""
        if self._closed:
            return
        self._closed = True
        try:
            self._signal.disconnect(self._slot)
        except (RuntimeError, TypeError):
            # Already disconnected (e.g. the bus was destroyed first).
            pass
        if self._on_close is not None:
            self._on_close(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class SubscriptionScope:
    """
    Owns subscriptions whose lifetime ends together.

    A scope may be bound to a QObject; the object's `destroyed` signal closes
    the scope, so widgets unsubscribe automatically when they go away.
    """

    def __init__(self, owner: QObject | None = None) -> None:
        self._subs: list[Subscription] = []
        self._closed = False
        if owner is not None:
            owner.destroyed.connect(self.close)

    @property
    def closed(self) -> bool:
        return self._closed

    def add(self, sub: Subscription) -> Subscription:
        if self._closed:
            sub.close()
            return sub
        self._subs.append(sub)
        return sub

    def close(self, *_args: object) -> None:
        self._closed = True
        subs, self._subs = self._subs, []
        for sub in subs:
            sub.close()

    def __enter__(self) -> "SubscriptionScope":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
