"""Typed session events and a fan-out publish/subscribe channel.

Delivery is best-effort and fire-and-forget: a subscriber whose queue is
full misses the event, and a listener that raises is logged and skipped.
Neither can block or break the publisher.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, ClassVar, Union

from agent_traversal.recorder.models import FileNode, Session, TraversalEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntryEvent:
    type: ClassVar[str] = "entry"
    entry: TraversalEntry

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "data": self.entry.to_dict()}


@dataclass(frozen=True)
class FilesystemEvent:
    type: ClassVar[str] = "filesystem"
    tree: FileNode

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "data": self.tree.to_dict()}


@dataclass(frozen=True)
class SessionEndEvent:
    type: ClassVar[str] = "session-end"
    session: Session

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "data": self.session.to_dict()}


@dataclass(frozen=True)
class InitEvent:
    """Full current state, sent to a new subscriber before incremental events."""

    type: ClassVar[str] = "init"
    session: Session

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "data": {"session": self.session.to_dict()}}


SessionEvent = Union[EntryEvent, FilesystemEvent, SessionEndEvent]
StreamEvent = Union[InitEvent, EntryEvent, FilesystemEvent, SessionEndEvent]

Listener = Callable[[SessionEvent], None]


class Subscription:
    """A single subscriber's handle on an :class:`EventChannel`.

    Callback subscriptions receive events synchronously through their
    listener. Queue subscriptions buffer up to ``max_pending`` events for the
    consumer to pull with :meth:`get` or by iterating.
    """

    def __init__(
        self,
        channel: EventChannel,
        listener: Listener | None = None,
        max_pending: int = 1000,
    ) -> None:
        self._channel = channel
        self.listener = listener
        self._queue: queue.Queue[SessionEvent] | None = (
            None if listener is not None else queue.Queue(maxsize=max_pending)
        )
        self.dropped = 0
        self.closed = False

    def deliver(self, event: SessionEvent) -> None:
        if self.closed:
            return
        if self.listener is not None:
            try:
                self.listener(event)
            except Exception:
                logger.warning("Event listener failed on %s event", event.type, exc_info=True)
            return
        assert self._queue is not None
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            self.dropped += 1
            logger.warning("Subscriber queue full, dropped %s event", event.type)

    def get(self, timeout: float | None = None) -> SessionEvent | None:
        """Pop the next buffered event, or ``None`` after *timeout* seconds."""
        if self._queue is None:
            raise TypeError("Callback subscriptions do not buffer events")
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    def close(self) -> None:
        """Cancel this subscription. Safe to call more than once."""
        self._channel.unsubscribe(self)

    def __iter__(self) -> Iterator[SessionEvent]:
        """Drain buffered events without waiting."""
        while True:
            event = self.get(timeout=0)
            if event is None:
                return
            yield event

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: Any) -> None:
        self.close()


class EventChannel:
    """Fan-out channel owned by a recorder."""

    def __init__(self, max_pending: int = 1000) -> None:
        self._max_pending = max_pending
        self._subscribers: list[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(
        self,
        listener: Listener | None = None,
        *,
        max_pending: int | None = None,
    ) -> Subscription:
        sub = Subscription(self, listener, max_pending or self._max_pending)
        with self._lock:
            self._subscribers.append(sub)
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscription.closed = True
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)

    def publish(self, event: SessionEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for sub in subscribers:
            sub.deliver(event)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)
