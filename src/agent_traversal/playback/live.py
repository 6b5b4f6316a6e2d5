"""Client-side mirror of a live session event stream.

Applies ``init`` / ``entry`` / ``filesystem`` / ``session-end`` events to a
local copy of the session so a :class:`PlaybackController` can follow it.
There is no sequence-number resumption: after a reconnect the mirror waits
for a fresh ``init`` carrying the full current state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from agent_traversal.config import TraversalConfig
from agent_traversal.recorder.events import (
    EntryEvent,
    FilesystemEvent,
    InitEvent,
    SessionEndEvent,
    StreamEvent,
)
from agent_traversal.recorder.models import FileNode, Session, TraversalEntry

logger = logging.getLogger(__name__)


class LiveSessionMirror:
    """Local state rebuilt from a live event stream."""

    def __init__(self, session_id: str, reconnect_delay: float = 2.0) -> None:
        self.session_id = session_id
        self.reconnect_delay = reconnect_delay
        self.session: Session | None = None
        self.entries: list[TraversalEntry] = []
        self.filesystem: FileNode | None = None
        self.is_ended = False
        self.is_connected = False
        self.error: str | None = None
        self._listeners: list[Callable[[str], None]] = []

    @classmethod
    def from_config(cls, session_id: str, config: TraversalConfig) -> LiveSessionMirror:
        return cls(session_id, reconnect_delay=config.reconnect_delay_seconds)

    def add_listener(self, listener: Callable[[str], None]) -> None:
        """Register a callback invoked with the event type after each applied event."""
        self._listeners.append(listener)

    def apply(self, event: StreamEvent | dict[str, Any]) -> None:
        """Apply one event, given as a typed event or its wire dictionary.

        A malformed wire event is logged and dropped without touching the
        mirrored state or notifying listeners.
        """
        if isinstance(event, dict):
            try:
                self._apply_wire(event)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning("Failed to parse live event for %s: %r (%s)",
                               self.session_id, event.get("type"), e)
                return
            event_type = event.get("type", "")
        else:
            self._apply_typed(event)
            event_type = event.type
        self.is_connected = True
        self.error = None
        for listener in list(self._listeners):
            try:
                listener(event_type)
            except Exception:
                logger.warning("Live session listener failed", exc_info=True)

    def connection_lost(self, reason: str = "Connection lost") -> float | None:
        """Record a transport failure. Returns the delay before reconnecting, or
        ``None`` when the session already ended and no reconnect is due."""
        self.is_connected = False
        if self.is_ended:
            return None
        self.error = reason
        logger.info("Live stream for %s lost (%s), reconnecting in %.1fs",
                    self.session_id, reason, self.reconnect_delay)
        return self.reconnect_delay

    def reconnect(self) -> None:
        """Prepare for a fresh stream; state is replaced by the next ``init``."""
        self.is_ended = False
        self.is_connected = False

    # ------------------------------------------------------------------

    def _apply_typed(self, event: StreamEvent) -> None:
        if isinstance(event, InitEvent):
            self._init(event.session)
        elif isinstance(event, EntryEvent):
            self.entries.append(event.entry)
        elif isinstance(event, FilesystemEvent):
            self.filesystem = event.tree
        elif isinstance(event, SessionEndEvent):
            self._end(event.session)

    def _apply_wire(self, event: dict[str, Any]) -> None:
        kind = event.get("type")
        data = event.get("data")
        if kind == "init":
            self._init(Session.from_dict(data["session"]))
        elif kind == "entry":
            self.entries.append(TraversalEntry.from_dict(data))
        elif kind == "filesystem":
            self.filesystem = FileNode.from_dict(data)
        elif kind == "session-end":
            self._end(Session.from_dict(data))
        else:
            logger.debug("Ignoring unknown live event type %r", kind)

    def _init(self, session: Session) -> None:
        self.session = session
        self.entries = list(session.entries)
        self.filesystem = session.filesystem

    def _end(self, session: Session) -> None:
        self.session = session
        self.is_ended = True
