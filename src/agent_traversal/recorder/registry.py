"""Registry of recorders whose sessions are currently live."""

from __future__ import annotations

import logging
import threading

from agent_traversal.recorder.session import SessionRecorder

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Routes live subscriptions to running recorders by session id.

    Create one per process (or per test) and pass it to whatever serves
    live streams.
    """

    def __init__(self) -> None:
        self._recorders: dict[str, SessionRecorder] = {}
        self._lock = threading.Lock()

    def register(self, session_id: str, recorder: SessionRecorder) -> None:
        with self._lock:
            self._recorders[session_id] = recorder
        logger.debug("Registered live session %s", session_id)

    def unregister(self, session_id: str) -> bool:
        with self._lock:
            removed = self._recorders.pop(session_id, None) is not None
        if removed:
            logger.debug("Unregistered live session %s", session_id)
        return removed

    def lookup(self, session_id: str) -> SessionRecorder | None:
        with self._lock:
            return self._recorders.get(session_id)

    def ids(self) -> list[str]:
        with self._lock:
            return list(self._recorders)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._recorders

    def __len__(self) -> int:
        with self._lock:
            return len(self._recorders)
