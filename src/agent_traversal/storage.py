"""Persistent storage for session documents.

One JSON file per session under a storage directory. Unreadable or corrupt
documents never break a listing. They are skipped there and reported as
"not found" on direct load.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

from agent_traversal.errors import StorageError
from agent_traversal.recorder.models import Session, SessionSummary

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


class SessionStore:
    """Filesystem-backed session storage (JSON files)."""

    def __init__(self, storage_dir: str | Path = ".sessions") -> None:
        self.storage_dir = Path(storage_dir)
        self.storage_dir.mkdir(parents=True, exist_ok=True)

    def _path_for(self, session_id: str) -> Path | None:
        if not _SAFE_ID.match(session_id):
            return None
        return self.storage_dir / f"{session_id}.json"

    def save(self, session: Session) -> Path:
        """Write *session* to storage, replacing any previous document."""
        filepath = self._path_for(session.id)
        if filepath is None:
            raise StorageError(f"Invalid session id: {session.id!r}")
        tmp = filepath.with_suffix(".json.tmp")
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(session.to_dict(), f, indent=2)
            tmp.replace(filepath)
        except OSError as e:
            raise StorageError(f"Failed to save session {session.id}: {e}") from e
        logger.info("Saved session %s (%d entries)", session.id, len(session.entries))
        return filepath

    def load(self, session_id: str) -> Session | None:
        """Load a session by id, or ``None`` when missing or unreadable."""
        filepath = self._path_for(session_id)
        if filepath is None or not filepath.exists():
            return None
        data = self._read(filepath)
        if data is None:
            return None
        try:
            return Session.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Corrupt session document %s: %s", filepath.name, e)
            return None

    def list_sessions(self) -> list[SessionSummary]:
        """Summaries of all stored sessions, newest first."""
        summaries: list[SessionSummary] = []
        for filepath in self.storage_dir.glob("*.json"):
            data = self._read(filepath)
            if data is None:
                continue
            try:
                summaries.append(SessionSummary.from_dict(data))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping corrupt session document %s: %s", filepath.name, e)
        summaries.sort(key=lambda s: s.started_at, reverse=True)
        return summaries

    def delete(self, session_id: str) -> bool:
        """Delete a session. Returns ``False`` when it does not exist."""
        filepath = self._path_for(session_id)
        if filepath is None or not filepath.exists():
            return False
        try:
            filepath.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete session {session_id}: {e}") from e
        return True

    @staticmethod
    def _read(filepath: Path) -> dict[str, Any] | None:
        try:
            with open(filepath, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Unreadable session document %s: %s", filepath.name, e)
            return None
        if not isinstance(data, dict):
            logger.warning("Session document %s is not an object", filepath.name)
            return None
        return data
