"""Exception hierarchy for agent-traversal.

Only the I/O collaborators (executor, storage) and contract violations
raise. Classification, path extraction and snapshot building degrade to
safe defaults instead.
"""

from __future__ import annotations


class TraversalError(Exception):
    """Base class for all agent-traversal errors."""


class SessionEndedError(TraversalError):
    """Raised when recording is attempted on a session that has ended."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session '{session_id}' has ended and accepts no further entries.")


class ExecutorError(TraversalError):
    """Raised when the sandbox executor cannot run a command or list files."""

    def __init__(self, message: str, command: str | None = None) -> None:
        self.command = command
        super().__init__(message)


class StorageError(TraversalError):
    """Raised when a session document cannot be written or removed."""
