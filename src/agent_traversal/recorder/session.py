"""Stateful session recorder.

The recorder owns one :class:`Session`, the working directory the agent's
shell is believed to be in, and the event channel that live subscribers
attach to. It is single-writer: callers serialize all ``record_*``,
``set_filesystem`` and ``end_session`` calls on one instance.
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable, Mapping
from typing import Any

from agent_traversal.config import TraversalConfig
from agent_traversal.errors import SessionEndedError
from agent_traversal.executor import CommandResult
from agent_traversal.recorder.classifier import classify_command
from agent_traversal.recorder.events import (
    EntryEvent,
    EventChannel,
    FilesystemEvent,
    Listener,
    SessionEndEvent,
    Subscription,
)
from agent_traversal.recorder.models import (
    FileNode,
    Operation,
    Session,
    ToolKind,
    TraversalEntry,
    new_id,
    now_ms,
)
from agent_traversal.recorder.paths import extract_and_resolve_paths, normalize_path, resolve_path

logger = logging.getLogger(__name__)

DEFAULT_MAX_OUTPUT = 10240
TRUNCATION_MARKER = "\n... [truncated]"


def truncate_output(output: str, max_length: int = DEFAULT_MAX_OUTPUT) -> str:
    """Cap *output* at *max_length* characters, appending a visible marker."""
    if len(output) <= max_length:
        return output
    return output[:max_length] + TRUNCATION_MARKER


def _cd_target(command: str) -> str | None:
    """Return the single argument of a literal ``cd <target>`` command."""
    stripped = command.strip()
    if not stripped.startswith("cd "):
        return None
    try:
        args = shlex.split(stripped[3:])
    except ValueError:
        return None
    if len(args) != 1 or not args[0]:
        return None
    return args[0]


class SessionRecorder:
    """Record an agent's shell and file operations into a session.

    Usage::

        recorder = SessionRecorder("/workspace")
        recorder.subscribe(lambda event: print(event.type))
        recorder.record_bash("cat README.md", CommandResult(stdout="...", exit_code=0))
        session = recorder.end_session()

    Known limitation: ``cd -`` leaves the tracked directory unchanged since
    the previous directory is not tracked.
    """

    def __init__(
        self,
        root_path: str,
        metadata: dict[str, Any] | None = None,
        *,
        config: TraversalConfig | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.config = config or TraversalConfig()
        self._clock = clock
        root_path = normalize_path(root_path)
        self._session = Session(root_path=root_path, started_at=clock(), metadata=metadata)
        self._cwd = root_path
        self._events = EventChannel(max_pending=self.config.event_queue_size)
        logger.info("Session %s started at %s", self._session.id, root_path)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def session_id(self) -> str:
        return self._session.id

    @property
    def cwd(self) -> str:
        return self._cwd

    @property
    def events(self) -> EventChannel:
        return self._events

    def subscribe(self, listener: Listener | None = None, **kwargs: Any) -> Subscription:
        return self._events.subscribe(listener, **kwargs)

    def unsubscribe(self, subscription: Subscription) -> None:
        self._events.unsubscribe(subscription)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_bash(
        self,
        command: str,
        result: CommandResult | Mapping[str, Any],
        start_time: int | None = None,
    ) -> TraversalEntry:
        """Record a shell command and its result.

        Paths are resolved against the working directory in effect when the
        command started. A successful ``cd`` then moves the tracked
        directory for later entries.
        """
        self._ensure_recording()
        if isinstance(result, Mapping):
            result = CommandResult.from_mapping(result)

        timestamp = self._clock()
        operation = classify_command(command)
        raw, resolved = extract_and_resolve_paths(command, self._cwd)

        entry = TraversalEntry(
            id=new_id(),
            tool=ToolKind.BASH,
            command=command,
            cwd=self._cwd,
            timestamp=timestamp,
            operation=operation,
            paths=tuple(raw),
            resolved_paths=tuple(resolved),
            stdout=self._truncate(result.stdout),
            stderr=self._truncate(result.stderr),
            exit_code=result.exit_code,
            duration=max(timestamp - start_time, 0) if start_time is not None else None,
        )

        if operation is Operation.NAVIGATE and result.exit_code == 0:
            self._apply_cd(command)

        self._append(entry)
        return entry

    def record_file_read(self, file_path: str, content: str | None = None) -> TraversalEntry:
        return self._record_file(ToolKind.READ_FILE, Operation.READ, file_path, content)

    def record_file_write(self, file_path: str, content: str | None = None) -> TraversalEntry:
        return self._record_file(ToolKind.WRITE_FILE, Operation.WRITE, file_path, content)

    def set_filesystem(self, tree: FileNode) -> None:
        """Replace the session's filesystem snapshot wholesale."""
        self._session.filesystem = tree
        self._events.publish(FilesystemEvent(tree))

    def end_session(self) -> Session:
        """Freeze the session and notify subscribers.

        Not idempotent: a second call overwrites ``ended_at`` and publishes
        ``session-end`` again.
        """
        self._session.ended_at = self._clock()
        logger.info(
            "Session %s ended with %d entries",
            self._session.id, len(self._session.entries),
        )
        self._events.publish(SessionEndEvent(self._session))
        return self._session

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _record_file(
        self,
        tool: ToolKind,
        operation: Operation,
        file_path: str,
        content: str | None,
    ) -> TraversalEntry:
        self._ensure_recording()
        entry = TraversalEntry(
            id=new_id(),
            tool=tool,
            file_path=file_path,
            cwd=self._cwd,
            timestamp=self._clock(),
            operation=operation,
            paths=(file_path,),
            resolved_paths=(resolve_path(file_path, self._cwd),),
            stdout=self._truncate(content),
        )
        self._append(entry)
        return entry

    def _append(self, entry: TraversalEntry) -> None:
        self._session.entries.append(entry)
        logger.debug("Recorded %s entry: %s", entry.operation.value, entry.target)
        self._events.publish(EntryEvent(entry))

    def _truncate(self, text: str | None) -> str | None:
        if not text:
            return None
        return truncate_output(text, self.config.max_output_length)

    def _ensure_recording(self) -> None:
        if self._session.is_ended:
            raise SessionEndedError(self._session.id)

    def _apply_cd(self, command: str) -> None:
        target = _cd_target(command)
        if target is None or target == "-":
            return
        if target.startswith("/"):
            self._cwd = normalize_path(target)
        elif target == "..":
            self._cwd = self._cwd.rsplit("/", 1)[0] or "/"
        else:
            self._cwd = resolve_path(target, self._cwd)
