"""Executor wrapper that records every command into a session.

Commands classified as writes trigger a filesystem re-listing in the
background. The entry event is published immediately. The snapshot
follows later as its own ``filesystem`` event, with no pairing or ordering
guarantee between the two.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from agent_traversal.config import TraversalConfig
from agent_traversal.executor import CommandExecutor, CommandResult
from agent_traversal.recorder.models import FileNode, Operation, Session, TraversalEntry, now_ms
from agent_traversal.recorder.session import SessionRecorder
from agent_traversal.recorder.snapshot import capture_filesystem_snapshot

logger = logging.getLogger(__name__)


class InstrumentedTools:
    """Run agent tool calls through an executor while recording them.

    Usage::

        with InstrumentedTools(LocalExecutor(root), root) as tools:
            tools.run("ls -la")
            tools.run("echo hi > notes.txt")
            session = tools.end_session()
    """

    def __init__(
        self,
        executor: CommandExecutor,
        root_path: str,
        *,
        recorder: SessionRecorder | None = None,
        config: TraversalConfig | None = None,
        on_entry: Callable[[TraversalEntry], None] | None = None,
        on_filesystem_change: Callable[[FileNode], None] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self.executor = executor
        self.config = config or TraversalConfig()
        self.recorder = recorder or SessionRecorder(root_path, metadata, config=self.config)
        self.root_path = self.recorder.session.root_path
        self.on_entry = on_entry
        self.on_filesystem_change = on_filesystem_change
        self._refresh_pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="snapshot-refresh")
        self._pending: list[Future[None]] = []

    @property
    def session(self) -> Session:
        return self.recorder.session

    def start(self) -> FileNode:
        """Capture the initial snapshot synchronously."""
        tree = self.snapshot()
        self._apply_tree(tree)
        return tree

    def snapshot(self) -> FileNode:
        return capture_filesystem_snapshot(
            self.executor,
            self.root_path,
            max_depth=self.config.snapshot_max_depth,
            exclude=self.config.snapshot_exclude,
        )

    def run(self, command: str) -> CommandResult:
        """Execute *command* and record it. Executor errors propagate."""
        start_time = now_ms()
        result = self.executor.run_command(command)
        entry = self.recorder.record_bash(command, result, start_time)
        self._after_entry(entry)
        return result

    def read_file(self, path: str) -> str:
        reader = getattr(self.executor, "read_file", None)
        if reader is None:
            raise TypeError(f"{type(self.executor).__name__} does not support direct file reads")
        content: str = reader(path)
        entry = self.recorder.record_file_read(path, content)
        self._after_entry(entry)
        return content

    def write_file(self, path: str, content: str) -> None:
        writer = getattr(self.executor, "write_file", None)
        if writer is None:
            raise TypeError(f"{type(self.executor).__name__} does not support direct file writes")
        writer(path, content)
        entry = self.recorder.record_file_write(path, content)
        self._after_entry(entry)

    def export_session(self) -> str:
        return json.dumps(self.recorder.session.to_dict(), indent=2)

    def end_session(self) -> Session:
        """Wait for in-flight refreshes, then end the session."""
        self.wait_for_refreshes()
        return self.recorder.end_session()

    def wait_for_refreshes(self, timeout: float | None = None) -> None:
        pending, self._pending = self._pending, []
        for future in pending:
            future.result(timeout=timeout)

    def close(self) -> None:
        self._refresh_pool.shutdown(wait=True)

    def __enter__(self) -> InstrumentedTools:
        self.start()
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: Any) -> None:
        self.close()

    # ------------------------------------------------------------------

    def _after_entry(self, entry: TraversalEntry) -> None:
        if self.on_entry is not None:
            self.on_entry(entry)
        if entry.operation is Operation.WRITE and self.config.refresh_on_write:
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.append(self._refresh_pool.submit(self._refresh))

    def _refresh(self) -> None:
        try:
            tree = self.snapshot()
            self._apply_tree(tree)
        except Exception:
            logger.error("Failed to refresh filesystem after write", exc_info=True)

    def _apply_tree(self, tree: FileNode) -> None:
        if self.recorder.session.is_ended:
            return
        self.recorder.set_filesystem(tree)
        if self.on_filesystem_change is not None:
            self.on_filesystem_change(tree)
