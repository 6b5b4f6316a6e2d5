"""Playback state machine over a recorded (or still recording) session.

States:
    PAUSED:      index is fixed until navigated.
    PLAYING:     index advances every ``1000 / speed`` ms and stops at the end.
    LIVE_FOLLOW: index snaps to the newest entry whenever the sequence grows.

PLAYING and LIVE_FOLLOW are mutually exclusive. Timed advance would race
with entries arriving asynchronously, so live-follow is driven by
sequence growth (:meth:`PlaybackController.sync`) instead of a timer.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Protocol

from agent_traversal.config import PLAYBACK_SPEEDS
from agent_traversal.playback.scheduler import ScheduledCall, Scheduler, ThreadScheduler
from agent_traversal.recorder.models import FileNode, TraversalEntry
from agent_traversal.recorder.paths import normalize_path
from agent_traversal.recorder.snapshot import get_ancestor_paths

logger = logging.getLogger(__name__)

SPEEDS = PLAYBACK_SPEEDS


class PlaybackMode(str, Enum):
    PAUSED = "paused"
    PLAYING = "playing"
    LIVE_FOLLOW = "live-follow"


class PlaybackSource(Protocol):
    """Anything exposing a (possibly growing) entry list and a current tree."""

    @property
    def entries(self) -> Sequence[TraversalEntry]: ...

    @property
    def filesystem(self) -> FileNode | None: ...


class PlaybackController:
    """Replay a session's entries over virtual or real time."""

    def __init__(
        self,
        source: PlaybackSource,
        *,
        speed: float = 1.0,
        follow_live: bool = False,
        scheduler: Scheduler | None = None,
    ) -> None:
        self.source = source
        self.scheduler = scheduler or ThreadScheduler()
        self._speed = self._check_speed(speed)
        self._index = 0
        self._mode = PlaybackMode.PAUSED
        self._pending: ScheduledCall | None = None
        self._generation = 0
        self._last_length = len(source.entries)
        self._listeners: list[Callable[[PlaybackController], None]] = []
        self._lock = threading.RLock()
        if follow_live:
            self.follow_latest()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def mode(self) -> PlaybackMode:
        return self._mode

    @property
    def speed(self) -> float:
        return self._speed

    @property
    def total_entries(self) -> int:
        return len(self.source.entries)

    @property
    def is_playing(self) -> bool:
        return self._mode is PlaybackMode.PLAYING

    @property
    def is_following_live(self) -> bool:
        return self._mode is PlaybackMode.LIVE_FOLLOW

    @property
    def interval(self) -> float:
        """Seconds between timed advances at the current speed."""
        return 1.0 / self._speed

    @property
    def current_entry(self) -> TraversalEntry | None:
        entries = self.source.entries
        if 0 <= self._index < len(entries):
            return entries[self._index]
        return None

    @property
    def current_tree(self) -> FileNode | None:
        return self.source.filesystem

    @property
    def progress(self) -> float:
        """Position as a percentage of the sequence."""
        total = self.total_entries
        if total == 0:
            return 0.0
        return self._index / max(total - 1, 1) * 100

    def highlighted_paths(self) -> set[str]:
        """Paths touched by the current entry, or its cwd when it names none."""
        entry = self.current_entry
        if entry is None:
            return set()
        paths = {normalize_path(p) for p in entry.resolved_paths}
        if not paths and entry.cwd:
            paths.add(normalize_path(entry.cwd))
        return paths

    def expanded_paths(self) -> set[str]:
        """Directories to expand so every highlighted path is visible."""
        tree = self.current_tree
        root = normalize_path(tree.path) if tree is not None else "/"
        expanded = {root}
        for path in self.highlighted_paths():
            expanded.update(get_ancestor_paths(path, root))
        return expanded

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def play(self) -> None:
        with self._lock:
            total = self.total_entries
            if total == 0:
                return
            if self._index >= total - 1:
                self._index = 0
            self._mode = PlaybackMode.PLAYING
            self._schedule()
        self._notify()

    def pause(self) -> None:
        with self._lock:
            self._cancel()
            self._mode = PlaybackMode.PAUSED
        self._notify()

    def toggle(self) -> None:
        if self.is_playing:
            self.pause()
        else:
            self.play()

    def set_speed(self, speed: float) -> None:
        with self._lock:
            self._speed = self._check_speed(speed)
            if self._mode is PlaybackMode.PLAYING:
                self._schedule()
        self._notify()

    def go_to(self, index: int) -> None:
        with self._lock:
            self._leave_live_follow()
            self._index = self._clamp(index)
        self._notify()

    def step_forward(self) -> None:
        self.go_to(self._index + 1)

    def step_back(self) -> None:
        self.go_to(self._index - 1)

    def follow_latest(self) -> None:
        with self._lock:
            self._cancel()
            self._mode = PlaybackMode.LIVE_FOLLOW
            self._index = max(self.total_entries - 1, 0)
            self._last_length = self.total_entries
        self._notify()

    def reset(self) -> None:
        with self._lock:
            self._cancel()
            self._mode = PlaybackMode.PAUSED
            self._index = 0
        self._notify()

    def sync(self) -> None:
        """Observe the source's current length; snap to the end in live-follow."""
        with self._lock:
            total = self.total_entries
            grew = total > self._last_length
            self._last_length = total
            if not (grew and self._mode is PlaybackMode.LIVE_FOLLOW):
                return
            self._index = total - 1
        self._notify()

    def add_listener(self, listener: Callable[[PlaybackController], None]) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _advance(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._mode is not PlaybackMode.PLAYING:
                return
            self._pending = None
            last = self.total_entries - 1
            if self._index < last:
                self._index += 1
            if self._index >= last:
                self._mode = PlaybackMode.PAUSED
            else:
                self._schedule()
        self._notify()

    def _schedule(self) -> None:
        self._cancel()
        generation = self._generation
        self._pending = self.scheduler.call_later(
            self.interval, lambda: self._advance(generation),
        )

    def _cancel(self) -> None:
        self._generation += 1
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _leave_live_follow(self) -> None:
        if self._mode is PlaybackMode.LIVE_FOLLOW:
            self._mode = PlaybackMode.PAUSED

    def _clamp(self, index: int) -> int:
        return max(0, min(index, self.total_entries - 1))

    @staticmethod
    def _check_speed(speed: float) -> float:
        if speed not in SPEEDS:
            raise ValueError(f"Unsupported playback speed {speed}; expected one of {SPEEDS}")
        return float(speed)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.warning("Playback listener failed", exc_info=True)
