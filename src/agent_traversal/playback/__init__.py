"""Playback: deterministic and live replay of recorded sessions."""

from .controller import SPEEDS, PlaybackController, PlaybackMode
from .live import LiveSessionMirror
from .scheduler import Scheduler, ThreadScheduler, VirtualScheduler

__all__ = [
    "SPEEDS", "PlaybackController", "PlaybackMode",
    "LiveSessionMirror",
    "Scheduler", "ThreadScheduler", "VirtualScheduler",
]
