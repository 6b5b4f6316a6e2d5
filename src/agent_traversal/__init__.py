"""Agent Traversal: recording and replay of agent filesystem traversal.

agent-traversal watches an autonomous agent work inside a sandboxed
filesystem and turns what it did into a replayable session:

Core concepts
-------------
* **Entry**: one recorded operation (a shell command or a direct file
  read/write) with the working directory, the paths it touched (raw and
  resolved), its output and exit code.

* **Operation**: the category assigned to an entry: ``read``, ``list``,
  ``write``, ``navigate``, ``search``, ``execute`` or ``other``. Output
  redirection always makes a command a write.

* **Snapshot**: a full hierarchical view of the sandbox filesystem,
  replaced wholesale whenever it is refreshed.

* **Live-follow**: a playback mode that tracks the newest entry of a
  session that is still recording.

Quick start::

    from agent_traversal import SessionRecorder, CommandResult

    recorder = SessionRecorder("/workspace")
    recorder.record_bash("cat package.json", CommandResult(stdout="{}", exit_code=0))
    session = recorder.end_session()
"""

from agent_traversal.executor import CommandResult, LocalExecutor
from agent_traversal.instrumented import InstrumentedTools
from agent_traversal.playback import LiveSessionMirror, PlaybackController, PlaybackMode
from agent_traversal.recorder import (
    FileNode,
    Operation,
    Session,
    SessionRecorder,
    SessionRegistry,
    SessionSummary,
    TraversalEntry,
    build_tree,
    classify_command,
    extract_paths,
    resolve_path,
)
from agent_traversal.storage import SessionStore

__all__ = [
    "CommandResult",
    "FileNode",
    "InstrumentedTools",
    "LiveSessionMirror",
    "LocalExecutor",
    "Operation",
    "PlaybackController",
    "PlaybackMode",
    "Session",
    "SessionRecorder",
    "SessionRegistry",
    "SessionStore",
    "SessionSummary",
    "TraversalEntry",
    "build_tree",
    "classify_command",
    "extract_paths",
    "resolve_path",
]

__version__ = "0.1.0"
