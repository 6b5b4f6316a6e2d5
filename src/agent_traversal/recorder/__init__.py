"""Traversal recorder: classify, annotate and snapshot agent filesystem activity."""

from .classifier import classify_command, get_commands_for_operation
from .events import (
    EntryEvent,
    EventChannel,
    FilesystemEvent,
    InitEvent,
    SessionEndEvent,
    SessionEvent,
    Subscription,
)
from .models import FileNode, NodeType, Operation, Session, SessionSummary, ToolKind, TraversalEntry
from .paths import extract_and_resolve_paths, extract_paths, is_likely_path, normalize_path, resolve_path
from .registry import SessionRegistry
from .session import SessionRecorder, truncate_output
from .snapshot import (
    build_tree,
    capture_filesystem_snapshot,
    find_node_by_path,
    flatten_tree,
    get_ancestor_paths,
    parse_find_output,
)

__all__ = [
    "classify_command", "get_commands_for_operation",
    "EntryEvent", "EventChannel", "FilesystemEvent", "InitEvent", "SessionEndEvent",
    "SessionEvent", "Subscription",
    "FileNode", "NodeType", "Operation", "Session", "SessionSummary", "ToolKind", "TraversalEntry",
    "extract_and_resolve_paths", "extract_paths", "is_likely_path", "normalize_path", "resolve_path",
    "SessionRegistry",
    "SessionRecorder", "truncate_output",
    "build_tree", "capture_filesystem_snapshot", "find_node_by_path", "flatten_tree",
    "get_ancestor_paths", "parse_find_output",
]
