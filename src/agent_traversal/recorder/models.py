"""Session document model: entries, file tree nodes, sessions and summaries.

The dictionary form uses the session document field names (``filePath``,
``resolvedPaths``, ``startedAt`` ...). Optional fields that are unset are
left out of the dictionary rather than written as ``null`` so that a
``to_dict``/``from_dict`` round trip reproduces the original exactly.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def new_id() -> str:
    """Generate a fresh random identifier."""
    return uuid.uuid4().hex[:21]


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class Operation(str, Enum):
    """Semantic category of a recorded operation."""

    READ = "read"
    LIST = "list"
    WRITE = "write"
    NAVIGATE = "navigate"
    SEARCH = "search"
    EXECUTE = "execute"
    OTHER = "other"


class ToolKind(str, Enum):
    """Interface that produced an entry."""

    BASH = "bash"
    READ_FILE = "readFile"
    WRITE_FILE = "writeFile"


class NodeType(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


def _put(data: dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        data[key] = value


def _mapping(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise TypeError(f"{what} must be an object, got {type(value).__name__}")
    return value


def _field(data: dict[str, Any], key: str, kind: type, *, optional: bool = False) -> Any:
    """Fetch *key* from a decoded document, checking its type.

    Missing required keys raise ``KeyError``; wrong types raise ``TypeError``.
    """
    value = data.get(key) if optional else data[key]
    if value is None and optional:
        return None
    # bool is an int subclass but never a valid timestamp or count
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise TypeError(f"{key!r} must be {kind.__name__}, got {type(value).__name__}")
    return value


def _list(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise TypeError(f"{key!r} must be a list, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class TraversalEntry:
    """One recorded operation. Immutable once created.

    ``command`` is set for bash entries and ``file_path`` for direct file
    entries, never both. ``paths`` and ``resolved_paths`` correspond index
    by index.
    """

    id: str
    tool: ToolKind
    cwd: str
    timestamp: int
    operation: Operation
    paths: tuple[str, ...] = ()
    resolved_paths: tuple[str, ...] = ()
    command: str | None = None
    file_path: str | None = None
    stdout: str | None = None
    stderr: str | None = None
    exit_code: int | None = None
    duration: int | None = None

    def __post_init__(self) -> None:
        if len(self.paths) != len(self.resolved_paths):
            raise ValueError("paths and resolved_paths must have the same length")
        if (self.command is None) == (self.file_path is None):
            raise ValueError("exactly one of command or file_path must be set")

    @property
    def target(self) -> str:
        """The command for bash entries, the file path otherwise."""
        return self.command if self.command is not None else self.file_path or ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "tool": self.tool.value,
        }
        _put(data, "command", self.command)
        _put(data, "filePath", self.file_path)
        data.update({
            "cwd": self.cwd,
            "timestamp": self.timestamp,
            "operation": self.operation.value,
            "paths": list(self.paths),
            "resolvedPaths": list(self.resolved_paths),
        })
        _put(data, "stdout", self.stdout)
        _put(data, "stderr", self.stderr)
        _put(data, "exitCode", self.exit_code)
        _put(data, "duration", self.duration)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TraversalEntry:
        data = _mapping(data, "entry")
        return cls(
            id=_field(data, "id", str),
            tool=ToolKind(data["tool"]),
            command=_field(data, "command", str, optional=True),
            file_path=_field(data, "filePath", str, optional=True),
            cwd=_field(data, "cwd", str),
            timestamp=_field(data, "timestamp", int),
            operation=Operation(data.get("operation", "other")),
            paths=tuple(_list(data, "paths")),
            resolved_paths=tuple(_list(data, "resolvedPaths")),
            stdout=_field(data, "stdout", str, optional=True),
            stderr=_field(data, "stderr", str, optional=True),
            exit_code=_field(data, "exitCode", int, optional=True),
            duration=_field(data, "duration", int, optional=True),
        )


@dataclass
class FileNode:
    """A node in a filesystem snapshot.

    Directories carry ``children`` (possibly empty); files carry an
    ``extension``.
    """

    name: str
    path: str
    type: NodeType
    children: list[FileNode] | None = None
    extension: str | None = None

    @property
    def is_directory(self) -> bool:
        return self.type is NodeType.DIRECTORY

    @classmethod
    def directory(cls, path: str, name: str | None = None) -> FileNode:
        return cls(name=name or _basename(path), path=path, type=NodeType.DIRECTORY, children=[])

    @classmethod
    def file(cls, path: str, name: str | None = None) -> FileNode:
        name = name or _basename(path)
        return cls(name=name, path=path, type=NodeType.FILE, extension=name.rsplit(".", 1)[-1])

    @classmethod
    def empty_root(cls, root_path: str) -> FileNode:
        """Placeholder tree used before the first snapshot or after a failed one."""
        return cls.directory(root_path)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "path": self.path,
            "type": self.type.value,
        }
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        _put(data, "extension", self.extension)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileNode:
        data = _mapping(data, "file node")
        children = data.get("children")
        return cls(
            name=_field(data, "name", str),
            path=_field(data, "path", str),
            type=NodeType(data["type"]),
            children=[cls.from_dict(c) for c in _list(data, "children")] if children is not None else None,
            extension=_field(data, "extension", str, optional=True),
        )


def _basename(path: str) -> str:
    return path.rstrip("/").rsplit("/", 1)[-1] or path


@dataclass
class Session:
    """The complete record of one traversal run."""

    root_path: str
    id: str = field(default_factory=new_id)
    started_at: int = field(default_factory=now_ms)
    ended_at: int | None = None
    filesystem: FileNode | None = None
    entries: list[TraversalEntry] = field(default_factory=list)
    metadata: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.filesystem is None:
            self.filesystem = FileNode.empty_root(self.root_path)

    @property
    def is_ended(self) -> bool:
        return self.ended_at is not None

    def summary(self) -> SessionSummary:
        return SessionSummary.from_session(self)

    def to_dict(self) -> dict[str, Any]:
        assert self.filesystem is not None
        data: dict[str, Any] = {
            "id": self.id,
            "startedAt": self.started_at,
        }
        _put(data, "endedAt", self.ended_at)
        data.update({
            "rootPath": self.root_path,
            "filesystem": self.filesystem.to_dict(),
            "entries": [e.to_dict() for e in self.entries],
        })
        _put(data, "metadata", self.metadata)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        data = _mapping(data, "session")
        filesystem = data.get("filesystem")
        return cls(
            id=_field(data, "id", str),
            started_at=_field(data, "startedAt", int),
            ended_at=_field(data, "endedAt", int, optional=True),
            root_path=_field(data, "rootPath", str),
            filesystem=FileNode.from_dict(filesystem) if filesystem is not None else None,
            entries=[TraversalEntry.from_dict(e) for e in _list(data, "entries")],
            metadata=_field(data, "metadata", dict, optional=True),
        )


@dataclass
class SessionSummary:
    """Listing projection of a session without its tree and entries."""

    id: str
    started_at: int
    root_path: str
    entry_count: int = 0
    ended_at: int | None = None
    metadata: dict[str, Any] | None = None

    @classmethod
    def from_session(cls, session: Session) -> SessionSummary:
        return cls(
            id=session.id,
            started_at=session.started_at,
            ended_at=session.ended_at,
            root_path=session.root_path,
            entry_count=len(session.entries),
            metadata=session.metadata,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "startedAt": self.started_at}
        _put(data, "endedAt", self.ended_at)
        data["rootPath"] = self.root_path
        data["entryCount"] = self.entry_count
        _put(data, "metadata", self.metadata)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionSummary:
        """Build a summary from either a summary dict or a full session dict."""
        data = _mapping(data, "session")
        if "entryCount" in data:
            entry_count = _field(data, "entryCount", int)
        else:
            entry_count = len(_field(data, "entries", list))
        return cls(
            id=_field(data, "id", str),
            started_at=_field(data, "startedAt", int),
            ended_at=_field(data, "endedAt", int, optional=True),
            root_path=_field(data, "rootPath", str),
            entry_count=entry_count,
            metadata=_field(data, "metadata", dict, optional=True),
        )
