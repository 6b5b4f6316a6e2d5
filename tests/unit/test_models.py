"""Tests for the session document model."""

import json

import pytest

from agent_traversal.recorder.models import (
    FileNode,
    NodeType,
    Operation,
    Session,
    SessionSummary,
    ToolKind,
    TraversalEntry,
)
from agent_traversal.recorder.snapshot import build_tree


def _entry(**overrides) -> TraversalEntry:
    fields = dict(
        id="e1",
        tool=ToolKind.BASH,
        command="cat a.txt",
        cwd="/w",
        timestamp=1000,
        operation=Operation.READ,
        paths=("a.txt",),
        resolved_paths=("/w/a.txt",),
    )
    fields.update(overrides)
    return TraversalEntry(**fields)


class TestTraversalEntry:
    def test_optional_fields_omitted(self) -> None:
        d = _entry().to_dict()
        for key in ("stdout", "stderr", "exitCode", "duration", "filePath"):
            assert key not in d
        assert d["resolvedPaths"] == ["/w/a.txt"]

    def test_serialization(self) -> None:
        entry = _entry(stdout="hi", exit_code=0, duration=12)
        restored = TraversalEntry.from_dict(entry.to_dict())
        assert restored == entry

    def test_file_entry(self) -> None:
        entry = _entry(tool=ToolKind.WRITE_FILE, command=None, file_path="/w/a.txt",
                       operation=Operation.WRITE)
        d = entry.to_dict()
        assert d["tool"] == "writeFile"
        assert d["filePath"] == "/w/a.txt"
        assert "command" not in d
        assert entry.target == "/w/a.txt"

    def test_paths_must_correspond(self) -> None:
        with pytest.raises(ValueError):
            _entry(resolved_paths=())

    def test_command_xor_file_path(self) -> None:
        with pytest.raises(ValueError):
            _entry(file_path="/w/a.txt")
        with pytest.raises(ValueError):
            _entry(command=None)

    def test_immutable(self) -> None:
        entry = _entry()
        with pytest.raises(AttributeError):
            entry.cwd = "/elsewhere"  # type: ignore[misc]


class TestFileNode:
    def test_empty_root(self) -> None:
        root = FileNode.empty_root("/sandbox/workspace")
        assert root.name == "workspace"
        assert root.type == NodeType.DIRECTORY
        assert root.children == []

    def test_file_dict_has_no_children(self) -> None:
        d = FileNode.file("/w/a.py").to_dict()
        assert d == {"name": "a.py", "path": "/w/a.py", "type": "file", "extension": "py"}


class TestSession:
    def _session(self) -> Session:
        session = Session(root_path="/w", metadata={"sandboxId": "sbx-1", "runtime": "node24"})
        session.filesystem = build_tree(
            [("d", "/w/src"), ("f", "/w/src/index.js"), ("f", "/w/README.md")], "/w",
        )
        session.entries.append(_entry(id="e1", stdout="x" * 5, exit_code=0, duration=3))
        session.entries.append(_entry(id="e2", tool=ToolKind.READ_FILE, command=None,
                                      file_path="/w/README.md", timestamp=1001))
        return session

    def test_defaults(self) -> None:
        session = Session(root_path="/w")
        assert session.id
        assert session.ended_at is None
        assert not session.is_ended
        assert session.filesystem is not None
        assert session.filesystem.path == "/w"

    def test_running_session_has_no_ended_at(self) -> None:
        d = Session(root_path="/w").to_dict()
        assert "endedAt" not in d
        assert "metadata" not in d

    def test_round_trip_through_json(self) -> None:
        session = self._session()
        session.ended_at = session.started_at + 50
        text = json.dumps(session.to_dict())
        restored = Session.from_dict(json.loads(text))
        assert restored.entries == session.entries
        assert restored.filesystem == session.filesystem
        assert restored.to_dict() == session.to_dict()

    def test_summary(self) -> None:
        session = self._session()
        summary = session.summary()
        assert summary.entry_count == 2
        assert summary.metadata == {"sandboxId": "sbx-1", "runtime": "node24"}
        d = summary.to_dict()
        assert "entries" not in d and "filesystem" not in d
        assert d["entryCount"] == 2

    def test_summary_from_full_document(self) -> None:
        summary = SessionSummary.from_dict(self._session().to_dict())
        assert summary.entry_count == 2
