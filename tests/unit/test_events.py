"""Tests for the live event channel."""

import logging

import pytest

from agent_traversal.recorder.events import (
    EntryEvent,
    EventChannel,
    FilesystemEvent,
    InitEvent,
    SessionEndEvent,
)
from agent_traversal.recorder.models import FileNode, Operation, Session, ToolKind, TraversalEntry


def _entry(i: int = 0) -> TraversalEntry:
    return TraversalEntry(
        id=f"e{i}", tool=ToolKind.BASH, command="ls", cwd="/w",
        timestamp=i, operation=Operation.LIST,
    )


class TestEventPayloads:
    def test_entry(self) -> None:
        d = EntryEvent(_entry()).to_dict()
        assert d["type"] == "entry"
        assert d["data"]["id"] == "e0"

    def test_filesystem(self) -> None:
        d = FilesystemEvent(FileNode.empty_root("/w")).to_dict()
        assert d == {"type": "filesystem", "data": {"name": "w", "path": "/w", "type": "directory", "children": []}}

    def test_session_end_and_init(self) -> None:
        session = Session(root_path="/w")
        assert SessionEndEvent(session).to_dict()["type"] == "session-end"
        init = InitEvent(session).to_dict()
        assert init["type"] == "init"
        assert init["data"]["session"]["id"] == session.id


class TestCallbackSubscribers:
    def test_fan_out(self) -> None:
        channel = EventChannel()
        a, b = [], []
        channel.subscribe(a.append)
        channel.subscribe(b.append)
        event = EntryEvent(_entry())
        channel.publish(event)
        assert a == [event]
        assert b == [event]

    def test_failing_listener_does_not_block_others(self, caplog: pytest.LogCaptureFixture) -> None:
        channel = EventChannel()
        received = []

        def boom(event) -> None:
            raise RuntimeError("subscriber crashed")

        channel.subscribe(boom)
        channel.subscribe(received.append)
        with caplog.at_level(logging.WARNING):
            channel.publish(EntryEvent(_entry()))
        assert len(received) == 1
        assert "listener failed" in caplog.text

    def test_close_is_idempotent(self) -> None:
        channel = EventChannel()
        sub = channel.subscribe(lambda e: None)
        sub.close()
        sub.close()
        assert channel.subscriber_count == 0


class TestQueueSubscribers:
    def test_buffers_in_order(self) -> None:
        channel = EventChannel()
        sub = channel.subscribe()
        events = [EntryEvent(_entry(i)) for i in range(3)]
        for e in events:
            channel.publish(e)
        assert sub.pending() == 3
        assert list(sub) == events
        assert sub.get(timeout=0) is None

    def test_full_queue_drops_without_blocking(self) -> None:
        channel = EventChannel()
        slow = channel.subscribe(max_pending=2)
        fast = channel.subscribe(max_pending=10)
        for i in range(5):
            channel.publish(EntryEvent(_entry(i)))
        assert slow.pending() == 2
        assert slow.dropped == 3
        assert fast.pending() == 5

    def test_closed_subscription_receives_nothing(self) -> None:
        channel = EventChannel()
        with channel.subscribe() as sub:
            pass
        channel.publish(EntryEvent(_entry()))
        assert sub.pending() == 0

    def test_get_on_callback_subscription(self) -> None:
        channel = EventChannel()
        sub = channel.subscribe(lambda e: None)
        with pytest.raises(TypeError):
            sub.get()
