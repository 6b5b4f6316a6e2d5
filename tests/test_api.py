"""Tests for the agent-traversal REST API."""

from __future__ import annotations

import json
from typing import Any

import pytest
from fastapi.testclient import TestClient

from agent_traversal.api import create_app, event_stream
from agent_traversal.executor import CommandResult
from agent_traversal.recorder.registry import SessionRegistry
from agent_traversal.recorder.session import SessionRecorder
from agent_traversal.recorder.snapshot import build_tree
from agent_traversal.storage import SessionStore

OK = CommandResult(exit_code=0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _recorded_session(root: str = "/w", started_at: int | None = None):
    rec = SessionRecorder(root, {"sandboxId": "sbx-1"})
    if started_at is not None:
        rec.session.started_at = started_at
    rec.record_bash("ls", OK)
    rec.record_bash("cat README.md", CommandResult(stdout="# hi", exit_code=0))
    return rec.end_session()


def _frames(body: str) -> list[dict[str, Any]]:
    """Decode ``data:`` frames, ignoring comments."""
    return [
        json.loads(chunk[len("data: "):])
        for chunk in body.split("\n\n")
        if chunk.startswith("data: ")
    ]


@pytest.fixture()
def store(tmp_path) -> SessionStore:
    return SessionStore(tmp_path)


@pytest.fixture()
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture()
def client(store, registry) -> TestClient:
    return TestClient(create_app(store=store, registry=registry))


# ---------------------------------------------------------------------------
# Stored sessions
# ---------------------------------------------------------------------------

class TestHealth:
    def test_health(self, client, registry) -> None:
        registry.register("abc", SessionRecorder("/w"))
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["live_sessions"] == 1


class TestSessionRoutes:
    def test_list_empty(self, client) -> None:
        resp = client.get("/api/sessions")
        assert resp.status_code == 200
        assert resp.json() == {"sessions": []}

    def test_list_newest_first(self, client, store) -> None:
        old = _recorded_session(started_at=1000)
        new = _recorded_session(started_at=2000)
        store.save(old)
        store.save(new)
        sessions = client.get("/api/sessions").json()["sessions"]
        assert [s["id"] for s in sessions] == [new.id, old.id]
        assert sessions[0]["entryCount"] == 2
        assert sessions[0]["metadata"] == {"sandboxId": "sbx-1"}
        assert "entries" not in sessions[0]

    def test_list_skips_wrongly_typed_documents(self, client, store) -> None:
        good = _recorded_session(started_at=1000)
        store.save(good)
        doc = _recorded_session(started_at=2000).to_dict()
        doc["startedAt"] = "yesterday"
        (store.storage_dir / f"{doc['id']}.json").write_text(json.dumps(doc))
        resp = client.get("/api/sessions")
        assert resp.status_code == 200
        assert [s["id"] for s in resp.json()["sessions"]] == [good.id]
        assert client.get(f"/api/sessions/{doc['id']}").status_code == 404

    def test_get_session(self, client, store) -> None:
        session = _recorded_session()
        store.save(session)
        resp = client.get(f"/api/sessions/{session.id}")
        assert resp.status_code == 200
        doc = resp.json()["session"]
        assert doc == session.to_dict()
        assert "filePath" not in doc["entries"][0]

    def test_get_missing(self, client) -> None:
        resp = client.get("/api/sessions/nope")
        assert resp.status_code == 404

    def test_delete(self, client, store) -> None:
        session = _recorded_session()
        store.save(session)
        resp = client.delete(f"/api/sessions/{session.id}")
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert client.get(f"/api/sessions/{session.id}").status_code == 404

    def test_delete_missing(self, client) -> None:
        assert client.delete("/api/sessions/nope").status_code == 404


# ---------------------------------------------------------------------------
# Live streams
# ---------------------------------------------------------------------------

class TestLiveRoute:
    def test_requires_session_id(self, client) -> None:
        assert client.get("/api/sessions/live").status_code == 400

    def test_unknown_session(self, client) -> None:
        resp = client.get("/api/sessions/live", params={"sessionId": "nope"})
        assert resp.status_code == 404

    def test_ended_session_streams_init_and_end(self, client, registry) -> None:
        rec = SessionRecorder("/w")
        rec.record_bash("ls", OK)
        rec.end_session()
        registry.register(rec.session_id, rec)
        resp = client.get("/api/sessions/live", params={"sessionId": rec.session_id})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/event-stream")
        frames = _frames(resp.text)
        assert [f["type"] for f in frames] == ["init", "session-end"]
        assert len(frames[0]["data"]["session"]["entries"]) == 1
        assert rec.events.subscriber_count == 0


class TestEventStream:
    def test_incremental_events_after_init(self) -> None:
        rec = SessionRecorder("/w")
        first = rec.record_bash("ls", OK)
        sub = rec.subscribe()
        gen = event_stream(rec, sub, keepalive_seconds=1)
        init = _frames(next(gen))[0]
        assert init["type"] == "init"
        assert [e["id"] for e in init["data"]["session"]["entries"]] == [first.id]

        second = rec.record_bash("cd src", OK)
        rec.end_session()
        rest = _frames("".join(gen))
        assert [f["type"] for f in rest] == ["entry", "session-end"]
        assert rest[0]["data"]["id"] == second.id
        assert rec.events.subscriber_count == 0

    def test_entries_in_init_not_repeated(self) -> None:
        rec = SessionRecorder("/w")
        sub = rec.subscribe()
        # Published to the subscriber before the snapshot is taken.
        entry = rec.record_bash("ls", OK)
        gen = event_stream(rec, sub, keepalive_seconds=1)
        init = _frames(next(gen))[0]
        assert [e["id"] for e in init["data"]["session"]["entries"]] == [entry.id]
        rec.end_session()
        rest = _frames("".join(gen))
        assert [f["type"] for f in rest] == ["session-end"]

    def test_filesystem_events_forwarded(self) -> None:
        rec = SessionRecorder("/w")
        sub = rec.subscribe()
        gen = event_stream(rec, sub, keepalive_seconds=1)
        next(gen)
        rec.set_filesystem(build_tree([("f", "/w/a.txt")], "/w"))
        rec.end_session()
        rest = _frames("".join(gen))
        assert rest[0]["type"] == "filesystem"
        assert rest[0]["data"]["children"][0]["path"] == "/w/a.txt"

    def test_keepalive_and_close(self) -> None:
        rec = SessionRecorder("/w")
        sub = rec.subscribe()
        gen = event_stream(rec, sub, keepalive_seconds=0.01)
        next(gen)
        assert next(gen) == ": keep-alive\n\n"
        gen.close()
        assert rec.events.subscriber_count == 0

    def test_concurrent_subscribers_see_same_entries(self) -> None:
        rec = SessionRecorder("/w")
        subs = [rec.subscribe() for _ in range(3)]
        gens = [event_stream(rec, s, keepalive_seconds=1) for s in subs]
        for gen in gens:
            next(gen)
        ids = [rec.record_bash(f"cat f{i}.txt", OK).id for i in range(5)]
        rec.end_session()
        for gen in gens:
            frames = _frames("".join(gen))
            assert [f["data"]["id"] for f in frames if f["type"] == "entry"] == ids
