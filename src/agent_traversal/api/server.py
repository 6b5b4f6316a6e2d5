"""FastAPI server exposing stored sessions and live session streams.

Run with::

    uvicorn agent_traversal.api.server:create_app --factory
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from agent_traversal.api.models import (
    DeleteResponse,
    HealthResponse,
    SessionListResponse,
    SessionResponse,
)
from agent_traversal.config import TraversalConfig
from agent_traversal.recorder.events import EntryEvent, InitEvent, SessionEndEvent, Subscription
from agent_traversal.recorder.registry import SessionRegistry
from agent_traversal.recorder.session import SessionRecorder
from agent_traversal.storage import SessionStore

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)


def _frame(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def event_stream(
    recorder: SessionRecorder,
    subscription: Subscription,
    keepalive_seconds: float = 15.0,
) -> Iterator[str]:
    """Server-sent event frames for one live subscriber.

    *subscription* must already be attached to the recorder so nothing
    published after the ``init`` snapshot is missed. Entries already
    contained in the snapshot are not repeated. The stream ends after
    ``session-end`` and the subscription is always closed.
    """
    try:
        init = InitEvent(recorder.session).to_dict()
        seen = {e["id"] for e in init["data"]["session"]["entries"]}
        yield _frame(init)
        if recorder.session.is_ended:
            yield _frame(SessionEndEvent(recorder.session).to_dict())
            return
        while True:
            event = subscription.get(timeout=keepalive_seconds)
            if event is None:
                yield ": keep-alive\n\n"
                continue
            if isinstance(event, EntryEvent) and event.entry.id in seen:
                continue
            yield _frame(event.to_dict())
            if isinstance(event, SessionEndEvent):
                return
    finally:
        subscription.close()


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    app.state.start_time = time.time()
    yield


def create_app(
    store: SessionStore | None = None,
    registry: SessionRegistry | None = None,
    config: TraversalConfig | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or TraversalConfig()
    application = FastAPI(
        title="Agent Traversal API",
        description="Recorded and live agent filesystem traversal sessions",
        version="0.1.0",
        lifespan=_lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.state.config = config
    application.state.store = store or SessionStore(config.sessions_dir)
    application.state.registry = registry or SessionRegistry()
    application.state.start_time = time.time()
    _register_routes(application)
    return application


def _register_routes(app: FastAPI) -> None:
    store: SessionStore = app.state.store
    registry: SessionRegistry = app.state.registry
    config: TraversalConfig = app.state.config

    @app.get("/health", tags=["health"], response_model=HealthResponse)
    def health_check() -> dict[str, Any]:
        return {
            "status": "ok",
            "uptime_seconds": round(time.time() - app.state.start_time, 1),
            "live_sessions": len(registry),
        }

    @app.get(
        "/api/sessions",
        tags=["sessions"],
        response_model=SessionListResponse,
        response_model_exclude_none=True,
    )
    def list_sessions() -> dict[str, Any]:
        return {"sessions": [s.to_dict() for s in store.list_sessions()]}

    # Declared before /{session_id} so "live" is not taken for an id.
    @app.get("/api/sessions/live", tags=["sessions"])
    def live_session(
        session_id: str | None = Query(default=None, alias="sessionId"),
    ) -> StreamingResponse:
        if not session_id:
            raise HTTPException(status_code=400, detail="sessionId is required")
        recorder = registry.lookup(session_id)
        if recorder is None:
            raise HTTPException(status_code=404, detail="Session not found or not active")
        subscription = recorder.subscribe()
        logger.info("Live subscriber attached to session %s", session_id)
        return StreamingResponse(
            event_stream(recorder, subscription, config.keepalive_seconds),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    @app.get(
        "/api/sessions/{session_id}",
        tags=["sessions"],
        response_model=SessionResponse,
        response_model_exclude_none=True,
    )
    def get_session(session_id: str) -> dict[str, Any]:
        session = store.load(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return {"session": session.to_dict()}

    @app.delete("/api/sessions/{session_id}", tags=["sessions"], response_model=DeleteResponse)
    def delete_session(session_id: str) -> dict[str, Any]:
        if not store.delete(session_id):
            raise HTTPException(status_code=404, detail="Session not found")
        return {"success": True}
