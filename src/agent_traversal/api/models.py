"""Pydantic response models for the agent-traversal REST API.

Field names follow the session document (camelCase) so API payloads and
stored documents are interchangeable.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Document(BaseModel):
    model_config = ConfigDict(extra="allow")


class TraversalEntryModel(_Document):
    id: str
    tool: str
    command: str | None = None
    filePath: str | None = None
    cwd: str
    timestamp: int
    operation: str
    paths: list[str] = Field(default_factory=list)
    resolvedPaths: list[str] = Field(default_factory=list)
    stdout: str | None = None
    stderr: str | None = None
    exitCode: int | None = None
    duration: int | None = None


class FileNodeModel(_Document):
    name: str
    path: str
    type: str
    children: list[FileNodeModel] | None = None
    extension: str | None = None


class SessionModel(_Document):
    id: str
    startedAt: int
    endedAt: int | None = None
    rootPath: str
    filesystem: FileNodeModel
    entries: list[TraversalEntryModel] = Field(default_factory=list)
    metadata: dict[str, Any] | None = None


class SessionSummaryModel(_Document):
    id: str
    startedAt: int
    endedAt: int | None = None
    rootPath: str
    entryCount: int
    metadata: dict[str, Any] | None = None


class SessionListResponse(BaseModel):
    sessions: list[SessionSummaryModel]


class SessionResponse(BaseModel):
    session: SessionModel


class DeleteResponse(BaseModel):
    success: bool = True


class HealthResponse(BaseModel):
    status: str = "ok"
    uptime_seconds: float = 0.0
    live_sessions: int = 0


FileNodeModel.model_rebuild()
