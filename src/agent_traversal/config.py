"""Recorder configuration, loadable from YAML."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_ENV_VAR = "AGENT_TRAVERSAL_CONFIG"

PLAYBACK_SPEEDS = (0.5, 1.0, 2.0, 4.0)

DEFAULT_SNAPSHOT_EXCLUDE = [
    "node_modules",
    ".git",
    ".next",
    "dist",
    "__pycache__",
    ".venv",
]


class TraversalConfig(BaseModel):
    """Tunables for recording, snapshots, streaming and playback."""

    sessions_dir: str = Field(default=".sessions", description="Directory holding session documents")
    max_output_length: int = Field(
        default=10240, gt=0, description="Cap on stored stdout/stderr characters",
    )
    snapshot_max_depth: int = Field(default=10, ge=0)
    snapshot_exclude: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SNAPSHOT_EXCLUDE),
        description="Directory names pruned from filesystem listings",
    )
    refresh_on_write: bool = Field(
        default=True, description="Re-list the filesystem after entries classified as write",
    )
    reconnect_delay_seconds: float = Field(default=2.0, ge=0)
    keepalive_seconds: float = Field(default=15.0, gt=0)
    default_speed: float = Field(default=1.0, description="One of the playback speeds 0.5, 1, 2 or 4")
    event_queue_size: int = Field(default=1000, gt=0)
    command_timeout_seconds: float = Field(default=60.0, gt=0)

    @field_validator("default_speed")
    @classmethod
    def _known_speed(cls, value: float) -> float:
        if value not in PLAYBACK_SPEEDS:
            raise ValueError(f"default_speed must be one of {PLAYBACK_SPEEDS}, got {value}")
        return value

    @classmethod
    def from_yaml(cls, path: str | Path) -> TraversalConfig:
        """Load a configuration from a YAML file."""
        path = Path(path)
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls.model_validate(data)

    def to_yaml(self, path: str | Path) -> None:
        """Save this configuration to a YAML file."""
        path = Path(path)
        data = self.model_dump(mode="json")
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def load_config(path: str | Path | None = None) -> TraversalConfig:
    """Load configuration from *path*, ``$AGENT_TRAVERSAL_CONFIG`` or defaults."""
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or None
    if path is None:
        return TraversalConfig()
    return TraversalConfig.from_yaml(path)
