"""
Take (recording session) metadata.
"""

import secrets
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

# Bump when the stored frame/metadata layout changes
TAKE_SCHEMA_VERSION = 1

# Wire names used by the JSON take document
_FIELD_TO_KEY = {
    "id": "id",
    "project_id": "projectId",
    "name": "name",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
    "frame_count": "frameCount",
    "duration_ms": "durationMs",
    "avg_fps": "avgFps",
    "chunk_count": "chunkCount",
    "schema_version": "schemaVersion",
}


def now_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def new_take_id(timestamp_ms: Optional[int] = None) -> str:
    """Generate ``<epoch-ms>-<random hex>``."""
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    return f"{timestamp_ms}-{secrets.token_hex(6)}"


@dataclass
class Take:
    """
    One recording session.

    Stats start at zero, grow with every persisted chunk and are finalized
    once when recording stops.
    """
    id: str
    name: str = "Take"
    project_id: Optional[str] = None

    created_at: int = 0
    updated_at: int = 0

    # Stats (filled progressively, finalized on stop)
    frame_count: int = 0
    duration_ms: float = 0.0
    avg_fps: float = 0.0

    # Persistence
    chunk_count: int = 0
    schema_version: int = TAKE_SCHEMA_VERSION

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = {key: getattr(self, name) for name, key in _FIELD_TO_KEY.items()}
        if self.project_id is None:
            del data["projectId"]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Take":
        """Create from dictionary."""
        kwargs = {}
        for name, key in _FIELD_TO_KEY.items():
            if key in data:
                kwargs[name] = data[key]
        return cls(**kwargs)


def new_take(name: str = "Take", project_id: Optional[str] = None) -> Take:
    """Create a fresh take with zeroed statistics."""
    now = now_ms()
    return Take(
        id=new_take_id(now),
        name=name,
        project_id=project_id,
        created_at=now,
        updated_at=now,
    )
