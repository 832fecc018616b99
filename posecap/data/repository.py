"""
Take persistence port.

The recorder and the exporters only talk to ``TakeRepository``; the host
application decides where chunks actually live. ``InMemoryTakeRepository``
is the reference implementation used by the CLI and the tests.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

from posecap.core.landmarks import LandmarkFrame
from posecap.data.take import Take, new_take, now_ms
from posecap.errors import TakeNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChunkInfo:
    """Summary of one persisted chunk."""
    start_ts: float
    end_ts: float
    frame_count: int


def finalize_stats(frame_count: int, first_ts: float, last_ts: float) -> Tuple[float, float]:
    """
    Compute (duration_ms, avg_fps) for a finished take.

    Duration never goes negative; a zero-length take reports 0 fps.
    """
    duration_ms = max(0.0, float(last_ts) - float(first_ts))
    avg_fps = frame_count / (duration_ms / 1000.0) if duration_ms > 0 else 0.0
    return duration_ms, avg_fps


class TakeRepository(ABC):
    """Abstract asynchronous store for takes and their frame chunks."""

    @abstractmethod
    async def create_take(self, name: Optional[str] = None, project_id: Optional[str] = None) -> Take:
        """Create and index a new take with zeroed statistics."""
        pass

    @abstractmethod
    async def append_frames(
        self,
        take_id: str,
        chunk_number: int,
        frames: Sequence[LandmarkFrame],
    ) -> ChunkInfo:
        """
        Persist one chunk of frames.

        Args:
            take_id: Take the frames belong to
            chunk_number: Zero-based, strictly increasing chunk index
            frames: Frames in capture order

        Returns:
            ChunkInfo describing the stored chunk
        """
        pass

    @abstractmethod
    async def finalize_take(self, take_id: str, first_ts: float, last_ts: float) -> Take:
        """Fill in duration and average frame rate once recording ends."""
        pass

    @abstractmethod
    async def get_take(self, take_id: str) -> Optional[Take]:
        pass

    @abstractmethod
    async def list_takes(self) -> List[Take]:
        """All takes, newest first."""
        pass

    @abstractmethod
    async def delete_take(self, take_id: str):
        """Remove a take with all of its chunks. Unknown ids are ignored."""
        pass

    @abstractmethod
    async def read_frames(self, take_id: str) -> List[LandmarkFrame]:
        """All frames of a take, concatenated in chunk order."""
        pass

    @abstractmethod
    async def rename_take(self, take_id: str, name: str) -> Take:
        pass


class InMemoryTakeRepository(TakeRepository):
    """Dictionary-backed repository. Returned takes are copies."""

    def __init__(self):
        self._takes: Dict[str, Take] = {}
        self._index: List[str] = []
        self._chunks: Dict[Tuple[str, int], List[LandmarkFrame]] = {}

    def _require(self, take_id: str) -> Take:
        take = self._takes.get(take_id)
        if take is None:
            raise TakeNotFoundError(take_id)
        return take

    async def create_take(self, name: Optional[str] = None, project_id: Optional[str] = None) -> Take:
        take = new_take(name or "Take", project_id)
        self._takes[take.id] = take
        self._index.insert(0, take.id)
        logger.debug(f"Created take {take.id}")
        return replace(take)

    async def append_frames(
        self,
        take_id: str,
        chunk_number: int,
        frames: Sequence[LandmarkFrame],
    ) -> ChunkInfo:
        take = self._require(take_id)
        if not frames:
            return ChunkInfo(0, 0, 0)

        self._chunks[(take_id, chunk_number)] = list(frames)

        take.frame_count += len(frames)
        take.chunk_count = max(take.chunk_count, chunk_number + 1)
        take.updated_at = now_ms()

        return ChunkInfo(
            start_ts=frames[0].timestamp,
            end_ts=frames[-1].timestamp,
            frame_count=len(frames),
        )

    async def finalize_take(self, take_id: str, first_ts: float, last_ts: float) -> Take:
        take = self._require(take_id)
        take.duration_ms, take.avg_fps = finalize_stats(take.frame_count, first_ts, last_ts)
        take.updated_at = now_ms()
        return replace(take)

    async def get_take(self, take_id: str) -> Optional[Take]:
        take = self._takes.get(take_id)
        return replace(take) if take is not None else None

    async def list_takes(self) -> List[Take]:
        return [replace(self._takes[take_id]) for take_id in self._index]

    async def delete_take(self, take_id: str):
        if self._takes.pop(take_id, None) is None:
            return
        self._index.remove(take_id)
        for key in [k for k in self._chunks if k[0] == take_id]:
            del self._chunks[key]

    async def read_frames(self, take_id: str) -> List[LandmarkFrame]:
        self._require(take_id)
        frames: List[LandmarkFrame] = []
        for n in self.chunk_numbers(take_id):
            frames.extend(self._chunks[(take_id, n)])
        return frames

    async def rename_take(self, take_id: str, name: str) -> Take:
        take = self._require(take_id)
        take.name = name
        take.updated_at = now_ms()
        return replace(take)

    async def get_chunk(self, take_id: str, chunk_number: int) -> Optional[List[LandmarkFrame]]:
        chunk = self._chunks.get((take_id, chunk_number))
        return list(chunk) if chunk is not None else None

    async def wipe_all(self):
        """Drop every take and chunk."""
        self._takes.clear()
        self._index.clear()
        self._chunks.clear()

    def chunk_numbers(self, take_id: str) -> List[int]:
        """Stored chunk numbers of a take, ascending."""
        return sorted(n for (tid, n) in self._chunks if tid == take_id)
