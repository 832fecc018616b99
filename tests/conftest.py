import asyncio

import numpy as np
import pytest

from posecap.core.landmarks import DEFAULT_LANDMARK_COUNT, LANDMARK_STRIDE, LandmarkFrame
from posecap.core.stream import synthetic_frames
from posecap.data.repository import InMemoryTakeRepository


class ScriptedRepository(InMemoryTakeRepository):
    """In-memory repository that yields inside writes and can be told to fail."""

    def __init__(self, yields: int = 3):
        super().__init__()
        self.yields = yields
        self.fail_appends = 0
        self.fail_finalize = 0
        self.append_calls = []
        self.persisted = 0
        self.active = 0
        self.max_active = 0
        self.on_append = None

    async def append_frames(self, take_id, chunk_number, frames):
        self.append_calls.append((chunk_number, len(frames)))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            for _ in range(self.yields):
                await asyncio.sleep(0)
                if self.on_append is not None:
                    self.on_append()
            if self.fail_appends > 0:
                self.fail_appends -= 1
                raise RuntimeError("disk full")
            info = await super().append_frames(take_id, chunk_number, frames)
            self.persisted += len(frames)
            return info
        finally:
            self.active -= 1

    async def finalize_take(self, take_id, first_ts, last_ts):
        if self.fail_finalize > 0:
            self.fail_finalize -= 1
            raise RuntimeError("metadata write failed")
        return await super().finalize_take(take_id, first_ts, last_ts)


def flat_frame(timestamp, value=0.5, confidence=1.0, count=DEFAULT_LANDMARK_COUNT):
    buf = np.full(count * LANDMARK_STRIDE, value, dtype=np.float32)
    buf[3::LANDMARK_STRIDE] = confidence
    return LandmarkFrame(timestamp=timestamp, landmarks=buf)


@pytest.fixture
def repository():
    return InMemoryTakeRepository()


@pytest.fixture
def scripted_repository():
    return ScriptedRepository()


@pytest.fixture
def make_frames():
    def _make(count, fps=30.0, start_ts=1000.0):
        return [flat_frame(start_ts + i * 1000.0 / fps) for i in range(count)]
    return _make


@pytest.fixture
def rest_landmarks():
    """Noise-free standing pose with all 33 landmarks."""
    return synthetic_frames(1, noise=0.0)[0].landmarks.copy()
