"""
Pose stream sources.

A stream source pushes ``LandmarkFrame`` objects to its listeners. Camera
and inference back ends live in the host application and implement
``PoseStreamSource``; ``MockPoseStream`` replays synthetic or recorded
frames for tests and demos.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

import numpy as np

from posecap.core.landmarks import DEFAULT_LANDMARK_COUNT, LANDMARK_STRIDE, LandmarkFrame
from posecap.errors import OptionsInvalidError, StreamFaultError

logger = logging.getLogger(__name__)

FrameListener = Callable[[LandmarkFrame], None]
ErrorListener = Callable[[StreamFaultError], None]

POSE_MODELS = ("lite", "full")


@dataclass
class StreamOptions:
    """
    Options passed to a stream source on start.

    Attributes:
        model: Pose model variant ("lite" or "full")
        min_confidence: Landmark confidence gate (0..1)
        min_pose_confidence: Detector threshold, defaults to min_confidence
        target_fps: Throttle hint for the source
        emit_every_nth_frame: Deliver only every n-th frame
        debug: Verbose source-side logging
    """
    model: str = "lite"
    min_confidence: float = 0.5
    min_pose_confidence: Optional[float] = None
    target_fps: float = 30.0
    emit_every_nth_frame: int = 1
    debug: bool = False

    @property
    def pose_confidence(self) -> float:
        if self.min_pose_confidence is None:
            return self.min_confidence
        return self.min_pose_confidence

    def validate(self):
        """Raise OptionsInvalidError on the first out-of-range option."""
        if self.model not in POSE_MODELS:
            raise OptionsInvalidError(f"model must be one of {POSE_MODELS}, got {self.model!r}")
        if not 0.0 <= self.min_confidence <= 1.0:
            raise OptionsInvalidError(f"min_confidence must be in [0, 1], got {self.min_confidence}")
        if not 0.0 <= self.pose_confidence <= 1.0:
            raise OptionsInvalidError(
                f"min_pose_confidence must be in [0, 1], got {self.min_pose_confidence}"
            )
        if self.target_fps <= 0:
            raise OptionsInvalidError(f"target_fps must be positive, got {self.target_fps}")
        if self.emit_every_nth_frame < 1:
            raise OptionsInvalidError(
                f"emit_every_nth_frame must be >= 1, got {self.emit_every_nth_frame}"
            )


class PoseStreamSource(ABC):
    """Capability interface of a landmark frame producer."""

    def __init__(self):
        self._listeners: List[FrameListener] = []
        self._error_listeners: List[ErrorListener] = []

    @abstractmethod
    async def ping(self) -> Dict[str, Any]:
        """Return ``{"ok": bool, "version": str}``."""
        pass

    @abstractmethod
    async def start(self, options: StreamOptions):
        pass

    @abstractmethod
    async def stop(self):
        pass

    def add_listener(self, callback: FrameListener) -> Callable[[], None]:
        """Subscribe to frames. Returns an unsubscribe function."""
        return _subscribe(self._listeners, callback)

    def add_error_listener(self, callback: ErrorListener) -> Callable[[], None]:
        """Subscribe to source faults. Returns an unsubscribe function."""
        return _subscribe(self._error_listeners, callback)

    def _dispatch(self, frame: LandmarkFrame):
        for callback in list(self._listeners):
            callback(frame)

    def _dispatch_error(self, error: StreamFaultError):
        logger.warning(f"Stream fault: {error}")
        for callback in list(self._error_listeners):
            callback(error)


def _subscribe(listeners: List, callback) -> Callable[[], None]:
    listeners.append(callback)

    def unsubscribe():
        if callback in listeners:
            listeners.remove(callback)

    return unsubscribe


class MockPoseStream(PoseStreamSource):
    """In-process source that emits whatever frames it is handed."""

    VERSION = "mock-1.0"

    def __init__(self):
        super().__init__()
        self.options: Optional[StreamOptions] = None
        self._running = False
        self._counter = 0

    @property
    def running(self) -> bool:
        return self._running

    async def ping(self) -> Dict[str, Any]:
        return {"ok": True, "version": self.VERSION}

    async def start(self, options: StreamOptions):
        options.validate()
        self.options = options
        self._counter = 0
        self._running = True
        logger.debug(f"Mock stream started (model={options.model})")

    async def stop(self):
        self._running = False

    def emit(self, frame: LandmarkFrame) -> bool:
        """
        Deliver one frame to the listeners.

        Returns:
            True if the frame was delivered, False if the source is stopped
            or the frame was skipped by ``emit_every_nth_frame``
        """
        if not self._running:
            return False

        self._counter += 1
        nth = self.options.emit_every_nth_frame if self.options else 1
        if (self._counter - 1) % nth != 0:
            return False

        self._dispatch(frame)
        return True

    def fail(self, error: Exception):
        """Report an upstream failure on the error channel."""
        if not isinstance(error, StreamFaultError):
            fault = StreamFaultError(str(error))
            fault.__cause__ = error
            error = fault
        self._dispatch_error(error)

    async def play(self, frames: Iterable[LandmarkFrame], realtime: bool = False) -> int:
        """
        Emit a sequence of frames, yielding to the loop between frames.

        Args:
            frames: Frames to emit in order
            realtime: Sleep according to frame timestamps

        Returns:
            Number of frames delivered
        """
        delivered = 0
        prev_ts: Optional[float] = None

        for frame in frames:
            if not self._running:
                break
            if realtime and prev_ts is not None:
                await asyncio.sleep(max(0.0, (frame.timestamp - prev_ts) / 1000.0))
            else:
                await asyncio.sleep(0)
            prev_ts = frame.timestamp

            if self.emit(frame):
                delivered += 1

        return delivered


# Image-space (x, y) of a person standing facing the camera
_REST_POINTS = {
    0: (0.50, 0.15),
    1: (0.49, 0.13), 2: (0.48, 0.13), 3: (0.47, 0.13),
    4: (0.51, 0.13), 5: (0.52, 0.13), 6: (0.53, 0.13),
    7: (0.46, 0.14), 8: (0.54, 0.14),
    9: (0.49, 0.18), 10: (0.51, 0.18),
    11: (0.42, 0.30), 12: (0.58, 0.30),
    13: (0.38, 0.45), 14: (0.62, 0.45),
    15: (0.36, 0.58), 16: (0.64, 0.58),
    17: (0.35, 0.61), 18: (0.65, 0.61),
    19: (0.36, 0.62), 20: (0.64, 0.62),
    21: (0.37, 0.60), 22: (0.63, 0.60),
    23: (0.45, 0.60), 24: (0.55, 0.60),
    25: (0.45, 0.78), 26: (0.55, 0.78),
    27: (0.45, 0.95), 28: (0.55, 0.95),
    29: (0.44, 0.97), 30: (0.56, 0.97),
    31: (0.46, 0.98), 32: (0.54, 0.98),
}

# Forearm and hand landmarks that swing in the synthetic animation
_SWING = (13, 14, 15, 16, 17, 18, 19, 20, 21, 22)


def synthetic_frames(
    count: int,
    fps: float = 30.0,
    start_ts: float = 0.0,
    noise: float = 0.002,
    confidence: float = 0.9,
    seed: Optional[int] = None,
) -> List[LandmarkFrame]:
    """
    Generate a waving-arms animation with measurement noise.

    Args:
        count: Number of frames
        fps: Frame rate used for the timestamps
        start_ts: Timestamp of the first frame (ms)
        noise: Standard deviation of the per-coordinate jitter
        confidence: Confidence assigned to every landmark
        seed: Random seed for reproducible jitter

    Returns:
        List of frames with MediaPipe 33-landmark buffers
    """
    rng = np.random.default_rng(seed)
    frames = []
    dt_ms = 1000.0 / fps

    for i in range(count):
        t = i / fps
        swing = 0.05 * np.sin(2 * np.pi * 0.5 * t)

        buf = np.zeros(DEFAULT_LANDMARK_COUNT * LANDMARK_STRIDE, dtype=np.float32)
        for idx, (x, y) in _REST_POINTS.items():
            if idx in _SWING:
                y -= swing
            o = idx * LANDMARK_STRIDE
            buf[o] = x + rng.normal(0.0, noise)
            buf[o + 1] = y + rng.normal(0.0, noise)
            buf[o + 2] = rng.normal(0.0, noise)
            buf[o + 3] = confidence

        frames.append(LandmarkFrame(timestamp=start_ts + i * dt_ms, landmarks=buf, frame_id=i, fps=fps))

    return frames
