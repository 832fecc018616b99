"""
Landmark buffer model.

A frame carries its landmarks as a flat float32 array laid out as
``[x, y, z, c, x, y, z, c, ...]``:
- x, y: normalized image coordinates in [0, 1]
- z: relative depth
- c: per-landmark confidence in [0, 1]
"""

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

LANDMARK_STRIDE = 4

# MediaPipe Pose emits 33 landmarks per frame
DEFAULT_LANDMARK_COUNT = 33


def as_landmark_buffer(values) -> NDArray[np.float32]:
    """Coerce any sequence of numbers into a flat float32 landmark buffer."""
    return np.asarray(values, dtype=np.float32).reshape(-1)


def landmark_count(buf: NDArray[np.float32]) -> int:
    """Number of complete landmarks in a buffer."""
    return len(buf) // LANDMARK_STRIDE


def landmark_at(buf: NDArray[np.float32], index: int) -> Tuple[float, float, float, float]:
    """Return (x, y, z, confidence) of one landmark."""
    o = index * LANDMARK_STRIDE
    return (
        float(buf[o]),
        float(buf[o + 1]),
        float(buf[o + 2]),
        float(buf[o + 3]),
    )


def landmarks_from_points(
    points: Optional[Iterable[Mapping]],
    count: int = DEFAULT_LANDMARK_COUNT,
) -> NDArray[np.float32]:
    """
    Build a fixed-size buffer from sparse landmark points.

    Each point is a mapping with an integer ``id`` and optional ``x``, ``y``,
    ``z`` and ``v`` (visibility) values. Landmarks that are not reported keep
    confidence 0 so downstream gates ignore them.

    Args:
        points: Iterable of point mappings (may be None)
        count: Number of landmark slots in the output

    Returns:
        Flat float32 buffer of length ``count * LANDMARK_STRIDE``
    """
    buf = np.zeros(count * LANDMARK_STRIDE, dtype=np.float32)
    if not points:
        return buf

    for point in points:
        idx = point.get("id")
        if not isinstance(idx, int) or isinstance(idx, bool):
            continue
        if idx < 0 or idx >= count:
            continue

        o = idx * LANDMARK_STRIDE
        buf[o] = _number(point.get("x"))
        buf[o + 1] = _number(point.get("y"))
        buf[o + 2] = _number(point.get("z"))
        buf[o + 3] = min(1.0, max(0.0, _number(point.get("v"))))

    return buf


def _number(value) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return 0.0


@dataclass
class LandmarkFrame:
    """
    One timestamped set of landmarks.

    Attributes:
        timestamp: Monotonic time in milliseconds
        landmarks: Flat float32 buffer (see module docstring)
        frame_id: Optional source frame counter
        fps: Optional frame-rate hint from the source
    """
    timestamp: float
    landmarks: NDArray[np.float32] = field(
        default_factory=lambda: np.zeros(0, dtype=np.float32)
    )
    frame_id: Optional[int] = None
    fps: Optional[float] = None

    def __post_init__(self):
        self.landmarks = as_landmark_buffer(self.landmarks)

    @property
    def num_landmarks(self) -> int:
        """Get number of landmarks."""
        return landmark_count(self.landmarks)

    def with_landmarks(self, landmarks: NDArray[np.float32]) -> "LandmarkFrame":
        """Copy of this frame carrying a different landmark buffer."""
        return LandmarkFrame(
            timestamp=self.timestamp,
            landmarks=landmarks,
            frame_id=self.frame_id,
            fps=self.fps,
        )
