"""
Confidence-gated smoothing of whole landmark frames.
"""

from typing import List, Optional

import numpy as np
from numpy.typing import NDArray

from posecap.core.landmarks import LANDMARK_STRIDE, as_landmark_buffer, landmark_count
from posecap.core.temporal_filter import OneEuroFilter3D


class PoseSmoother:
    """
    A bank of One Euro filters, one 3-axis filter per landmark slot.

    Landmarks whose confidence is below ``confidence_gate`` are passed
    through untouched and do not advance their filter, so a burst of
    unreliable samples cannot corrupt the derivative estimate.
    """

    def __init__(
        self,
        landmark_count: Optional[int] = None,
        min_cutoff: float = 1.0,
        beta: float = 0.007,
        d_cutoff: float = 1.0,
        confidence_gate: float = 0.5,
        freq: float = 30.0,
    ):
        """
        Initialize the smoother.

        Args:
            landmark_count: Number of landmark slots; sized from the first
                frame when omitted
            min_cutoff: Minimum cutoff frequency
            beta: Speed coefficient
            d_cutoff: Cutoff for derivative
            confidence_gate: Minimum confidence for a landmark to be filtered
            freq: Initial sampling frequency guess (Hz)
        """
        self.min_cutoff = min_cutoff
        self.beta = beta
        self.d_cutoff = d_cutoff
        self.confidence_gate = confidence_gate
        self.freq = freq

        self._filters: List[OneEuroFilter3D] = []
        if landmark_count is not None:
            self._allocate(landmark_count)

    def _allocate(self, count: int):
        self._filters = [
            OneEuroFilter3D(
                freq=self.freq,
                min_cutoff=self.min_cutoff,
                beta=self.beta,
                d_cutoff=self.d_cutoff,
            )
            for _ in range(count)
        ]

    @property
    def num_landmarks(self) -> int:
        return len(self._filters)

    def filter(self, landmarks: NDArray[np.float32], timestamp_ms: float) -> NDArray[np.float32]:
        """
        Smooth one frame of landmarks.

        Args:
            landmarks: Flat landmark buffer
            timestamp_ms: Frame time in milliseconds

        Returns:
            New buffer with the same layout; the input is never modified
        """
        raw = as_landmark_buffer(landmarks)
        out = raw.copy()

        if not self._filters:
            self._allocate(landmark_count(raw))

        n = min(landmark_count(raw), len(self._filters))
        for i in range(n):
            o = i * LANDMARK_STRIDE
            c = float(raw[o + 3])

            if not c >= self.confidence_gate:
                continue

            x, y, z = self._filters[i].filter(
                float(raw[o]), float(raw[o + 1]), float(raw[o + 2]), timestamp_ms
            )
            out[o] = x
            out[o + 1] = y
            out[o + 2] = z
            out[o + 3] = c

        return out

    def reset(self):
        """Reset all filters, keeping the current size."""
        for landmark_filter in self._filters:
            landmark_filter.reset()
