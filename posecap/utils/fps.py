"""Sliding-window frame-rate measurement."""

import time
from collections import deque
from typing import Deque, Optional


class FPSMeter:
    """
    Frame-rate meter over a fixed time window.

    Call ``tick()`` once per frame; ``fps`` reports the rate observed over
    the last ``window_ms`` milliseconds.
    """

    def __init__(self, window_ms: float = 1000.0):
        self.window_ms = window_ms
        self._stamps: Deque[float] = deque()

    def tick(self, timestamp_ms: Optional[float] = None) -> float:
        """Register a frame and return the current rate."""
        if timestamp_ms is None:
            timestamp_ms = time.monotonic() * 1000.0

        self._stamps.append(timestamp_ms)
        cutoff = timestamp_ms - self.window_ms
        while self._stamps and self._stamps[0] < cutoff:
            self._stamps.popleft()

        return self.fps

    @property
    def fps(self) -> float:
        if len(self._stamps) < 2:
            return 0.0
        span = self._stamps[-1] - self._stamps[0]
        if span <= 0:
            return 0.0
        return (len(self._stamps) - 1) / (span / 1000.0)

    def reset(self):
        """Forget all recorded frames."""
        self._stamps.clear()
