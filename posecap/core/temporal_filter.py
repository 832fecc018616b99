"""
Temporal filtering for live landmark streams.

Provides the One Euro filter (adaptive low-pass) for a single scalar
channel and for 3D points.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

import numpy as np

# Timestamp deltas at or below this (seconds) keep the previous frequency
MIN_DT_S = 1e-4


def smoothing_factor(cutoff: float, freq: float) -> float:
    """Exponential smoothing coefficient for a cutoff at a sampling rate."""
    te = 1.0 / freq
    tau = 1.0 / (2 * np.pi * cutoff)
    return 1.0 / (1.0 + tau / te)


class TemporalFilter(ABC):
    """Abstract base class for scalar temporal filters."""

    @abstractmethod
    def filter(self, value: float, timestamp_ms: float) -> float:
        """
        Apply filter to a single sample.

        Args:
            value: Input sample
            timestamp_ms: Sample time in milliseconds

        Returns:
            Filtered sample
        """
        pass

    @abstractmethod
    def reset(self):
        """Reset the filter state."""
        pass

    def filter_batch(
        self,
        values: Sequence[float],
        timestamps_ms: Sequence[float],
    ) -> np.ndarray:
        """
        Apply filter to a whole sequence from a clean state.

        Args:
            values: Input samples
            timestamps_ms: Time of each sample in milliseconds

        Returns:
            Filtered samples with same length as input
        """
        self.reset()
        result = np.zeros(len(values), dtype=np.float64)

        for i, (value, ts) in enumerate(zip(values, timestamps_ms)):
            result[i] = self.filter(float(value), float(ts))

        return result


class LowPassFilter:
    """Single-pole exponential smoother that remembers its last raw input."""

    def __init__(self):
        self._raw: Optional[float] = None
        self._smoothed: Optional[float] = None

    def filter(self, value: float, alpha: float) -> float:
        if self._smoothed is None:
            self._raw = value
            self._smoothed = value
            return value

        self._smoothed = alpha * value + (1 - alpha) * self._smoothed
        self._raw = value
        return self._smoothed

    @property
    def last_raw(self) -> Optional[float]:
        return self._raw

    @property
    def last_smoothed(self) -> Optional[float]:
        return self._smoothed

    def reset(self):
        self._raw = None
        self._smoothed = None


class OneEuroFilter1D(TemporalFilter):
    """
    One Euro Filter - An adaptive low-pass filter.

    The cutoff frequency rises with the speed of the signal: slow movement is
    smoothed heavily, fast movement passes with little lag at the cost of
    more residual jitter.

    Reference:
    Casiez, G., Roussel, N., & Vogel, D. (2012).
    1€ Filter: A Simple Speed-based Low-pass Filter for Noisy Input in Interactive Systems.
    CHI '12.

    Attributes:
        freq: Working sampling frequency estimate (Hz), updated from timestamps
        min_cutoff: Minimum cutoff frequency (lower = more smoothing)
        beta: Speed coefficient (higher = less lag during fast movement)
        d_cutoff: Cutoff frequency for derivative calculation
    """

    def __init__(
        self,
        freq: float = 30.0,
        min_cutoff: float = 1.0,
        beta: float = 0.007,
        d_cutoff: float = 1.0,
    ):
        self.freq = freq
        self.min_cutoff = min_cutoff
        self.beta = beta
        self.d_cutoff = d_cutoff

        self._x = LowPassFilter()
        self._dx = LowPassFilter()
        self._last_ts: Optional[float] = None

    def set_params(
        self,
        freq: Optional[float] = None,
        min_cutoff: Optional[float] = None,
        beta: Optional[float] = None,
        d_cutoff: Optional[float] = None,
    ):
        """Update filter parameters without touching its state."""
        if freq is not None:
            self.freq = freq
        if min_cutoff is not None:
            self.min_cutoff = min_cutoff
        if beta is not None:
            self.beta = beta
        if d_cutoff is not None:
            self.d_cutoff = d_cutoff

    def filter(self, value: float, timestamp_ms: float) -> float:
        """Apply One Euro Filter to a sample."""
        if self._last_ts is not None:
            dt = (timestamp_ms - self._last_ts) / 1000.0
            if dt > MIN_DT_S:
                self.freq = 1.0 / dt
        self._last_ts = timestamp_ms

        prev = self._x.last_raw
        d_value = 0.0 if prev is None else (value - prev) * self.freq

        a_d = smoothing_factor(self.d_cutoff, self.freq)
        ed_value = self._dx.filter(d_value, a_d)

        cutoff = self.min_cutoff + self.beta * abs(ed_value)
        a = smoothing_factor(cutoff, self.freq)
        return self._x.filter(value, a)

    def reset(self):
        """Reset filter state."""
        self._x.reset()
        self._dx.reset()
        self._last_ts = None

    @property
    def initialized(self) -> bool:
        return self._last_ts is not None


class OneEuroFilter3D:
    """Three independent One Euro filters, one per axis."""

    def __init__(
        self,
        freq: float = 30.0,
        min_cutoff: float = 1.0,
        beta: float = 0.007,
        d_cutoff: float = 1.0,
    ):
        self.fx = OneEuroFilter1D(freq, min_cutoff, beta, d_cutoff)
        self.fy = OneEuroFilter1D(freq, min_cutoff, beta, d_cutoff)
        self.fz = OneEuroFilter1D(freq, min_cutoff, beta, d_cutoff)

    def filter(
        self,
        x: float,
        y: float,
        z: float,
        timestamp_ms: float,
    ) -> Tuple[float, float, float]:
        return (
            self.fx.filter(x, timestamp_ms),
            self.fy.filter(y, timestamp_ms),
            self.fz.filter(z, timestamp_ms),
        )

    def set_params(self, **params):
        for axis_filter in (self.fx, self.fy, self.fz):
            axis_filter.set_params(**params)

    def reset(self):
        for axis_filter in (self.fx, self.fy, self.fz):
            axis_filter.reset()
