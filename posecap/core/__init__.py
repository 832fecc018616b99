"""
Core capture processing module.

Contains the live pipeline:
- Landmark frame model
- One Euro temporal filtering and per-pose smoothing
- Chunked take recording
- Stream sources and the capture pipeline
"""

from posecap.core.landmarks import LandmarkFrame, landmarks_from_points
from posecap.core.temporal_filter import TemporalFilter, OneEuroFilter1D, OneEuroFilter3D
from posecap.core.pose_smoother import PoseSmoother
from posecap.core.recorder import Recorder, RecorderState, RecorderStatus
from posecap.core.stream import MockPoseStream, PoseStreamSource, StreamOptions
from posecap.core.capture import CapturePipeline, CaptureState, CaptureStatus

__all__ = [
    "LandmarkFrame",
    "landmarks_from_points",
    "TemporalFilter",
    "OneEuroFilter1D",
    "OneEuroFilter3D",
    "PoseSmoother",
    "Recorder",
    "RecorderState",
    "RecorderStatus",
    "MockPoseStream",
    "PoseStreamSource",
    "StreamOptions",
    "CapturePipeline",
    "CaptureState",
    "CaptureStatus",
]
