"""
posecap - Pose landmark capture, recording and export

Turns a live stream of body-pose landmarks into recorded takes and
animation files.

Features:
- One Euro smoothing of 33-landmark pose frames
- Chunked, exactly-once persistence of takes through a repository port
- Export to BVH (16-joint body rig, quaternion bone rotations)
- Lossless JSON take documents with import support
"""

__version__ = "1.0.0"
__license__ = "MIT"

from posecap.core.landmarks import LandmarkFrame
from posecap.core.pose_smoother import PoseSmoother
from posecap.core.recorder import Recorder
from posecap.data.repository import InMemoryTakeRepository, TakeRepository
from posecap.data.take import Take
from posecap.data.exporters.bvh_exporter import BVHWriter
from posecap.data.exporters.take_exporter import ExportOptions, export_take

__all__ = [
    "LandmarkFrame",
    "PoseSmoother",
    "Recorder",
    "InMemoryTakeRepository",
    "TakeRepository",
    "Take",
    "BVHWriter",
    "ExportOptions",
    "export_take",
]
