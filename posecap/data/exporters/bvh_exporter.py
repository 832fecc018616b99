"""
BVH (Biovision Hierarchy) format writer.

Turns a sequence of landmark frames into a BVH animation for the body rig.
The first frame is used as the rest pose; every joint's rotation is the
shortest-arc quaternion carrying its rest bone direction onto the current
one, written as Euler angles in the channel order below.
"""

import logging
import math
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import numpy as np

from posecap.core.landmarks import LandmarkFrame
from posecap.data.skeleton import BODY_RIG, DEFAULT_WORLD_SCALE, Skeleton, compute_joint_pose
from posecap.errors import EmptyExportError
from posecap.utils.math_utils import (
    AXIS_INDEX,
    IDENTITY_QUATERNION,
    quaternion_from_to,
    quaternion_to_euler,
)

logger = logging.getLogger(__name__)

# Rotation channel order, shared by the CHANNELS lines and the Euler decomposition
ROTATION_CHANNELS = ("Z", "X", "Y")
ROTATION_ORDER = "".join(ROTATION_CHANNELS)

POSITION_CHANNELS = ("X", "Y", "Z")

DEFAULT_FPS = 30.0

# Bones shorter than this have no usable direction
MIN_BONE_LENGTH = 1e-6


def format_value(v: float) -> str:
    """Fixed 6-decimal formatting; tiny and non-finite values become 0."""
    v = float(v)
    if not math.isfinite(v) or abs(v) < 1e-8:
        v = 0.0
    return f"{v:.6f}"


def estimate_fps(frames: Sequence[LandmarkFrame]) -> Optional[float]:
    """Frame rate implied by the timestamps, or None if it cannot be told."""
    if len(frames) < 2:
        return None
    span_ms = frames[-1].timestamp - frames[0].timestamp
    if not span_ms > 0:
        return None
    return (len(frames) - 1) / (span_ms / 1000.0)


class BVHWriter:
    """
    Writes landmark frames as BVH text.

    BVH output consists of:
    1. HIERARCHY section - rig with offsets measured on the rest pose
    2. MOTION section - root translation and per-joint rotations
    """

    def __init__(self, skeleton: Optional[Skeleton] = None, scale: float = DEFAULT_WORLD_SCALE):
        """
        Initialize BVH writer.

        Args:
            skeleton: Rig to animate (defaults to BODY_RIG)
            scale: Landmark -> world scale factor
        """
        self.skeleton = skeleton if skeleton is not None else BODY_RIG
        self.scale = scale

    def write(self, frames: Sequence[LandmarkFrame], fps: Optional[float] = None) -> str:
        """
        Build the BVH document.

        Args:
            frames: Frames in capture order; frame 0 is the rest pose
            fps: Output frame rate; estimated from timestamps when omitted

        Returns:
            BVH text
        """
        if not frames:
            raise EmptyExportError("Cannot write BVH for a take without frames")

        if fps is None or not math.isfinite(fps) or fps <= 0:
            fps = estimate_fps(frames) or DEFAULT_FPS

        poses = [compute_joint_pose(frame.landmarks, self.skeleton, self.scale) for frame in frames]
        rest = poses[0]

        lines = ["HIERARCHY"]
        order: List[str] = []
        self._write_joint(lines, self.skeleton.root, rest, 0, order)

        lines.append("MOTION")
        lines.append(f"Frames: {len(poses)}")
        lines.append(f"Frame Time: {format_value(1.0 / fps)}")

        for pose in poses:
            values = self._frame_values(pose, rest, order)
            lines.append(" ".join(format_value(v) for v in values))

        logger.debug(f"Wrote BVH: {len(poses)} frames, {len(order)} joints at {fps:.2f} fps")
        return "\n".join(lines) + "\n"

    def export(
        self,
        frames: Sequence[LandmarkFrame],
        output_path: Path,
        fps: Optional[float] = None,
    ) -> Path:
        """Write the BVH document to a file."""
        text = self.write(frames, fps)

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(text, encoding="utf-8")

        return output_path

    def _write_joint(
        self,
        lines: List[str],
        name: str,
        rest: Dict[str, np.ndarray],
        depth: int,
        order: List[str],
    ):
        """Write hierarchy section recursively, recording the channel order."""
        indent = "  " * depth
        parent = self.skeleton.get_parent(name)
        order.append(name)

        if parent is None:
            lines.append(f"{indent}ROOT {name}")
            offset = np.zeros(3)
            channels = [f"{a}position" for a in POSITION_CHANNELS]
        else:
            lines.append(f"{indent}JOINT {name}")
            offset = rest[name] - rest[parent]
            channels = []
        channels += [f"{a}rotation" for a in ROTATION_CHANNELS]

        lines.append(f"{indent}{{")
        lines.append(f"{indent}  OFFSET {' '.join(format_value(v) for v in offset)}")
        lines.append(f"{indent}  CHANNELS {len(channels)} {' '.join(channels)}")

        children = self.skeleton.get_children(name)
        for child in children:
            self._write_joint(lines, child, rest, depth + 1, order)

        if not children:
            lines.append(f"{indent}  End Site")
            lines.append(f"{indent}  {{")
            lines.append(f"{indent}    OFFSET {' '.join(format_value(0) for _ in range(3))}")
            lines.append(f"{indent}  }}")

        lines.append(f"{indent}}}")

    def _bone_rotation(self, name: str, pose: Dict[str, np.ndarray], rest: Dict[str, np.ndarray]) -> np.ndarray:
        children = self.skeleton.get_children(name)
        if not children:
            return IDENTITY_QUATERNION

        child = children[0]
        rest_bone = rest[child] - rest[name]
        bone = pose[child] - pose[name]
        if np.linalg.norm(rest_bone) < MIN_BONE_LENGTH or np.linalg.norm(bone) < MIN_BONE_LENGTH:
            return IDENTITY_QUATERNION

        return quaternion_from_to(rest_bone, bone)

    def _frame_values(
        self,
        pose: Dict[str, np.ndarray],
        rest: Dict[str, np.ndarray],
        order: List[str],
    ) -> List[float]:
        """Calculate motion data for a single frame."""
        root = order[0]
        values = list(pose[root] - rest[root])

        for name in order:
            euler = quaternion_to_euler(self._bone_rotation(name, pose, rest), ROTATION_ORDER)
            values.extend(euler[AXIS_INDEX[a]] for a in ROTATION_CHANNELS)

        return values
