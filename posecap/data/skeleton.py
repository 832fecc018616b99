"""
Skeleton rig definition and joint-pose reconstruction.

Provides:
- MediaPipe Pose landmark indices
- A hierarchical skeleton whose joints are either mapped to a landmark or
  derived from other points
- The 16-joint body rig used for BVH export
- Landmark -> rig-space transform
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Optional, Union

import numpy as np
from numpy.typing import NDArray

from posecap.core.landmarks import LANDMARK_STRIDE

# Landmark -> world scale; 100 keeps exported numbers legible (roughly cm)
DEFAULT_WORLD_SCALE = 100.0


class MP33(IntEnum):
    """MediaPipe Pose 33 landmark indices."""
    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10

    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22

    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


@dataclass(frozen=True)
class Midpoint:
    """Derived joint halfway between two landmarks."""
    a: int
    b: int


@dataclass(frozen=True)
class Interpolate:
    """Derived joint placed ``t`` of the way from one joint to another."""
    start: str
    end: str
    t: float = 0.5


Derivation = Union[Midpoint, Interpolate]


@dataclass(frozen=True)
class Joint:
    """
    Represents a single joint in the rig.

    Attributes:
        name: Joint name (unique identifier)
        parent: Parent joint name (None for root)
        landmark: Source landmark index, or None for derived joints
        derive: Rule computing a derived joint's position
    """
    name: str
    parent: Optional[str] = None
    landmark: Optional[int] = None
    derive: Optional[Derivation] = None

    @property
    def is_derived(self) -> bool:
        return self.landmark is None


class Skeleton:
    """
    Hierarchical skeleton definition.

    Joints keep their insertion order; children are listed in the order they
    were added, which fixes the depth-first traversal order.
    """

    def __init__(self, name: str = "skeleton"):
        """Initialize an empty skeleton."""
        self.name = name
        self._joints: Dict[str, Joint] = {}
        self._joint_list: List[Joint] = []
        self._children: Dict[str, List[str]] = {}
        self._root: Optional[str] = None

    def add_joint(self, joint: Joint):
        """
        Add a joint to the skeleton.

        Args:
            joint: Joint to add; its parent must already exist
        """
        if joint.name in self._joints:
            raise ValueError(f"Duplicate joint: {joint.name}")
        if joint.landmark is None and joint.derive is None:
            raise ValueError(f"Joint {joint.name} has neither a landmark nor a derivation")

        if joint.parent is None:
            if self._root is not None:
                raise ValueError(f"Skeleton already has root {self._root}")
            self._root = joint.name
        elif joint.parent not in self._joints:
            raise ValueError(f"Unknown parent {joint.parent} for {joint.name}")
        else:
            self._children[joint.parent].append(joint.name)

        self._joints[joint.name] = joint
        self._joint_list.append(joint)
        self._children[joint.name] = []

    def get_joint(self, name: str) -> Optional[Joint]:
        """Get joint by name."""
        return self._joints.get(name)

    def get_children(self, joint_name: str) -> List[str]:
        """Get child joint names."""
        return list(self._children.get(joint_name, []))

    def get_parent(self, joint_name: str) -> Optional[str]:
        """Get parent joint name."""
        joint = self._joints.get(joint_name)
        return joint.parent if joint else None

    def is_leaf(self, joint_name: str) -> bool:
        return not self._children.get(joint_name)

    def depth_first(self) -> List[str]:
        """All joint names in depth-first (pre-order) order, root first."""
        order: List[str] = []

        def visit(name: str):
            order.append(name)
            for child in self._children[name]:
                visit(child)

        if self._root is not None:
            visit(self._root)
        return order

    @property
    def joints(self) -> List[Joint]:
        """Get list of all joints."""
        return self._joint_list.copy()

    @property
    def joint_names(self) -> List[str]:
        """Get list of all joint names."""
        return [j.name for j in self._joint_list]

    @property
    def num_joints(self) -> int:
        """Get number of joints."""
        return len(self._joint_list)

    @property
    def root(self) -> Optional[str]:
        """Get root joint name."""
        return self._root


def landmark_to_world(
    buf: NDArray[np.float32],
    index: int,
    scale: float = DEFAULT_WORLD_SCALE,
) -> np.ndarray:
    """
    Map one normalized landmark into rig space.

    x is recentred, y flipped so up is positive, z negated. Missing or
    non-finite landmarks map to the origin.
    """
    o = index * LANDMARK_STRIDE
    if index < 0 or o + 3 > len(buf):
        return np.zeros(3)

    x, y, z = (float(v) for v in buf[o:o + 3])
    if not (np.isfinite(x) and np.isfinite(y) and np.isfinite(z)):
        return np.zeros(3)

    return np.array([(x - 0.5) * scale, (0.5 - y) * scale, -z * scale])


def compute_joint_pose(
    buf: NDArray[np.float32],
    skeleton: Optional[Skeleton] = None,
    scale: float = DEFAULT_WORLD_SCALE,
) -> Dict[str, np.ndarray]:
    """
    Produce rig-space joint positions for one landmark buffer.

    Args:
        buf: Flat landmark buffer
        skeleton: Rig to evaluate (defaults to BODY_RIG)
        scale: Landmark -> world scale

    Returns:
        Mapping joint name -> position (3,)
    """
    if skeleton is None:
        skeleton = BODY_RIG

    pose: Dict[str, np.ndarray] = {}
    pending: List[Joint] = []

    for joint in skeleton.joints:
        if joint.landmark is not None:
            pose[joint.name] = landmark_to_world(buf, joint.landmark, scale)
        elif isinstance(joint.derive, Midpoint):
            a = landmark_to_world(buf, joint.derive.a, scale)
            b = landmark_to_world(buf, joint.derive.b, scale)
            pose[joint.name] = (a + b) * 0.5
        else:
            pending.append(joint)

    # Interpolated joints depend on other joints, possibly other derived ones
    while pending:
        progressed = False
        for joint in list(pending):
            rule = joint.derive
            if rule.start in pose and rule.end in pose:
                start = pose[rule.start]
                pose[joint.name] = start + (pose[rule.end] - start) * rule.t
                pending.remove(joint)
                progressed = True
        if not progressed:
            names = ", ".join(j.name for j in pending)
            raise ValueError(f"Unresolvable joint derivations: {names}")

    return pose


def create_body_rig() -> Skeleton:
    """Create the 16-joint body rig used for export."""
    rig = Skeleton("body16")

    joints = [
        Joint("Hips", None, derive=Midpoint(MP33.LEFT_HIP, MP33.RIGHT_HIP)),
        Joint("Spine", "Hips", derive=Interpolate("Hips", "Neck", 0.5)),
        Joint("Neck", "Spine", derive=Midpoint(MP33.LEFT_SHOULDER, MP33.RIGHT_SHOULDER)),
        Joint("Head", "Neck", MP33.NOSE),

        # Left arm
        Joint("LeftShoulder", "Neck", MP33.LEFT_SHOULDER),
        Joint("LeftElbow", "LeftShoulder", MP33.LEFT_ELBOW),
        Joint("LeftWrist", "LeftElbow", MP33.LEFT_WRIST),

        # Right arm
        Joint("RightShoulder", "Neck", MP33.RIGHT_SHOULDER),
        Joint("RightElbow", "RightShoulder", MP33.RIGHT_ELBOW),
        Joint("RightWrist", "RightElbow", MP33.RIGHT_WRIST),

        # Left leg
        Joint("LeftHip", "Hips", MP33.LEFT_HIP),
        Joint("LeftKnee", "LeftHip", MP33.LEFT_KNEE),
        Joint("LeftAnkle", "LeftKnee", MP33.LEFT_ANKLE),

        # Right leg
        Joint("RightHip", "Hips", MP33.RIGHT_HIP),
        Joint("RightKnee", "RightHip", MP33.RIGHT_KNEE),
        Joint("RightAnkle", "RightKnee", MP33.RIGHT_ANKLE),
    ]

    for joint in joints:
        rig.add_joint(joint)

    return rig


# Pre-built rig instance
BODY_RIG = create_body_rig()
