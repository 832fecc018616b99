"""
Data structures and persistence for recorded takes.

Provides:
- The body rig and joint-pose reconstruction
- Take metadata
- The take repository port and an in-memory implementation
- Export to BVH and JSON (see posecap.data.exporters)
"""

from posecap.data.skeleton import BODY_RIG, MP33, Joint, Skeleton, compute_joint_pose
from posecap.data.take import Take, new_take
from posecap.data.repository import ChunkInfo, InMemoryTakeRepository, TakeRepository

__all__ = [
    "BODY_RIG",
    "MP33",
    "Joint",
    "Skeleton",
    "compute_joint_pose",
    "Take",
    "new_take",
    "ChunkInfo",
    "InMemoryTakeRepository",
    "TakeRepository",
]
