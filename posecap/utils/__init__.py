"""Utility modules for posecap."""

from posecap.utils.math_utils import (
    normalize_vector,
    quaternion_from_to,
    quaternion_normalize,
    quaternion_to_euler,
    quaternion_to_rotation_matrix,
    rotation_matrix_to_euler,
)
from posecap.utils.fps import FPSMeter

__all__ = [
    "normalize_vector",
    "quaternion_from_to",
    "quaternion_normalize",
    "quaternion_to_euler",
    "quaternion_to_rotation_matrix",
    "rotation_matrix_to_euler",
    "FPSMeter",
]
