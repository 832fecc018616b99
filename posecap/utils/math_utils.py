"""
Mathematical utilities for skeleton export.

Provides functions for:
- Vector normalization
- Quaternion construction and conversion ([w, x, y, z] layout)
- Euler angle extraction in BVH channel order
"""

import numpy as np

IDENTITY_QUATERNION = np.array([1.0, 0.0, 0.0, 0.0])

# Index of each axis inside an [x, y, z] Euler triple
AXIS_INDEX = {"X": 0, "Y": 1, "Z": 2}


def normalize_vector(v: np.ndarray, eps: float = 1e-9) -> np.ndarray:
    """
    Normalize a vector to unit length.

    Args:
        v: Input vector
        eps: Norms below this are treated as zero

    Returns:
        Normalized vector (or zero vector if input is zero)
    """
    v = np.asarray(v, dtype=np.float64)
    norm = np.linalg.norm(v)
    if norm < eps:
        return np.zeros_like(v)
    return v / norm


def quaternion_normalize(q: np.ndarray) -> np.ndarray:
    """Normalize a quaternion; degenerate input yields the identity."""
    q = np.asarray(q, dtype=np.float64)
    norm = np.linalg.norm(q)
    if norm < 1e-12 or not np.isfinite(norm):
        return IDENTITY_QUATERNION.copy()
    return q / norm


def quaternion_from_to(v_from: np.ndarray, v_to: np.ndarray) -> np.ndarray:
    """
    Shortest-arc rotation carrying one direction onto another.

    Args:
        v_from: Source direction (any length)
        v_to: Target direction (any length)

    Returns:
        Unit quaternion [w, x, y, z]
    """
    v0 = normalize_vector(v_from)
    v1 = normalize_vector(v_to)

    d = float(np.clip(np.dot(v0, v1), -1.0, 1.0))

    if d < -0.999999:
        # Opposite directions: any axis orthogonal to v0 gives a 180 degree turn
        if abs(v0[0]) < 0.1:
            axis = np.cross(v0, np.array([1.0, 0.0, 0.0]))
        else:
            axis = np.cross(v0, np.array([0.0, 1.0, 0.0]))
        axis = normalize_vector(axis)
        return quaternion_normalize(np.array([0.0, axis[0], axis[1], axis[2]]))

    c = np.cross(v0, v1)
    return quaternion_normalize(np.array([1.0 + d, c[0], c[1], c[2]]))


def quaternion_to_rotation_matrix(q: np.ndarray) -> np.ndarray:
    """
    Convert quaternion to a 3x3 rotation matrix.

    Args:
        q: Quaternion [w, x, y, z]

    Returns:
        3x3 rotation matrix
    """
    w, x, y, z = quaternion_normalize(q)

    return np.array([
        [1 - 2*(y*y + z*z), 2*(x*y - w*z), 2*(x*z + w*y)],
        [2*(x*y + w*z), 1 - 2*(x*x + z*z), 2*(y*z - w*x)],
        [2*(x*z - w*y), 2*(y*z + w*x), 1 - 2*(x*x + y*y)]
    ])


def rotation_matrix_to_euler(R: np.ndarray, order: str = "ZXY") -> np.ndarray:
    """
    Convert rotation matrix to Euler angles.

    For ``ZXY`` the matrix is interpreted as R = Rz · Rx · Ry, which is how
    BVH players compose a ``Zrotation Xrotation Yrotation`` channel list.

    Args:
        R: 3x3 rotation matrix
        order: Euler angle order

    Returns:
        Euler angles in degrees [x, y, z]
    """
    if order != "ZXY":
        raise ValueError(f"Unsupported rotation order: {order}")

    x = np.arcsin(np.clip(R[2, 1], -1.0, 1.0))
    z = np.arctan2(-R[0, 1], R[1, 1])
    y = np.arctan2(-R[2, 0], R[2, 2])

    return np.degrees(np.array([x, y, z]))


def quaternion_to_euler(q: np.ndarray, order: str = "ZXY") -> np.ndarray:
    """
    Convert quaternion to Euler angles.

    Args:
        q: Quaternion [w, x, y, z]
        order: Euler angle order

    Returns:
        Euler angles in degrees [x, y, z]
    """
    return rotation_matrix_to_euler(quaternion_to_rotation_matrix(q), order)
