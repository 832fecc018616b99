import numpy as np
import pytest

from posecap.utils.math_utils import (
    IDENTITY_QUATERNION,
    normalize_vector,
    quaternion_from_to,
    quaternion_normalize,
    quaternion_to_euler,
    quaternion_to_rotation_matrix,
    rotation_matrix_to_euler,
)


def rotated(q, v):
    return quaternion_to_rotation_matrix(q) @ np.asarray(v, dtype=np.float64)


def test_normalize_vector():
    assert normalize_vector(np.array([3.0, 0.0, 4.0])) == pytest.approx([0.6, 0.0, 0.8])
    assert np.all(normalize_vector(np.zeros(3)) == 0.0)


def test_degenerate_quaternion_normalizes_to_identity():
    assert np.array_equal(quaternion_normalize(np.zeros(4)), IDENTITY_QUATERNION)
    assert np.array_equal(quaternion_normalize(np.array([np.nan, 0, 0, 0])), IDENTITY_QUATERNION)


def test_from_to_same_direction_is_identity():
    q = quaternion_from_to(np.array([0.0, 2.0, 0.0]), np.array([0.0, 5.0, 0.0]))
    assert q == pytest.approx(IDENTITY_QUATERNION)


def test_from_to_maps_direction():
    a = np.array([1.0, 2.0, -0.5])
    b = np.array([-0.3, 0.1, 2.0])
    q = quaternion_from_to(a, b)
    assert np.linalg.norm(q) == pytest.approx(1.0)
    assert rotated(q, normalize_vector(a)) == pytest.approx(normalize_vector(b))


@pytest.mark.parametrize("v", [
    np.array([0.0, -1.0, 0.0]),
    np.array([1.0, 0.0, 0.0]),
    np.array([0.0, 0.0, 3.0]),
])
def test_from_to_opposite_is_half_turn(v):
    q = quaternion_from_to(v, -v)
    assert q[0] == pytest.approx(0.0)
    assert np.linalg.norm(q) == pytest.approx(1.0)
    # Axis orthogonal to v
    assert np.dot(q[1:], v) == pytest.approx(0.0)
    assert rotated(q, normalize_vector(v)) == pytest.approx(-normalize_vector(v))


def test_quarter_turn_about_z_to_euler():
    q = quaternion_from_to(np.array([0.0, -1.0, 0.0]), np.array([1.0, 0.0, 0.0]))
    x, y, z = quaternion_to_euler(q)
    assert (x, y, z) == pytest.approx((0.0, 0.0, 90.0), abs=1e-6)


def test_quarter_turn_about_y_to_euler():
    q = quaternion_from_to(np.array([0.0, 0.0, 1.0]), np.array([1.0, 0.0, 0.0]))
    x, y, z = quaternion_to_euler(q)
    assert (x, y, z) == pytest.approx((0.0, 90.0, 0.0), abs=1e-6)


def test_euler_extraction_matches_zxy_composition():
    x, y, z = np.radians([20.0, -35.0, 60.0])
    Rx = np.array([[1, 0, 0], [0, np.cos(x), -np.sin(x)], [0, np.sin(x), np.cos(x)]])
    Ry = np.array([[np.cos(y), 0, np.sin(y)], [0, 1, 0], [-np.sin(y), 0, np.cos(y)]])
    Rz = np.array([[np.cos(z), -np.sin(z), 0], [np.sin(z), np.cos(z), 0], [0, 0, 1]])
    assert rotation_matrix_to_euler(Rz @ Rx @ Ry) == pytest.approx([20.0, -35.0, 60.0])


def test_rotation_matrix_is_orthonormal():
    q = quaternion_from_to(np.array([1.0, 0.3, 0]), np.array([0, 1.0, 0.2]))
    R = quaternion_to_rotation_matrix(q)
    assert R @ R.T == pytest.approx(np.eye(3))
    assert np.linalg.det(R) == pytest.approx(1.0)


def test_unsupported_order():
    with pytest.raises(ValueError):
        rotation_matrix_to_euler(np.eye(3), order="XYZ")
