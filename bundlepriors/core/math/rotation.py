"""Axis-angle rotation primitives."""

import numpy as np

from .quaternions import quat_from_angle_axis, quat_multiply, quat_to_angle_axis

_EPSILON = np.finfo(float).eps


def rotate_point(angle_axis: np.ndarray, point: np.ndarray) -> np.ndarray:
    """Rotate a 3D point by an axis-angle rotation.

    Uses Rodrigues' formula. For rotations whose squared angle is below
    machine epsilon the first order approximation ``p + w x p`` is used,
    which stays smooth at zero.

    Args:
        angle_axis: 3-element axis-angle vector
        point: 3-element point

    Returns:
        Rotated 3-element point
    """
    angle_axis = np.asarray(angle_axis, dtype=float)
    point = np.asarray(point, dtype=float)

    theta_squared = np.dot(angle_axis, angle_axis)
    if theta_squared > _EPSILON:
        theta = np.sqrt(theta_squared)
        cos_theta = np.cos(theta)
        sin_theta = np.sin(theta)
        w = angle_axis / theta

        w_cross_pt = np.cross(w, point)
        tmp = np.dot(w, point) * (1.0 - cos_theta)
        return point * cos_theta + w_cross_pt * sin_theta + w * tmp

    return point + np.cross(angle_axis, point)


def compose_rotations(first: np.ndarray, second: np.ndarray) -> np.ndarray:
    """Compose two axis-angle rotations: apply ``second`` then ``first``.

    Returns:
        Axis-angle vector of ``first * second``
    """
    q = quat_multiply(quat_from_angle_axis(first), quat_from_angle_axis(second))
    return quat_to_angle_axis(q)


def skew_symmetric(v: np.ndarray) -> np.ndarray:
    """Create skew-symmetric matrix from 3D vector.

    Args:
        v: 3D vector

    Returns:
        3x3 matrix such that ``skew_symmetric(v) @ u == np.cross(v, u)``
    """
    v = np.asarray(v, dtype=float)
    if v.shape != (3,):
        raise ValueError(f"v must be 3-element vector, got shape {v.shape}")

    return np.array([
        [0, -v[2], v[1]],
        [v[2], 0, -v[0]],
        [-v[1], v[0], 0]
    ])


def rotation_matrix(angle_axis: np.ndarray) -> np.ndarray:
    """3x3 matrix of an axis-angle rotation."""
    return np.column_stack([rotate_point(angle_axis, e) for e in np.eye(3)])


def rotate_point_jacobian(angle_axis: np.ndarray, point: np.ndarray) -> np.ndarray:
    """Derivative of ``rotate_point(angle_axis, point)`` with respect to ``angle_axis``.

    Uses ``d(R p)/dw = -R [p]x J_r(w)`` with ``J_r`` the right Jacobian of
    SO(3). Below machine epsilon the derivative of ``p + w x p`` is returned,
    matching the branch taken by :func:`rotate_point`.

    Returns:
        3x3 matrix J[i, j] = d(R p)_i / dw_j
    """
    angle_axis = np.asarray(angle_axis, dtype=float)
    point = np.asarray(point, dtype=float)

    theta_squared = np.dot(angle_axis, angle_axis)
    if theta_squared > _EPSILON:
        theta = np.sqrt(theta_squared)
        K = skew_symmetric(angle_axis)
        J_r = (
            np.eye(3)
            - (1.0 - np.cos(theta)) / theta_squared * K
            + (theta - np.sin(theta)) / (theta_squared * theta) * (K @ K)
        )
        return -rotation_matrix(angle_axis) @ skew_symmetric(point) @ J_r

    return -skew_symmetric(point)
