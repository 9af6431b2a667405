"""Quaternion operations used to compose axis-angle rotations."""

import numpy as np


def quat_from_angle_axis(angle_axis: np.ndarray) -> np.ndarray:
    """Create quaternion from an axis-angle vector.

    Args:
        angle_axis: 3-element vector, direction is the axis, norm the angle

    Returns:
        Unit quaternion [w, x, y, z]
    """
    angle_axis = np.asarray(angle_axis, dtype=float)
    if angle_axis.shape != (3,):
        raise ValueError(f"Axis-angle must be 3-element vector, got shape {angle_axis.shape}")

    theta_squared = np.dot(angle_axis, angle_axis)
    if theta_squared > 0.0:
        theta = np.sqrt(theta_squared)
        half_theta = theta * 0.5
        k = np.sin(half_theta) / theta
        w = np.cos(half_theta)
    else:
        # First order expansion around zero
        k = 0.5
        w = 1.0

    return np.array([w, angle_axis[0] * k, angle_axis[1] * k, angle_axis[2] * k])


def quat_to_angle_axis(q: np.ndarray) -> np.ndarray:
    """Convert unit quaternion [w, x, y, z] to an axis-angle vector.

    The returned angle lies in [0, pi]; quaternions with negative scalar
    part are mapped to the equivalent shorter rotation.
    """
    q = np.asarray(q, dtype=float)
    if q.shape != (4,):
        raise ValueError(f"Quaternion must be 4-element vector, got shape {q.shape}")

    sin_squared_theta = q[1] * q[1] + q[2] * q[2] + q[3] * q[3]
    if sin_squared_theta > 0.0:
        sin_theta = np.sqrt(sin_squared_theta)
        cos_theta = q[0]
        if cos_theta < 0.0:
            two_theta = 2.0 * np.arctan2(-sin_theta, -cos_theta)
        else:
            two_theta = 2.0 * np.arctan2(sin_theta, cos_theta)
        k = two_theta / sin_theta
    else:
        k = 2.0

    return q[1:] * k


def quat_multiply(q1: np.ndarray, q2: np.ndarray) -> np.ndarray:
    """Multiply two quaternions (Hamilton product q1 * q2)."""
    q1 = np.asarray(q1, dtype=float)
    q2 = np.asarray(q2, dtype=float)
    if q1.shape != (4,) or q2.shape != (4,):
        raise ValueError("Both quaternions must be 4-element vectors")

    w1, x1, y1, z1 = q1
    w2, x2, y2, z2 = q2

    return np.array([
        w1*w2 - x1*x2 - y1*y2 - z1*z2,
        w1*x2 + x1*w2 + y1*z2 - z1*y2,
        w1*y2 - x1*z2 + y1*w2 + z1*x2,
        w1*z2 + x1*y2 - y1*x2 + z1*w2
    ])
