"""Residual functors for orientation priors (up vector, pan, tilt, roll)."""

from abc import abstractmethod
from typing import List, Optional, Sequence

import numpy as np

from .residuals import ResidualFunctor, ResidualRegistry
from ..math.angles import diff_between_angles
from ..math.pose import POSE_BLOCK_SIZE, ShotPoseFunctor
from ..math.rotation import rotate_point

X_AXIS = np.array([1.0, 0.0, 0.0])
Z_AXIS = np.array([0.0, 0.0, 1.0])

PAN_DEGENERATE_EPS = 1e-8
ROLL_DEGENERATE_EPS = 1e-5

# d(ez[1], -ez[0], 0) / d(ez)
_HORIZONTAL_NORMAL = np.array([
    [0.0, 1.0, 0.0],
    [-1.0, 0.0, 0.0],
    [0.0, 0.0, 0.0]
])


@ResidualRegistry.register("up_vector")
class UpVectorError(ResidualFunctor):
    """Accelerometer prior: the measured gravity direction, rotated into the
    world frame, should match the world vertical axis."""

    def __init__(
        self,
        acceleration: Sequence[float],
        std_deviation: float,
        is_rig_shot: bool = False,
    ):
        """Initialize up vector residual.

        Args:
            acceleration: Measured acceleration in the camera frame (any norm)
            std_deviation: Standard deviation of the normalized direction
            is_rig_shot: Read an instance block and a rig camera block
        """
        acceleration = np.asarray(acceleration, dtype=float)
        self.acceleration = acceleration / np.linalg.norm(acceleration)
        self.scale = 1.0 / std_deviation
        self.is_rig_shot = is_rig_shot
        self.pose_functor = ShotPoseFunctor(0, 1 if is_rig_shot else None)

    def compute_residual(self, blocks: Sequence[np.ndarray]) -> np.ndarray:
        R = self.pose_functor.rotation(blocks)
        z_world = rotate_point(R, self.acceleration)
        return self.scale * (z_world - Z_AXIS)

    def compute_jacobian(self, blocks: Sequence[np.ndarray]) -> List[np.ndarray]:
        return [
            self.scale * J
            for J in self.pose_functor.rotated_axis_jacobians(blocks, self.acceleration)
        ]

    def residual_dimension(self) -> int:
        return 3

    def parameter_block_sizes(self) -> List[int]:
        return [POSE_BLOCK_SIZE] * self.pose_functor.num_blocks


class AngleError(ResidualFunctor):
    """Base class for scalar angle priors on a single shot.

    Subclasses measure the angle on the rotated camera axes and give its
    derivative with respect to the pose block. Where the angle is undefined
    the residual and the Jacobian are both zero.
    """

    def __init__(self, angle: float, std_deviation: float):
        """Initialize angle residual.

        Args:
            angle: Target angle in radians
            std_deviation: Standard deviation in radians
        """
        self.angle = angle
        self.scale = 1.0 / std_deviation
        self.pose_functor = ShotPoseFunctor()

    @abstractmethod
    def predicted_angle(self, blocks: Sequence[np.ndarray]) -> Optional[float]:
        """Angle measured on the current pose, None when undefined."""
        pass

    @abstractmethod
    def angle_jacobian(self, blocks: Sequence[np.ndarray]) -> np.ndarray:
        """Derivative of the predicted angle with respect to the pose block.

        Only called where :meth:`predicted_angle` is defined.
        """
        pass

    def rotated_axis(self, blocks: Sequence[np.ndarray], axis: np.ndarray) -> np.ndarray:
        return rotate_point(self.pose_functor.rotation(blocks), axis)

    def rotated_axis_jacobian(self, blocks: Sequence[np.ndarray], axis: np.ndarray) -> np.ndarray:
        (J,) = self.pose_functor.rotated_axis_jacobians(blocks, axis)
        return J

    def is_degenerate(self, blocks: Sequence[np.ndarray]) -> bool:
        """Whether the residual is clamped to zero at these blocks."""
        return self.predicted_angle(blocks) is None

    def compute_residual(self, blocks: Sequence[np.ndarray]) -> np.ndarray:
        predicted = self.predicted_angle(blocks)
        if predicted is None:
            return np.zeros(1)
        return np.array([self.scale * diff_between_angles(predicted, self.angle)])

    def compute_jacobian(self, blocks: Sequence[np.ndarray]) -> List[np.ndarray]:
        # The angle difference has unit slope away from its wrap point
        if self.is_degenerate(blocks):
            return [np.zeros((1, POSE_BLOCK_SIZE))]
        return [self.scale * self.angle_jacobian(blocks).reshape(1, POSE_BLOCK_SIZE)]

    def residual_dimension(self) -> int:
        return 1

    def parameter_block_sizes(self) -> List[int]:
        return [POSE_BLOCK_SIZE]


@ResidualRegistry.register("pan_angle")
class PanAngleError(AngleError):
    """Prior on the heading of the optical axis, ``atan2(x, y)`` of the
    rotated forward axis. Looking straight up or down leaves it undefined."""

    def predicted_angle(self, blocks: Sequence[np.ndarray]) -> Optional[float]:
        z_world = self.rotated_axis(blocks, Z_AXIS)
        if abs(z_world[0]) < PAN_DEGENERATE_EPS and abs(z_world[1]) < PAN_DEGENERATE_EPS:
            return None
        return np.arctan2(z_world[0], z_world[1])

    def angle_jacobian(self, blocks: Sequence[np.ndarray]) -> np.ndarray:
        z_world = self.rotated_axis(blocks, Z_AXIS)
        norm_squared = z_world[0] * z_world[0] + z_world[1] * z_world[1]
        d_pan = np.array([z_world[1], -z_world[0], 0.0]) / norm_squared
        return d_pan @ self.rotated_axis_jacobian(blocks, Z_AXIS)


@ResidualRegistry.register("tilt_angle")
class TiltAngleError(AngleError):
    """Prior on the elevation of the optical axis."""

    def predicted_angle(self, blocks: Sequence[np.ndarray]) -> Optional[float]:
        ez = self.rotated_axis(blocks, Z_AXIS)
        l = np.sqrt(ez[0] * ez[0] + ez[1] * ez[1])
        return -np.arctan2(ez[2], l)

    def angle_jacobian(self, blocks: Sequence[np.ndarray]) -> np.ndarray:
        """Derivative of the tilt.

        Looking exactly along the vertical the tilt is at its extremum and
        the derivative has no direction, so it is zero there.
        """
        ez = self.rotated_axis(blocks, Z_AXIS)
        l = np.sqrt(ez[0] * ez[0] + ez[1] * ez[1])
        if l == 0.0:
            return np.zeros(POSE_BLOCK_SIZE)

        d_tilt = np.array([ez[2] * ez[0] / l, ez[2] * ez[1] / l, -l]) / (l * l + ez[2] * ez[2])
        return d_tilt @ self.rotated_axis_jacobian(blocks, Z_AXIS)


@ResidualRegistry.register("roll_angle")
class RollAngleError(AngleError):
    """Prior on the rotation of the camera around its optical axis."""

    def _frame(self, blocks: Sequence[np.ndarray]):
        ex = self.rotated_axis(blocks, X_AXIS)
        ez = self.rotated_axis(blocks, Z_AXIS)

        # Horizontal axis orthogonal to the optical axis
        a = np.array([ez[1], -ez[0], 0.0])
        la = np.sqrt(a[0] * a[0] + a[1] * a[1])
        return ex, ez, a, la

    def predicted_angle(self, blocks: Sequence[np.ndarray]) -> Optional[float]:
        ex, ez, a, la = self._frame(blocks)
        if la < ROLL_DEGENERATE_EPS:
            return None

        a[0] /= la
        a[1] /= la
        b = np.cross(ex, a)
        sin_roll = ez[0] * b[0] + ez[1] * b[1] + ez[2] * b[2]
        if sin_roll <= -(1.0 - ROLL_DEGENERATE_EPS):
            return None

        return np.arcsin(sin_roll)

    def angle_jacobian(self, blocks: Sequence[np.ndarray]) -> np.ndarray:
        """Derivative of ``arcsin(ez . (ex x a))`` through both rotated axes."""
        ex, ez, a, la = self._frame(blocks)
        a = a / la
        b = np.cross(ex, a)
        sin_roll = np.dot(ez, b)

        # a = n / |n| with n linear in ez
        J_a = (np.eye(3) - np.outer(a, a)) @ _HORIZONTAL_NORMAL / la
        d_ez = b + J_a.T @ np.cross(ez, ex)
        d_ex = np.cross(a, ez)

        d_sin = (
            d_ez @ self.rotated_axis_jacobian(blocks, Z_AXIS)
            + d_ex @ self.rotated_axis_jacobian(blocks, X_AXIS)
        )
        return d_sin / np.sqrt(1.0 - sin_roll * sin_roll)
