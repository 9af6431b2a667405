"""Residual functors for position priors."""

from enum import Flag
from typing import List, Optional, Sequence

import numpy as np

from .residuals import ResidualFunctor, ResidualRegistry
from ..math.pose import (
    BIAS_BLOCK_SIZE,
    POSE_BLOCK_SIZE,
    BiasCorrection,
    BiasParameter,
    PoseParameter,
    ShotPose,
    ShotPoseFunctor,
)
from ..math.rotation import rotate_point, rotate_point_jacobian


class PositionConstraintType(Flag):
    """Axes of a position prior that contribute to the residual."""

    X = 1
    Y = 2
    Z = 4
    XY = X | Y
    XYZ = X | Y | Z

    @classmethod
    def from_mask(cls, mask_xyz: Sequence[bool]) -> "PositionConstraintType":
        """Build the flag from a boolean [x, y, z] mask."""
        if len(mask_xyz) != 3:
            raise ValueError("mask_xyz must have exactly 3 elements")
        result = cls(0)
        for enabled, axis in zip(mask_xyz, (cls.X, cls.Y, cls.Z)):
            if enabled:
                result |= axis
        return result

    @property
    def mask(self) -> np.ndarray:
        """Boolean [x, y, z] mask of the enabled axes."""
        axes = (PositionConstraintType.X, PositionConstraintType.Y, PositionConstraintType.Z)
        return np.array([axis in self for axis in axes])


@ResidualRegistry.register("absolute_position")
class AbsolutePositionError(ResidualFunctor):
    """Prior on the optical center of a shot.

    The residual is ``prior - position`` per axis. Its uncertainty is either
    fixed (horizontal for X/Y, vertical for Z) or a single standard deviation
    optimized alongside the pose, read from the block that follows the pose
    blocks. Axes missing from ``constraint_type`` are zeroed, so the residual
    always has three components.
    """

    def __init__(
        self,
        position_prior: Sequence[float],
        std_deviation_horizontal: float = 1.0,
        std_deviation_vertical: float = 1.0,
        has_std_deviation_param: bool = False,
        constraint_type: PositionConstraintType = PositionConstraintType.XYZ,
        pose_functor: Optional[ShotPoseFunctor] = None,
    ):
        """Initialize absolute position residual.

        Args:
            position_prior: Prior optical center [x, y, z]
            std_deviation_horizontal: Standard deviation on X and Y
            std_deviation_vertical: Standard deviation on Z
            has_std_deviation_param: Read the standard deviation from an
                extra 1-value parameter block instead of the fixed values
            constraint_type: Axes that contribute to the residual
            pose_functor: Pose extraction (plain shot or rig)
        """
        self.position_prior = np.asarray(position_prior, dtype=float)
        self.scale_xy = 1.0 / std_deviation_horizontal
        self.scale_z = 1.0 / std_deviation_vertical
        self.has_std_deviation_param = has_std_deviation_param
        self.constraint_type = constraint_type
        self.pose_functor = pose_functor or ShotPoseFunctor()
        self._mask = constraint_type.mask

    @property
    def std_deviation_index(self) -> int:
        """Index of the standard deviation block, if any."""
        return self.pose_functor.num_blocks

    def _scales(self, blocks: Sequence[np.ndarray]) -> np.ndarray:
        if self.has_std_deviation_param:
            return np.full(3, 1.0 / blocks[self.std_deviation_index][0])
        return np.array([self.scale_xy, self.scale_xy, self.scale_z])

    def compute_residual(self, blocks: Sequence[np.ndarray]) -> np.ndarray:
        """Compute position residual."""
        residual = self.position_prior - self.pose_functor.position(blocks)
        if self.has_std_deviation_param:
            residual = residual / blocks[self.std_deviation_index][0]
        else:
            residual = residual * np.array([self.scale_xy, self.scale_xy, self.scale_z])

        return np.where(self._mask, residual, 0.0)

    def compute_jacobian(self, blocks: Sequence[np.ndarray]) -> List[np.ndarray]:
        scales = np.where(self._mask, self._scales(blocks), 0.0)
        jacobians = [-scales[:, None] * J for J in self.pose_functor.position_jacobians(blocks)]

        if self.has_std_deviation_param:
            sigma = blocks[self.std_deviation_index][0]
            diff = self.position_prior - self.pose_functor.position(blocks)
            J_std = np.where(self._mask, -diff / sigma**2, 0.0).reshape(3, 1)
            jacobians.append(J_std)

        return jacobians

    def residual_dimension(self) -> int:
        return 3

    def parameter_block_sizes(self) -> List[int]:
        sizes = [POSE_BLOCK_SIZE] * self.pose_functor.num_blocks
        if self.has_std_deviation_param:
            sizes.append(1)
        return sizes


@ResidualRegistry.register("bias_position")
class PositionPriorError(ResidualFunctor):
    """Position prior compared through a bias correction.

    The prior is mapped through the bias similarity transform
    (``scale * R * prior + t``) before being compared to the shot's optical
    center. Blocks: shot pose, then bias.
    """

    def __init__(
        self,
        position_prior: Sequence[float],
        std_deviation: float,
    ):
        self.position_prior = np.asarray(position_prior, dtype=float)
        self.scale = 1.0 / std_deviation

    def compute_residual(self, blocks: Sequence[np.ndarray]) -> np.ndarray:
        optical_center = ShotPose.from_block(blocks[0]).translation
        bias = BiasCorrection.from_block(blocks[1])
        return self.scale * (optical_center - bias.apply(self.position_prior))

    def compute_jacobian(self, blocks: Sequence[np.ndarray]) -> List[np.ndarray]:
        bias = BiasCorrection.from_block(blocks[1])

        J_pose = np.zeros((3, POSE_BLOCK_SIZE))
        J_pose[:, PoseParameter.TX:PoseParameter.TZ + 1] = self.scale * np.eye(3)

        J_bias = np.zeros((3, BIAS_BLOCK_SIZE))
        J_bias[:, BiasParameter.RX:BiasParameter.RZ + 1] = (
            -self.scale * bias.scale * rotate_point_jacobian(bias.rotation, self.position_prior)
        )
        J_bias[:, BiasParameter.TX:BiasParameter.TZ + 1] = -self.scale * np.eye(3)
        J_bias[:, BiasParameter.SCALE] = -self.scale * rotate_point(bias.rotation, self.position_prior)
        return [J_pose, J_bias]

    def residual_dimension(self) -> int:
        return 3

    def parameter_block_sizes(self) -> List[int]:
        return [POSE_BLOCK_SIZE, BIAS_BLOCK_SIZE]


@ResidualRegistry.register("unit_translation")
class UnitTranslationPriorError(ResidualFunctor):
    """Regularizer pulling the translation of a shot towards unit norm.

    The residual is ``log(|t|^2)``, zero exactly when ``|t| == 1``.
    """

    def compute_residual(self, blocks: Sequence[np.ndarray]) -> np.ndarray:
        t = ShotPose.from_block(blocks[0]).translation
        return np.array([np.log(np.dot(t, t))])

    def compute_jacobian(self, blocks: Sequence[np.ndarray]) -> List[np.ndarray]:
        t = ShotPose.from_block(blocks[0]).translation
        J = np.zeros((1, POSE_BLOCK_SIZE))
        J[0, PoseParameter.TX:PoseParameter.TZ + 1] = 2.0 * t / np.dot(t, t)
        return [J]

    def residual_dimension(self) -> int:
        return 1

    def parameter_block_sizes(self) -> List[int]:
        return [POSE_BLOCK_SIZE]


@ResidualRegistry.register("point_position")
class PointPositionPriorError(ResidualFunctor):
    """Prior on the position of a 3D point."""

    def __init__(self, position: Sequence[float], std_deviation: float):
        self.position = np.asarray(position, dtype=float)
        self.scale = 1.0 / std_deviation

    def compute_residual(self, blocks: Sequence[np.ndarray]) -> np.ndarray:
        return self.scale * (np.asarray(blocks[0], dtype=float) - self.position)

    def compute_jacobian(self, blocks: Sequence[np.ndarray]) -> List[np.ndarray]:
        return [self.scale * np.eye(3)]

    def residual_dimension(self) -> int:
        return 3

    def parameter_block_sizes(self) -> List[int]:
        return [3]
