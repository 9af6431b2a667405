"""Typed views of shot and bias parameter blocks.

Parameter blocks are flat arrays owned by the factor graph. The layout of a
shot block is ``[rx, ry, rz, tx, ty, tz]`` (camera-to-world axis-angle
rotation followed by the optical center); a bias block appends a scale
factor at ``BiasParameter.SCALE``.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import List, Optional, Sequence

import numpy as np

from .rotation import compose_rotations, rotate_point, rotate_point_jacobian, rotation_matrix


class PoseParameter(IntEnum):
    """Offsets inside a shot pose block."""

    RX = 0
    RY = 1
    RZ = 2
    TX = 3
    TY = 4
    TZ = 5
    NUM_PARAMS = 6


class BiasParameter(IntEnum):
    """Offsets inside a bias block."""

    RX = 0
    RY = 1
    RZ = 2
    TX = 3
    TY = 4
    TZ = 5
    SCALE = 6
    NUM_PARAMS = 7


POSE_BLOCK_SIZE = int(PoseParameter.NUM_PARAMS)
BIAS_BLOCK_SIZE = int(BiasParameter.NUM_PARAMS)

_ROTATION = slice(PoseParameter.RX, PoseParameter.RZ + 1)
_TRANSLATION = slice(PoseParameter.TX, PoseParameter.TZ + 1)


@dataclass(frozen=True)
class ShotPose:
    """Rotation and translation of a shot."""

    rotation: np.ndarray
    translation: np.ndarray

    @classmethod
    def from_block(cls, block: np.ndarray) -> "ShotPose":
        block = np.asarray(block, dtype=float)
        return cls(
            rotation=block[PoseParameter.RX:PoseParameter.RZ + 1],
            translation=block[PoseParameter.TX:PoseParameter.TZ + 1],
        )

    def to_block(self) -> np.ndarray:
        return np.concatenate([self.rotation, self.translation]).astype(float)

    def compose(self, other: "ShotPose") -> "ShotPose":
        """Pose of ``other`` expressed relative to this pose.

        Used for rigs: ``instance.compose(rig_camera)`` gives the camera pose
        in world coordinates.
        """
        return ShotPose(
            rotation=compose_rotations(self.rotation, other.rotation),
            translation=rotate_point(self.rotation, other.translation) + self.translation,
        )


@dataclass(frozen=True)
class BiasCorrection:
    """Similarity transform applied to a prior before comparison."""

    rotation: np.ndarray
    translation: np.ndarray
    scale: float

    @classmethod
    def from_block(cls, block: np.ndarray) -> "BiasCorrection":
        block = np.asarray(block, dtype=float)
        return cls(
            rotation=block[BiasParameter.RX:BiasParameter.RZ + 1],
            translation=block[BiasParameter.TX:BiasParameter.TZ + 1],
            scale=block[BiasParameter.SCALE],
        )

    def to_block(self) -> np.ndarray:
        return np.concatenate([self.rotation, self.translation, [self.scale]]).astype(float)

    def apply(self, point: np.ndarray) -> np.ndarray:
        """Map a point through ``scale * R * p + t``."""
        return self.scale * rotate_point(self.rotation, point) + self.translation


class ShotPoseFunctor:
    """Extract the effective pose of a shot from a list of parameter blocks.

    ``blocks[instance_index]`` holds the instance (or plain shot) pose. When
    ``camera_index`` is set, ``blocks[camera_index]`` holds the rig camera
    offset, which is composed with the instance pose.
    """

    def __init__(self, instance_index: int = 0, camera_index: Optional[int] = None):
        self.instance_index = instance_index
        self.camera_index = camera_index

    @property
    def is_rig(self) -> bool:
        return self.camera_index is not None

    @property
    def num_blocks(self) -> int:
        """Number of pose blocks read by this functor."""
        return 2 if self.is_rig else 1

    def pose(self, blocks: Sequence[np.ndarray]) -> ShotPose:
        instance = ShotPose.from_block(blocks[self.instance_index])
        if self.camera_index is None:
            return instance
        return instance.compose(ShotPose.from_block(blocks[self.camera_index]))

    def rotation(self, blocks: Sequence[np.ndarray]) -> np.ndarray:
        return self.pose(blocks).rotation

    def position(self, blocks: Sequence[np.ndarray]) -> np.ndarray:
        return self.pose(blocks).translation

    def rotated_axis_jacobians(self, blocks: Sequence[np.ndarray], axis: np.ndarray) -> List[np.ndarray]:
        """Derivatives of ``R * axis`` with respect to each pose block.

        ``R`` is the effective camera-to-world rotation returned by
        :meth:`rotation`.

        Returns:
            One 3x6 matrix per pose block, instance block first
        """
        instance = ShotPose.from_block(blocks[self.instance_index])
        J_instance = np.zeros((3, POSE_BLOCK_SIZE))

        if self.camera_index is None:
            J_instance[:, _ROTATION] = rotate_point_jacobian(instance.rotation, axis)
            return [J_instance]

        # R = R_instance * R_camera
        camera = ShotPose.from_block(blocks[self.camera_index])
        J_camera = np.zeros((3, POSE_BLOCK_SIZE))
        J_instance[:, _ROTATION] = rotate_point_jacobian(
            instance.rotation, rotate_point(camera.rotation, axis)
        )
        J_camera[:, _ROTATION] = rotation_matrix(instance.rotation) @ rotate_point_jacobian(
            camera.rotation, axis
        )
        return [J_instance, J_camera]

    def position_jacobians(self, blocks: Sequence[np.ndarray]) -> List[np.ndarray]:
        """Derivatives of :meth:`position` with respect to each pose block."""
        instance = ShotPose.from_block(blocks[self.instance_index])
        J_instance = np.zeros((3, POSE_BLOCK_SIZE))
        J_instance[:, _TRANSLATION] = np.eye(3)

        if self.camera_index is None:
            return [J_instance]

        # t = R_instance * t_camera + t_instance
        camera = ShotPose.from_block(blocks[self.camera_index])
        J_camera = np.zeros((3, POSE_BLOCK_SIZE))
        J_instance[:, _ROTATION] = rotate_point_jacobian(instance.rotation, camera.translation)
        J_camera[:, _TRANSLATION] = rotation_matrix(instance.rotation)
        return [J_instance, J_camera]
