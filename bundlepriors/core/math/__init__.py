"""Math primitives for bundlepriors."""

from .angles import diff_between_angles
from .rotation import (
    compose_rotations,
    rotate_point,
    rotate_point_jacobian,
    rotation_matrix,
    skew_symmetric,
)
from .quaternions import quat_from_angle_axis, quat_to_angle_axis, quat_multiply
from .pose import (
    BiasCorrection,
    BiasParameter,
    PoseParameter,
    ShotPose,
    ShotPoseFunctor,
)
from .jacobians import (
    JacobianOptions,
    block_jacobians,
    check_jacobian,
    finite_difference_jacobian,
)

__all__ = [
    "diff_between_angles",
    "rotate_point",
    "compose_rotations",
    "rotate_point_jacobian",
    "rotation_matrix",
    "skew_symmetric",
    "quat_from_angle_axis",
    "quat_to_angle_axis",
    "quat_multiply",
    "BiasCorrection",
    "BiasParameter",
    "PoseParameter",
    "ShotPose",
    "ShotPoseFunctor",
    "JacobianOptions",
    "block_jacobians",
    "check_jacobian",
    "finite_difference_jacobian",
]
