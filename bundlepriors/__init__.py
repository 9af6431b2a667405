"""bundlepriors - prior residuals for structure-from-motion bundle adjustment

Differentiable residual terms tying shot poses and 3D points to external
priors: GPS positions, accelerometer up vectors, pan/tilt/roll angles,
bias-corrected positions and geolocation heatmaps.
"""

__version__ = "0.1.0"

# Math primitives
from .core.math.angles import diff_between_angles
from .core.math.rotation import rotate_point
from .core.math.pose import BiasCorrection, ShotPose, ShotPoseFunctor

# Residuals
from .core.optimization.position_residuals import (
    AbsolutePositionError,
    PointPositionPriorError,
    PositionConstraintType,
    PositionPriorError,
    UnitTranslationPriorError,
)
from .core.optimization.orientation_residuals import (
    PanAngleError,
    RollAngleError,
    TiltAngleError,
    UpVectorError,
)
from .core.optimization.heatmap import (
    BiCubicInterpolator,
    Grid2D,
    HeatmapCostFunctor,
    HeatmapdCostFunctor,
)
from .core.optimization.cost_function import CostFunction

# Problem construction
from .core.models.scene import Scene
from .core.optimization.problem import PriorProblem

__all__ = [
    # Version
    "__version__",
    # Math
    "diff_between_angles",
    "rotate_point",
    "BiasCorrection",
    "ShotPose",
    "ShotPoseFunctor",
    # Residuals
    "AbsolutePositionError",
    "PointPositionPriorError",
    "PositionConstraintType",
    "PositionPriorError",
    "UnitTranslationPriorError",
    "PanAngleError",
    "RollAngleError",
    "TiltAngleError",
    "UpVectorError",
    "BiCubicInterpolator",
    "Grid2D",
    "HeatmapCostFunctor",
    "HeatmapdCostFunctor",
    "CostFunction",
    # Problem construction
    "Scene",
    "PriorProblem",
]
