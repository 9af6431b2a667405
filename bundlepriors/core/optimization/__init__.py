"""Residual functors, cost functions and the factor graph."""

from .cost_function import CostFunction
from .factor_graph import Factor, FactorGraph, Variable, VariableType
from .residuals import ResidualFunctor, ResidualRegistry
from .position_residuals import (
    AbsolutePositionError,
    PointPositionPriorError,
    PositionConstraintType,
    PositionPriorError,
    UnitTranslationPriorError,
)
from .orientation_residuals import (
    PanAngleError,
    RollAngleError,
    TiltAngleError,
    UpVectorError,
)
from .heatmap import BiCubicInterpolator, Grid2D, HeatmapCostFunctor, HeatmapdCostFunctor
from .problem import PriorProblem

__all__ = [
    "CostFunction",
    "Factor",
    "FactorGraph",
    "Variable",
    "VariableType",
    "ResidualFunctor",
    "ResidualRegistry",
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
    "PriorProblem",
]
