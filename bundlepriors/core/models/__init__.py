"""Data models for bundlepriors."""

from .entities import Bias, Heatmap, Point, RigCamera, Shot
from .priors import (
    Prior,
    PositionPrior,
    UpVectorPrior,
    OrientationPrior,
    BiasPositionPrior,
    UnitTranslationPrior,
    PointPositionPrior,
    HeatmapPrior,
)
from .scene import ProblemSettings, Scene

__all__ = [
    "Bias",
    "Heatmap",
    "Point",
    "RigCamera",
    "Shot",
    "Prior",
    "PositionPrior",
    "UpVectorPrior",
    "OrientationPrior",
    "BiasPositionPrior",
    "UnitTranslationPrior",
    "PointPositionPrior",
    "HeatmapPrior",
    "ProblemSettings",
    "Scene",
]
