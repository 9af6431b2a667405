"""Prior models validated before residuals are built.

The residual functors trust their configuration; these models are where
standard deviations, axis masks and vectors are checked.
"""

import math
from abc import ABC, abstractmethod
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


class BasePrior(BaseModel, ABC):
    """Base class for all priors."""

    @abstractmethod
    def prior_type(self) -> str:
        """Get residual type string."""
        pass


class PositionPrior(BasePrior):
    """Measured optical center of a shot (e.g. GPS)."""

    type: Literal["position"] = "position"
    shot_id: str = Field(description="Shot ID")
    position: List[float] = Field(
        description="Measured position [x, y, z]",
        min_length=3,
        max_length=3
    )
    std_deviation_horizontal: float = Field(default=1.0, gt=0, description="X/Y standard deviation")
    std_deviation_vertical: float = Field(default=1.0, gt=0, description="Z standard deviation")
    std_deviation_param: Optional[float] = Field(
        default=None,
        gt=0,
        description="Initial value of an optimized shared standard deviation"
    )
    mask_xyz: List[bool] = Field(
        default_factory=lambda: [True, True, True],
        description="Axes that contribute to the residual [x, y, z]",
        min_length=3,
        max_length=3
    )

    @field_validator('mask_xyz')
    @classmethod
    def validate_mask(cls, v):
        if not any(v):
            raise ValueError("At least one axis must be constrained")
        return v

    def prior_type(self) -> str:
        return "absolute_position"


class UpVectorPrior(BasePrior):
    """Accelerometer gravity direction measured in the camera frame."""

    type: Literal["up_vector"] = "up_vector"
    shot_id: str = Field(description="Shot ID")
    acceleration: List[float] = Field(min_length=3, max_length=3)
    std_deviation: float = Field(gt=0)

    @field_validator('acceleration')
    @classmethod
    def validate_acceleration(cls, v):
        if math.sqrt(sum(x * x for x in v)) < 1e-12:
            raise ValueError("Acceleration cannot be a zero vector")
        return v

    def prior_type(self) -> str:
        return "up_vector"


class OrientationPrior(BasePrior):
    """Pan, tilt or roll angle of a shot, in radians."""

    type: Literal["orientation"] = "orientation"
    shot_id: str = Field(description="Shot ID")
    kind: Literal["pan", "tilt", "roll"]
    angle: float = Field(description="Target angle in radians")
    std_deviation: float = Field(gt=0)

    def prior_type(self) -> str:
        return f"{self.kind}_angle"


class BiasPositionPrior(BasePrior):
    """Position prior compared through a bias correction."""

    type: Literal["bias_position"] = "bias_position"
    shot_id: str = Field(description="Shot ID")
    bias_id: str = Field(description="Bias ID")
    position: List[float] = Field(min_length=3, max_length=3)
    std_deviation: float = Field(gt=0)

    def prior_type(self) -> str:
        return "bias_position"


class UnitTranslationPrior(BasePrior):
    """Keeps the translation of a shot at unit norm."""

    type: Literal["unit_translation"] = "unit_translation"
    shot_id: str = Field(description="Shot ID")

    def prior_type(self) -> str:
        return "unit_translation"


class PointPositionPrior(BasePrior):
    """Known position of a 3D point."""

    type: Literal["point_position"] = "point_position"
    point_id: str = Field(description="Point ID")
    position: List[float] = Field(min_length=3, max_length=3)
    std_deviation: float = Field(gt=0)

    def prior_type(self) -> str:
        return "point_position"


class HeatmapPrior(BasePrior):
    """Geolocation likelihood of a shot given by a heatmap."""

    type: Literal["heatmap"] = "heatmap"
    shot_id: str = Field(description="Shot ID")
    heatmap_id: str = Field(description="Heatmap ID")
    std_deviation: float = Field(gt=0)

    def prior_type(self) -> str:
        return "heatmap"


Prior = Annotated[
    Union[
        PositionPrior,
        UpVectorPrior,
        OrientationPrior,
        BiasPositionPrior,
        UnitTranslationPrior,
        PointPositionPrior,
        HeatmapPrior,
    ],
    Field(discriminator="type"),
]
