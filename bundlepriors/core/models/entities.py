"""Core entities: Shot, RigCamera, Point, Bias, Heatmap."""

from typing import List, Optional

import numpy as np
from pydantic import BaseModel, Field, field_validator


class Shot(BaseModel):
    """Camera capture with a camera-to-world pose.

    For rig shots the pose is the rig instance pose and ``rig_camera_id``
    names the per-camera offset composed on top of it.
    """

    id: str = Field(description="Unique identifier for the shot")
    rotation: List[float] = Field(
        default_factory=lambda: [0.0, 0.0, 0.0],
        description="Camera-to-world rotation as axis-angle [rx, ry, rz]",
        min_length=3,
        max_length=3
    )
    translation: List[float] = Field(
        default_factory=lambda: [0.0, 0.0, 0.0],
        description="Optical center [x, y, z]",
        min_length=3,
        max_length=3
    )
    rig_camera_id: Optional[str] = Field(default=None, description="Rig camera offset ID")
    is_constant: bool = Field(default=False, description="Keep the pose fixed")

    def is_rig_shot(self) -> bool:
        return self.rig_camera_id is not None

    def to_numpy(self) -> np.ndarray:
        """Pose as a 6-value block [rx, ry, rz, tx, ty, tz]."""
        return np.array(self.rotation + self.translation, dtype=float)

    def set_from_numpy(self, block: np.ndarray) -> None:
        if block.shape != (6,):
            raise ValueError("Shot pose must be a 6-element array")
        self.rotation = block[:3].tolist()
        self.translation = block[3:].tolist()


class RigCamera(BaseModel):
    """Pose of a camera relative to its rig."""

    id: str = Field(description="Unique identifier for the rig camera")
    rotation: List[float] = Field(
        default_factory=lambda: [0.0, 0.0, 0.0],
        description="Camera-to-rig rotation as axis-angle",
        min_length=3,
        max_length=3
    )
    translation: List[float] = Field(
        default_factory=lambda: [0.0, 0.0, 0.0],
        description="Camera position in the rig frame",
        min_length=3,
        max_length=3
    )
    is_constant: bool = Field(default=True, description="Keep the offset fixed")

    def to_numpy(self) -> np.ndarray:
        return np.array(self.rotation + self.translation, dtype=float)

    def set_from_numpy(self, block: np.ndarray) -> None:
        if block.shape != (6,):
            raise ValueError("Rig camera pose must be a 6-element array")
        self.rotation = block[:3].tolist()
        self.translation = block[3:].tolist()


class Point(BaseModel):
    """3D point in world coordinates."""

    id: str = Field(description="Unique identifier for the point")
    position: List[float] = Field(
        description="3D coordinates [x, y, z]",
        min_length=3,
        max_length=3
    )
    is_constant: bool = Field(default=False, description="Keep the point fixed")

    def to_numpy(self) -> np.ndarray:
        return np.array(self.position, dtype=float)

    def set_from_numpy(self, position: np.ndarray) -> None:
        if position.shape != (3,):
            raise ValueError("position must be 3-element array")
        self.position = position.tolist()


class Bias(BaseModel):
    """Similarity correction applied to position priors."""

    id: str = Field(description="Unique identifier for the bias")
    rotation: List[float] = Field(
        default_factory=lambda: [0.0, 0.0, 0.0],
        min_length=3,
        max_length=3
    )
    translation: List[float] = Field(
        default_factory=lambda: [0.0, 0.0, 0.0],
        min_length=3,
        max_length=3
    )
    scale: float = Field(default=1.0, gt=0, description="Scale factor")
    is_constant: bool = Field(default=False, description="Keep the bias fixed")

    def to_numpy(self) -> np.ndarray:
        """Bias as a 7-value block [rx, ry, rz, tx, ty, tz, scale]."""
        return np.array(self.rotation + self.translation + [self.scale], dtype=float)

    def set_from_numpy(self, block: np.ndarray) -> None:
        if block.shape != (7,):
            raise ValueError("Bias must be a 7-element array")
        self.rotation = block[:3].tolist()
        self.translation = block[3:6].tolist()
        self.scale = float(block[6])


class Heatmap(BaseModel):
    """Geolocation cost raster.

    Row 0 is the northern edge; the raster center sits at
    (``x_offset``, ``y_offset``) in world coordinates.
    """

    id: str = Field(description="Unique identifier for the heatmap")
    values: List[List[float]] = Field(description="Row-major raster values", min_length=1)
    x_offset: float = Field(default=0.0, description="World X of the raster center")
    y_offset: float = Field(default=0.0, description="World Y of the raster center")
    resolution: float = Field(gt=0, description="World distance per cell")

    @field_validator('values')
    @classmethod
    def validate_values(cls, v):
        width = len(v[0])
        if width == 0:
            raise ValueError("Heatmap rows cannot be empty")
        if any(len(row) != width for row in v):
            raise ValueError("All heatmap rows must have the same length")
        return v

    @property
    def height(self) -> int:
        return len(self.values)

    @property
    def width(self) -> int:
        return len(self.values[0])

    def to_numpy(self) -> np.ndarray:
        return np.array(self.values, dtype=float)
