"""Scene model: entities plus the priors placed on them."""

from typing import Dict, List, Literal

from pydantic import BaseModel, Field

from .entities import Bias, Heatmap, Point, RigCamera, Shot
from .priors import Prior


class ProblemSettings(BaseModel):
    """Settings used when building residuals."""

    check_gradients: bool = Field(
        default=False,
        description="Compare every analytic Jacobian against finite differences at build time"
    )
    gradient_tolerance: float = Field(default=1e-5, gt=0, description="Gradient check tolerance")
    jacobian_step: float = Field(default=1e-7, gt=0, description="Finite difference step of the gradient check")
    jacobian_method: Literal["forward", "backward", "central"] = Field(
        default="central",
        description="Finite difference scheme of the gradient check"
    )


class Scene(BaseModel):
    """Shots, points and correction blocks with their priors."""

    shots: Dict[str, Shot] = Field(default_factory=dict, description="Shots by ID")
    rig_cameras: Dict[str, RigCamera] = Field(default_factory=dict, description="Rig cameras by ID")
    points: Dict[str, Point] = Field(default_factory=dict, description="Points by ID")
    biases: Dict[str, Bias] = Field(default_factory=dict, description="Biases by ID")
    heatmaps: Dict[str, Heatmap] = Field(default_factory=dict, description="Heatmaps by ID")
    priors: List[Prior] = Field(default_factory=list, description="Priors to build residuals for")
    settings: ProblemSettings = Field(default_factory=ProblemSettings)

    def add_shot(self, shot: Shot) -> None:
        """Add a shot to the scene."""
        if shot.id in self.shots:
            raise ValueError(f"Shot {shot.id} already exists")
        if shot.rig_camera_id is not None and shot.rig_camera_id not in self.rig_cameras:
            raise ValueError(f"Shot references non-existent rig camera {shot.rig_camera_id}")
        self.shots[shot.id] = shot

    def add_rig_camera(self, rig_camera: RigCamera) -> None:
        if rig_camera.id in self.rig_cameras:
            raise ValueError(f"Rig camera {rig_camera.id} already exists")
        self.rig_cameras[rig_camera.id] = rig_camera

    def add_point(self, point: Point) -> None:
        if point.id in self.points:
            raise ValueError(f"Point {point.id} already exists")
        self.points[point.id] = point

    def add_bias(self, bias: Bias) -> None:
        if bias.id in self.biases:
            raise ValueError(f"Bias {bias.id} already exists")
        self.biases[bias.id] = bias

    def add_heatmap(self, heatmap: Heatmap) -> None:
        if heatmap.id in self.heatmaps:
            raise ValueError(f"Heatmap {heatmap.id} already exists")
        self.heatmaps[heatmap.id] = heatmap

    def add_prior(self, prior: Prior) -> None:
        """Add a prior after checking its references."""
        self._validate_prior_references(prior)
        self.priors.append(prior)

    def get_priors_by_type(self, prior_type: str) -> List[Prior]:
        """Get all priors producing a given residual type."""
        return [p for p in self.priors if p.prior_type() == prior_type]

    def validate_scene(self) -> List[str]:
        """Validate the whole scene and return a list of issues."""
        issues = []

        for i, prior in enumerate(self.priors):
            try:
                self._validate_prior_references(prior)
            except ValueError as e:
                issues.append(f"Prior {i}: {str(e)}")

        for shot_id, shot in self.shots.items():
            if shot.rig_camera_id is not None and shot.rig_camera_id not in self.rig_cameras:
                issues.append(f"Shot {shot_id} references non-existent rig camera {shot.rig_camera_id}")

        return issues

    def _validate_prior_references(self, prior: Prior) -> None:
        """Validate that prior references exist."""
        if hasattr(prior, 'shot_id') and prior.shot_id not in self.shots:
            raise ValueError(f"Prior references non-existent shot {prior.shot_id}")

        if hasattr(prior, 'point_id') and prior.point_id not in self.points:
            raise ValueError(f"Prior references non-existent point {prior.point_id}")

        if hasattr(prior, 'bias_id') and prior.bias_id not in self.biases:
            raise ValueError(f"Prior references non-existent bias {prior.bias_id}")

        if hasattr(prior, 'heatmap_id') and prior.heatmap_id not in self.heatmaps:
            raise ValueError(f"Prior references non-existent heatmap {prior.heatmap_id}")
