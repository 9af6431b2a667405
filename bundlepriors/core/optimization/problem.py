"""Builder turning a scene and its priors into a factor graph."""

import logging
from typing import Any, Dict, List

import numpy as np

from .cost_function import CostFunction
from .factor_graph import Factor, FactorGraph, Variable, VariableType
from .heatmap import BiCubicInterpolator, Grid2D
from .position_residuals import PositionConstraintType
from .residuals import ResidualRegistry
from ..math.jacobians import JacobianOptions
from ..math.pose import BIAS_BLOCK_SIZE, POSE_BLOCK_SIZE, ShotPoseFunctor
from ..models.priors import (
    BiasPositionPrior,
    HeatmapPrior,
    OrientationPrior,
    PointPositionPrior,
    PositionPrior,
    UnitTranslationPrior,
    UpVectorPrior,
)
from ..models.scene import Scene


def shot_variable_id(shot_id: str) -> str:
    return f"{shot_id}_pose"


def rig_camera_variable_id(rig_camera_id: str) -> str:
    return f"{rig_camera_id}_rig_camera"


def point_variable_id(point_id: str) -> str:
    return f"{point_id}_point"


def bias_variable_id(bias_id: str) -> str:
    return f"{bias_id}_bias"


class PriorProblem:
    """Builder for prior-constrained optimization problems.

    Position priors with an optimized standard deviation get their own
    1-value parameter block. That block is unbounded: the solver may drive
    it to zero or below, and nothing here clamps it. Callers needing a
    positive deviation must bound it on the solver side.
    """

    def __init__(self, scene: Scene):
        """Initialize optimization problem.

        Args:
            scene: Scene containing entities and priors
        """
        self.scene = scene
        self.factor_graph = FactorGraph()
        self.logger = logging.getLogger(__name__)
        self._prior_counter = 0
        self._interpolators: Dict[str, BiCubicInterpolator] = {}
        self._std_deviation_priors: Dict[str, PositionPrior] = {}
        self.gradient_check_failures: List[str] = []

    @property
    def jacobian_options(self) -> JacobianOptions:
        """Finite difference options used by the gradient check."""
        settings = self.scene.settings
        return JacobianOptions(step=settings.jacobian_step, method=settings.jacobian_method)

    def build_factor_graph(self) -> FactorGraph:
        """Build factor graph from the scene.

        Returns:
            Complete factor graph ready for optimization
        """
        issues = self.scene.validate_scene()
        if issues:
            raise ValueError(f"Invalid scene: {'; '.join(issues)}")

        self.factor_graph = FactorGraph()
        self._prior_counter = 0
        self._std_deviation_priors = {}

        self._add_entity_variables()
        for prior in self.scene.priors:
            self._add_prior_factor(prior)

        if self.scene.settings.check_gradients:
            self.check_gradients()

        summary = self.factor_graph.summary()
        self.logger.info(
            "Built factor graph: %d variables, %d factors, %d residuals",
            summary["variables"]["total"],
            summary["factors"]["total"],
            summary["factors"]["total_residuals"],
        )
        return self.factor_graph

    def check_gradients(self) -> List[str]:
        """Compare each factor's Jacobian with finite differences at the current values.

        Returns:
            IDs of the factors whose Jacobians disagree
        """
        tolerance = self.scene.settings.gradient_tolerance
        self.gradient_check_failures = []

        for factor_id, factor in self.factor_graph.factors.items():
            blocks = [self.factor_graph.variables[var_id].get_value() for var_id in factor.variable_ids]
            is_correct, max_error = factor.cost_function.check_gradient(
                blocks, self.jacobian_options, atol=tolerance, rtol=tolerance
            )
            if not is_correct:
                self.logger.warning("Gradient check failed for %s, max error: %.2e", factor_id, max_error)
                self.gradient_check_failures.append(factor_id)

        self.logger.debug(
            "Checked gradients of %d factors, %d failed",
            len(self.factor_graph.factors), len(self.gradient_check_failures)
        )
        return list(self.gradient_check_failures)

    def _add_entity_variables(self) -> None:
        for rig_camera_id, rig_camera in self.scene.rig_cameras.items():
            self.factor_graph.add_variable(Variable(
                id=rig_camera_variable_id(rig_camera_id),
                type=VariableType.RIG_CAMERA,
                size=POSE_BLOCK_SIZE,
                value=rig_camera.to_numpy(),
                is_constant=rig_camera.is_constant
            ))

        for shot_id, shot in self.scene.shots.items():
            self.factor_graph.add_variable(Variable(
                id=shot_variable_id(shot_id),
                type=VariableType.SHOT_POSE,
                size=POSE_BLOCK_SIZE,
                value=shot.to_numpy(),
                is_constant=shot.is_constant
            ))

        for point_id, point in self.scene.points.items():
            self.factor_graph.add_variable(Variable(
                id=point_variable_id(point_id),
                type=VariableType.POINT,
                size=3,
                value=point.to_numpy(),
                is_constant=point.is_constant
            ))

        for bias_id, bias in self.scene.biases.items():
            self.factor_graph.add_variable(Variable(
                id=bias_variable_id(bias_id),
                type=VariableType.BIAS,
                size=BIAS_BLOCK_SIZE,
                value=bias.to_numpy(),
                is_constant=bias.is_constant
            ))

    def _next_factor_id(self, prior_type: str) -> str:
        factor_id = f"{prior_type}_{self._prior_counter}"
        self._prior_counter += 1
        return factor_id

    def _shot_pose_variables(self, shot_id: str) -> List[str]:
        """Pose variables of a shot: instance first, then rig camera."""
        shot = self.scene.shots[shot_id]
        variable_ids = [shot_variable_id(shot_id)]
        if shot.is_rig_shot():
            variable_ids.append(rig_camera_variable_id(shot.rig_camera_id))
        return variable_ids

    def _add_factor(self, factor_id: str, variable_ids: List[str], cost_function: CostFunction) -> None:
        self.factor_graph.add_factor(Factor(factor_id, variable_ids, cost_function))

    def _add_prior_factor(self, prior) -> None:
        """Add factor for a single prior."""
        if isinstance(prior, PositionPrior):
            self._add_position_factor(prior)
        elif isinstance(prior, UpVectorPrior):
            self._add_up_vector_factor(prior)
        elif isinstance(prior, OrientationPrior):
            self._add_orientation_factor(prior)
        elif isinstance(prior, BiasPositionPrior):
            self._add_bias_position_factor(prior)
        elif isinstance(prior, UnitTranslationPrior):
            self._add_unit_translation_factor(prior)
        elif isinstance(prior, PointPositionPrior):
            self._add_point_position_factor(prior)
        elif isinstance(prior, HeatmapPrior):
            self._add_heatmap_factor(prior)
        else:
            raise ValueError(f"Unknown prior type: {type(prior).__name__}")

    def _add_position_factor(self, prior: PositionPrior) -> None:
        factor_id = self._next_factor_id(prior.prior_type())
        variable_ids = self._shot_pose_variables(prior.shot_id)
        is_rig_shot = len(variable_ids) > 1
        has_std_deviation_param = prior.std_deviation_param is not None

        if has_std_deviation_param:
            std_variable_id = f"{factor_id}_std"
            self.factor_graph.add_variable(Variable(
                id=std_variable_id,
                type=VariableType.STD_DEVIATION,
                size=1,
                value=np.array([prior.std_deviation_param])
            ))
            variable_ids.append(std_variable_id)
            self._std_deviation_priors[std_variable_id] = prior

        functor = ResidualRegistry.create_residual(
            prior.prior_type(),
            position_prior=prior.position,
            std_deviation_horizontal=prior.std_deviation_horizontal,
            std_deviation_vertical=prior.std_deviation_vertical,
            has_std_deviation_param=has_std_deviation_param,
            constraint_type=PositionConstraintType.from_mask(prior.mask_xyz),
            pose_functor=ShotPoseFunctor(0, 1 if is_rig_shot else None),
        )
        self._add_factor(factor_id, variable_ids, CostFunction(functor))

    def _add_up_vector_factor(self, prior: UpVectorPrior) -> None:
        variable_ids = self._shot_pose_variables(prior.shot_id)
        functor = ResidualRegistry.create_residual(
            prior.prior_type(),
            acceleration=prior.acceleration,
            std_deviation=prior.std_deviation,
            is_rig_shot=len(variable_ids) > 1,
        )
        self._add_factor(self._next_factor_id(prior.prior_type()), variable_ids, CostFunction(functor))

    def _add_orientation_factor(self, prior: OrientationPrior) -> None:
        functor = ResidualRegistry.create_residual(
            prior.prior_type(),
            angle=prior.angle,
            std_deviation=prior.std_deviation,
        )
        self._add_factor(
            self._next_factor_id(prior.prior_type()),
            [shot_variable_id(prior.shot_id)],
            CostFunction(functor)
        )

    def _add_bias_position_factor(self, prior: BiasPositionPrior) -> None:
        functor = ResidualRegistry.create_residual(
            prior.prior_type(),
            position_prior=prior.position,
            std_deviation=prior.std_deviation,
        )
        self._add_factor(
            self._next_factor_id(prior.prior_type()),
            [shot_variable_id(prior.shot_id), bias_variable_id(prior.bias_id)],
            CostFunction(functor)
        )

    def _add_unit_translation_factor(self, prior: UnitTranslationPrior) -> None:
        functor = ResidualRegistry.create_residual(prior.prior_type())
        self._add_factor(
            self._next_factor_id(prior.prior_type()),
            [shot_variable_id(prior.shot_id)],
            CostFunction(functor)
        )

    def _add_point_position_factor(self, prior: PointPositionPrior) -> None:
        functor = ResidualRegistry.create_residual(
            prior.prior_type(),
            position=prior.position,
            std_deviation=prior.std_deviation,
        )
        self._add_factor(
            self._next_factor_id(prior.prior_type()),
            [point_variable_id(prior.point_id)],
            CostFunction(functor)
        )

    def _interpolator(self, heatmap_id: str) -> BiCubicInterpolator:
        """Interpolator shared by every prior on the same heatmap."""
        if heatmap_id not in self._interpolators:
            heatmap = self.scene.heatmaps[heatmap_id]
            self._interpolators[heatmap_id] = BiCubicInterpolator(Grid2D(heatmap.to_numpy()))
        return self._interpolators[heatmap_id]

    def _add_heatmap_factor(self, prior: HeatmapPrior) -> None:
        heatmap = self.scene.heatmaps[prior.heatmap_id]
        functor = ResidualRegistry.create_residual(
            prior.prior_type(),
            interpolator=self._interpolator(prior.heatmap_id),
            x_offset=heatmap.x_offset,
            y_offset=heatmap.y_offset,
            height=heatmap.height,
            width=heatmap.width,
            resolution=heatmap.resolution,
            std_deviation=prior.std_deviation,
        )
        self._add_factor(
            self._next_factor_id(prior.prior_type()),
            [shot_variable_id(prior.shot_id)],
            CostFunction(functor)
        )

    def get_optimization_summary(self) -> Dict[str, Any]:
        """Get summary of optimization problem."""
        summary = self.factor_graph.summary()

        summary["scene_info"] = {
            "shots": len(self.scene.shots),
            "rig_cameras": len(self.scene.rig_cameras),
            "points": len(self.scene.points),
            "biases": len(self.scene.biases),
            "heatmaps": len(self.scene.heatmaps),
            "priors": len(self.scene.priors)
        }

        prior_counts = {}
        for prior in self.scene.priors:
            ptype = prior.prior_type()
            prior_counts[ptype] = prior_counts.get(ptype, 0) + 1

        summary["prior_counts"] = prior_counts

        return summary

    def extract_solution_to_scene(self) -> None:
        """Write optimized variable values back to the scene."""
        variables = self.factor_graph.variables

        for shot_id, shot in self.scene.shots.items():
            variable = variables.get(shot_variable_id(shot_id))
            if variable is not None and variable.is_initialized():
                shot.set_from_numpy(variable.get_value())

        for rig_camera_id, rig_camera in self.scene.rig_cameras.items():
            variable = variables.get(rig_camera_variable_id(rig_camera_id))
            if variable is not None and variable.is_initialized():
                rig_camera.set_from_numpy(variable.get_value())

        for point_id, point in self.scene.points.items():
            variable = variables.get(point_variable_id(point_id))
            if variable is not None and variable.is_initialized():
                point.set_from_numpy(variable.get_value())

        for bias_id, bias in self.scene.biases.items():
            variable = variables.get(bias_variable_id(bias_id))
            if variable is not None and variable.is_initialized():
                bias.set_from_numpy(variable.get_value())

        for std_variable_id, prior in self._std_deviation_priors.items():
            prior.std_deviation_param = float(variables[std_variable_id].get_value()[0])

        self.logger.debug("Extracted solution for %d variables", len(variables))
