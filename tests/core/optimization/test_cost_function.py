"""Tests for cost function binding and the residual registry."""

import numpy as np
import pytest

from bundlepriors.core.math.pose import ShotPoseFunctor
from bundlepriors.core.optimization import (
    AbsolutePositionError,
    BiCubicInterpolator,
    CostFunction,
    Grid2D,
    HeatmapCostFunctor,
    PanAngleError,
    PointPositionPriorError,
    PositionPriorError,
    ResidualRegistry,
    RollAngleError,
    TiltAngleError,
    UnitTranslationPriorError,
    UpVectorError,
)


def heatmap_cost_function():
    interpolator = BiCubicInterpolator(Grid2D(np.ones((4, 4))))
    return HeatmapCostFunctor.create(interpolator, 0.0, 0.0, 4, 4, 1.0, 1.0)


ARITIES = [
    (lambda: AbsolutePositionError.create([0, 0, 0]), 3, [6]),
    (lambda: AbsolutePositionError.create([0, 0, 0], has_std_deviation_param=True), 3, [6, 1]),
    (lambda: AbsolutePositionError.create([0, 0, 0], pose_functor=ShotPoseFunctor(0, 1)), 3, [6, 6]),
    (lambda: UpVectorError.create([0, 0, 1], 1.0), 3, [6]),
    (lambda: UpVectorError.create([0, 0, 1], 1.0, is_rig_shot=True), 3, [6, 6]),
    (lambda: PanAngleError.create(0.0, 1.0), 1, [6]),
    (lambda: TiltAngleError.create(0.0, 1.0), 1, [6]),
    (lambda: RollAngleError.create(0.0, 1.0), 1, [6]),
    (lambda: PositionPriorError.create([0, 0, 0], 1.0), 3, [6, 7]),
    (lambda: UnitTranslationPriorError.create(), 1, [6]),
    (lambda: PointPositionPriorError.create([0, 0, 0], 1.0), 3, [3]),
    (heatmap_cost_function, 1, [6]),
]


class TestCostFunction:
    """Test residual and parameter arities."""

    @pytest.mark.parametrize("factory,num_residuals,block_sizes", ARITIES)
    def test_arities(self, factory, num_residuals, block_sizes):
        cost_function = factory()

        assert cost_function.num_residuals() == num_residuals
        assert cost_function.parameter_block_sizes() == block_sizes

    @pytest.mark.parametrize("factory,num_residuals,block_sizes", ARITIES)
    def test_evaluate_shapes(self, factory, num_residuals, block_sizes):
        cost_function = factory()
        blocks = [np.full(size, 0.5) for size in block_sizes]

        residual, jacobians = cost_function.evaluate(blocks)

        assert residual.shape == (num_residuals,)
        assert [J.shape for J in jacobians] == [(num_residuals, size) for size in block_sizes]
        assert np.all(np.isfinite(residual))

    @pytest.mark.parametrize("factory,num_residuals,block_sizes", ARITIES)
    def test_check_gradient(self, factory, num_residuals, block_sizes):
        cost_function = factory()
        blocks = [np.full(size, 0.5) for size in block_sizes]

        is_correct, max_error = cost_function.check_gradient(blocks)

        assert is_correct
        assert max_error < 1e-5

    def test_residual_only(self):
        cost_function = PointPositionPriorError.create([1, 2, 3], 1.0)
        residual, jacobians = cost_function.evaluate([np.zeros(3)], compute_jacobians=False)

        np.testing.assert_allclose(residual, [-1.0, -2.0, -3.0])
        assert jacobians is None

    def test_wrong_block_count(self):
        cost_function = PositionPriorError.create([0, 0, 0], 1.0)

        with pytest.raises(ValueError):
            cost_function.evaluate([np.zeros(6)])

    def test_wrong_block_size(self):
        cost_function = PointPositionPriorError.create([0, 0, 0], 1.0)

        with pytest.raises(ValueError):
            cost_function.evaluate([np.zeros(6)])

    def test_evaluate_does_not_modify_blocks(self):
        cost_function = AbsolutePositionError.create([1, 2, 3], pose_functor=ShotPoseFunctor(0, 1))
        instance = np.array([0.1, 0.2, 0.3, 1.0, 2.0, 3.0])
        camera = np.array([0.0, 0.1, 0.0, 0.5, 0.0, 0.0])

        cost_function.evaluate([instance, camera])

        np.testing.assert_array_equal(instance, [0.1, 0.2, 0.3, 1.0, 2.0, 3.0])
        np.testing.assert_array_equal(camera, [0.0, 0.1, 0.0, 0.5, 0.0, 0.0])

    def test_repr(self):
        assert "PointPositionPriorError" in repr(PointPositionPriorError.create([0, 0, 0], 1.0))


class TestResidualRegistry:
    """Test residual type lookup."""

    def test_registered_types(self):
        types = ResidualRegistry.list_residual_types()

        for name in [
            "absolute_position", "bias_position", "unit_translation", "point_position",
            "up_vector", "pan_angle", "tilt_angle", "roll_angle", "heatmap",
        ]:
            assert name in types

    def test_create_residual(self):
        functor = ResidualRegistry.create_residual("point_position", position=[1, 2, 3], std_deviation=2.0)

        assert isinstance(functor, PointPositionPriorError)
        assert functor.scale == 0.5

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            ResidualRegistry.get_residual_class("nonexistent")
