"""Tests for heatmap sampling and the heatmap residual."""

import numpy as np
import pytest

from bundlepriors.core.math.jacobians import block_jacobians
from bundlepriors.core.optimization.cost_function import CostFunction
from bundlepriors.core.optimization.heatmap import (
    BiCubicInterpolator,
    Grid2D,
    HeatmapCostFunctor,
    HeatmapdCostFunctor,
    cubic_hermite_spline,
)


class RecordingInterpolator:
    """Constant-valued interpolator remembering where it was sampled."""

    def __init__(self, value=0.0):
        self.value = value
        self.samples = []

    def evaluate(self, r, c):
        self.samples.append((r, c))
        return self.value


class ProductInterpolator:
    """Smooth interpolator sampling ``r * c``."""

    def evaluate(self, r, c):
        return r * c

    def evaluate_with_gradient(self, r, c):
        return r * c, c, r


def linear_grid(rows, cols):
    i, j = np.indices((rows, cols))
    return 2.0 * i + 3.0 * j


def pose_block(x, y, z=0.0):
    return np.array([0.0, 0.0, 0.0, x, y, z])


class TestGrid2D:
    """Test raster access."""

    def test_get_value(self):
        grid = Grid2D(np.arange(12.0).reshape(3, 4))
        assert grid.get_value(1, 2) == 6.0

    def test_edge_clamping(self):
        data = np.arange(12.0).reshape(3, 4)
        grid = Grid2D(data)

        assert grid.get_value(-1, 5) == data[0, 3]
        assert grid.get_value(10, -3) == data[2, 0]

    def test_invalid_data(self):
        with pytest.raises(ValueError):
            Grid2D(np.zeros(4))
        with pytest.raises(ValueError):
            Grid2D(np.zeros((0, 3)))


class TestBiCubicInterpolator:
    """Test Catmull-Rom reconstruction."""

    def test_spline_endpoints(self):
        f0, _ = cubic_hermite_spline(1.0, 2.0, 5.0, 3.0, 0.0)
        f1, _ = cubic_hermite_spline(1.0, 2.0, 5.0, 3.0, 1.0)

        assert f0 == 2.0
        assert f1 == pytest.approx(5.0)

    def test_reproduces_grid_nodes(self):
        data = np.random.default_rng(3).standard_normal((5, 6))
        interpolator = BiCubicInterpolator(Grid2D(data))

        for r, c in [(0, 0), (1, 2), (4, 5), (3, 1)]:
            assert interpolator.evaluate(r, c) == pytest.approx(data[r, c])

    def test_linear_data_and_gradient(self):
        """Linear rasters are reproduced exactly away from the border."""
        interpolator = BiCubicInterpolator(Grid2D(linear_grid(8, 8)))

        f, dfdr, dfdc = interpolator.evaluate_with_gradient(2.5, 3.25)

        assert f == pytest.approx(2.0 * 2.5 + 3.0 * 3.25)
        assert dfdr == pytest.approx(2.0)
        assert dfdc == pytest.approx(3.0)

    def test_gradient_matches_finite_differences(self):
        data = np.random.default_rng(5).standard_normal((6, 6))
        interpolator = BiCubicInterpolator(Grid2D(data))
        r, c, h = 2.3, 2.6, 1e-6

        _, dfdr, dfdc = interpolator.evaluate_with_gradient(r, c)

        assert dfdr == pytest.approx(
            (interpolator.evaluate(r + h, c) - interpolator.evaluate(r - h, c)) / (2 * h), abs=1e-6
        )
        assert dfdc == pytest.approx(
            (interpolator.evaluate(r, c + h) - interpolator.evaluate(r, c - h)) / (2 * h), abs=1e-6
        )


class TestHeatmapCostFunctor:
    """Test the heatmap residual."""

    def test_origin_samples_raster_center(self):
        interpolator = RecordingInterpolator()
        functor = HeatmapCostFunctor(interpolator, 100.0, 200.0, 40, 60, 2.0, 1.0)

        functor.compute_residual([pose_block(100.0, 200.0, 17.0)])

        assert interpolator.samples == [(20.0, 30.0)]

    def test_raster_axes(self):
        """East moves right along columns, north moves up along rows."""
        interpolator = RecordingInterpolator()
        functor = HeatmapCostFunctor(interpolator, 0.0, 0.0, 40, 60, 2.0, 1.0)

        functor.compute_residual([pose_block(4.0, 6.0)])

        assert interpolator.samples == [(17.0, 32.0)]

    def test_value_scaled_by_std_deviation(self):
        functor = HeatmapCostFunctor(RecordingInterpolator(3.0), 0.0, 0.0, 10, 10, 1.0, 0.5)

        assert functor.compute_residual([pose_block(0.0, 0.0)])[0] == pytest.approx(6.0)

    def test_analytic_jacobian(self):
        interpolator = BiCubicInterpolator(Grid2D(linear_grid(10, 10)))
        functor = HeatmapCostFunctor(interpolator, 100.0, 200.0, 10, 10, 0.5, 1.0)
        blocks = [pose_block(100.3, 199.6, 3.0)]

        (J,) = functor.compute_jacobian(blocks)
        (J_numeric,) = block_jacobians(functor.compute_residual, blocks)

        np.testing.assert_allclose(J, [[0.0, 0.0, 0.0, 6.0, -4.0, 0.0]], atol=1e-9)
        np.testing.assert_allclose(J, J_numeric, atol=1e-5)

    def test_jacobian_uses_interpolator_gradient(self):
        functor = HeatmapCostFunctor(ProductInterpolator(), 0.0, 0.0, 10, 10, 1.0, 2.0)

        (J,) = functor.compute_jacobian([pose_block(1.0, 2.0)])

        # row = 3, col = 6; d(r*c)/dx = r, d(r*c)/dy = -c, halved by the std deviation
        np.testing.assert_allclose(J, [[0.0, 0.0, 0.0, 1.5, -3.0, 0.0]])

    def test_create(self):
        interpolator = BiCubicInterpolator(Grid2D(linear_grid(4, 4)))
        cost_function = HeatmapCostFunctor.create(interpolator, 0.0, 0.0, 4, 4, 1.0, 1.0)

        assert isinstance(cost_function, CostFunction)
        assert cost_function.num_residuals() == 1
        assert cost_function.parameter_block_sizes() == [6]

    def test_historical_alias(self):
        assert HeatmapdCostFunctor is HeatmapCostFunctor
