"""End-to-end convergence of prior-only problems with scipy."""

import numpy as np
from scipy.optimize import least_squares

from bundlepriors.core.math.rotation import rotate_point
from bundlepriors.core.models import (
    Heatmap,
    HeatmapPrior,
    OrientationPrior,
    Point,
    PointPositionPrior,
    PositionPrior,
    Scene,
    Shot,
    UpVectorPrior,
)
from bundlepriors.core.optimization import PriorProblem


def solve(problem):
    """Run a trust-region solve on the problem's factor graph."""
    graph = problem.build_factor_graph()

    def residuals(params):
        graph.unpack_variables(params)
        return graph.compute_all_residuals()

    def jacobian(params):
        graph.unpack_variables(params)
        return graph.compute_jacobian().toarray()

    result = least_squares(
        residuals, graph.pack_variables(), jac=jacobian, method="trf",
        ftol=1e-12, xtol=1e-12, gtol=1e-12
    )
    graph.unpack_variables(result.x)
    problem.extract_solution_to_scene()
    return result


class TestPriorConvergence:
    """Test that priors pull parameters to their measured values."""

    def test_position_up_vector_and_point(self):
        scene = Scene()
        scene.add_shot(Shot(id="s1", rotation=[0.3, -0.2, 0.1], translation=[1.0, 1.0, 1.0]))
        scene.add_point(Point(id="p1", position=[0.0, 0.0, 0.0]))
        scene.add_prior(PositionPrior(shot_id="s1", position=[3.0, -2.0, 5.0]))
        scene.add_prior(UpVectorPrior(shot_id="s1", acceleration=[0.0, 0.0, 9.81], std_deviation=0.1))
        scene.add_prior(PointPositionPrior(point_id="p1", position=[1.0, 2.0, 3.0], std_deviation=0.5))

        result = solve(PriorProblem(scene))

        assert result.success
        np.testing.assert_allclose(scene.shots["s1"].translation, [3.0, -2.0, 5.0], atol=1e-6)
        np.testing.assert_allclose(scene.points["p1"].position, [1.0, 2.0, 3.0], atol=1e-6)
        up = rotate_point(np.array(scene.shots["s1"].rotation), np.array([0.0, 0.0, 1.0]))
        np.testing.assert_allclose(up, [0.0, 0.0, 1.0], atol=1e-6)

    def test_masked_position_prior(self):
        """Unconstrained axes keep their initial value."""
        scene = Scene()
        scene.add_shot(Shot(id="s1", translation=[1.0, 1.0, 1.0]))
        scene.add_prior(PositionPrior(shot_id="s1", position=[4.0, 5.0, 6.0], mask_xyz=[True, True, False]))

        solve(PriorProblem(scene))

        np.testing.assert_allclose(scene.shots["s1"].translation, [4.0, 5.0, 1.0], atol=1e-6)

    def test_tilt_prior(self):
        scene = Scene()
        scene.add_shot(Shot(id="s1", rotation=[-1.2, 0.0, 0.0]))
        scene.add_prior(OrientationPrior(shot_id="s1", kind="tilt", angle=-0.25, std_deviation=0.01))

        solve(PriorProblem(scene))

        ez = rotate_point(np.array(scene.shots["s1"].rotation), np.array([0.0, 0.0, 1.0]))
        tilt = -np.arctan2(ez[2], np.hypot(ez[0], ez[1]))
        assert abs(tilt - (-0.25)) < 1e-6

    def test_heatmap_prior(self):
        """Shot slides to the minimum of a quadratic bowl."""
        size, center = 21, 10
        rows, cols = np.indices((size, size))
        values = ((rows - center) ** 2 + (cols - center) ** 2).astype(float)

        scene = Scene()
        scene.add_heatmap(Heatmap(id="h1", values=values.tolist(), x_offset=50.0, y_offset=-20.0, resolution=2.0))
        scene.add_shot(Shot(id="s1", translation=[56.0, -16.0, 3.0]))
        scene.add_prior(HeatmapPrior(shot_id="s1", heatmap_id="h1", std_deviation=1.0))

        solve(PriorProblem(scene))

        x, y, z = scene.shots["s1"].translation
        # Raster center is cell (10.5, 10.5), the bowl minimum is cell (10, 10)
        assert abs(x - 49.0) < 1.0
        assert abs(y - (-19.0)) < 1.0
        assert abs(z - 3.0) < 1e-9
