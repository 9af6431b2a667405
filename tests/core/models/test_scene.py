"""Tests for entities and the scene model."""

import numpy as np
import pytest
from pydantic import ValidationError

from bundlepriors.core.models import (
    Bias,
    Heatmap,
    PointPositionPrior,
    Point,
    PositionPrior,
    ProblemSettings,
    RigCamera,
    Scene,
    Shot,
)


class TestEntities:
    """Test entity models."""

    def test_shot_block(self):
        shot = Shot(id="s1", rotation=[0.1, 0.2, 0.3], translation=[1.0, 2.0, 3.0])

        np.testing.assert_array_equal(shot.to_numpy(), [0.1, 0.2, 0.3, 1.0, 2.0, 3.0])
        assert not shot.is_rig_shot()

        shot.set_from_numpy(np.array([0.0, 0.0, 0.0, 4.0, 5.0, 6.0]))
        assert shot.translation == [4.0, 5.0, 6.0]

        with pytest.raises(ValueError):
            shot.set_from_numpy(np.zeros(3))

    def test_rig_camera_default_constant(self):
        assert RigCamera(id="c1").is_constant

    def test_bias_block(self):
        bias = Bias(id="b1", scale=2.0)

        np.testing.assert_array_equal(bias.to_numpy(), [0, 0, 0, 0, 0, 0, 2.0])

        bias.set_from_numpy(np.array([0.1, 0.0, 0.0, 1.0, 0.0, 0.0, 3.0]))
        assert bias.scale == 3.0

        with pytest.raises(ValidationError):
            Bias(id="b2", scale=0.0)

    def test_point_block(self):
        point = Point(id="p1", position=[1.0, 2.0, 3.0])
        point.set_from_numpy(np.array([3.0, 2.0, 1.0]))

        assert point.position == [3.0, 2.0, 1.0]

    def test_heatmap(self):
        heatmap = Heatmap(id="h1", values=[[0, 1, 2], [3, 4, 5]], resolution=0.5)

        assert heatmap.height == 2
        assert heatmap.width == 3
        assert heatmap.to_numpy().shape == (2, 3)

    def test_heatmap_validation(self):
        with pytest.raises(ValidationError):
            Heatmap(id="h1", values=[[0, 1], [2]], resolution=1.0)
        with pytest.raises(ValidationError):
            Heatmap(id="h1", values=[[]], resolution=1.0)
        with pytest.raises(ValidationError):
            Heatmap(id="h1", values=[[1.0]], resolution=0.0)


class TestScene:
    """Test scene construction and validation."""

    def test_add_entities(self):
        scene = Scene()
        scene.add_rig_camera(RigCamera(id="c1"))
        scene.add_shot(Shot(id="s1", rig_camera_id="c1"))
        scene.add_point(Point(id="p1", position=[0, 0, 0]))

        assert scene.shots["s1"].is_rig_shot()
        assert "p1" in scene.points

    def test_duplicates_rejected(self):
        scene = Scene()
        scene.add_shot(Shot(id="s1"))

        with pytest.raises(ValueError):
            scene.add_shot(Shot(id="s1"))

    def test_shot_with_unknown_rig_camera(self):
        with pytest.raises(ValueError):
            Scene().add_shot(Shot(id="s1", rig_camera_id="missing"))

    def test_prior_references(self):
        scene = Scene()
        scene.add_shot(Shot(id="s1"))

        scene.add_prior(PositionPrior(shot_id="s1", position=[0, 0, 0]))
        with pytest.raises(ValueError):
            scene.add_prior(PositionPrior(shot_id="s2", position=[0, 0, 0]))
        with pytest.raises(ValueError):
            scene.add_prior(PointPositionPrior(point_id="p1", position=[0, 0, 0], std_deviation=1.0))

        assert len(scene.priors) == 1
        assert len(scene.get_priors_by_type("absolute_position")) == 1

    def test_validate_scene(self):
        scene = Scene(
            shots={"s1": Shot(id="s1")},
            priors=[{"type": "heatmap", "shot_id": "s1", "heatmap_id": "h1", "std_deviation": 1.0}],
        )

        issues = scene.validate_scene()

        assert len(issues) == 1
        assert "h1" in issues[0]

    def test_settings(self):
        assert Scene().settings.jacobian_method == "central"
        assert not Scene().settings.check_gradients

        with pytest.raises(ValidationError):
            ProblemSettings(jacobian_step=0.0)
        with pytest.raises(ValidationError):
            ProblemSettings(jacobian_method="complex")
        with pytest.raises(ValidationError):
            ProblemSettings(gradient_tolerance=0.0)
