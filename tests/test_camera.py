import math

import numpy as np
import pytest

from matrixHelpers import transform_point
from cloudPeek.camera import OrbitCamera
from cloudPeek.config import ViewerConfig


@pytest.fixture
def camera():
    return OrbitCamera(ViewerConfig())


def test_default_eye_position(camera):
    el = math.radians(20.0)
    np.testing.assert_allclose(camera.eye(), [10 * math.cos(el), 0.0, 10 * math.sin(el)], atol=1e-9)


def test_view_matrix_puts_center_in_front(camera):
    center_in_view = transform_point(camera.view_matrix(), camera.center())
    np.testing.assert_allclose(center_in_view, [0.0, 0.0, -10.0], atol=1e-4)


def test_elevation_clamps_to_exactly_89(camera):
    camera.orbit(0.0, 100000.0)
    assert camera.state.elevation == 89.0
    camera.orbit(0.0, -100000.0)
    assert camera.state.elevation == -89.0
    # Still a valid view at the pole
    assert np.all(np.isfinite(camera.view_matrix()))


def test_azimuth_wraps(camera):
    camera.orbit(3700.0, 0.0)
    assert camera.state.azimuth == pytest.approx(10.0)
    camera.orbit(-200.0, 0.0)
    assert camera.state.azimuth == pytest.approx(350.0)


def test_zoom_clamps(camera):
    camera.zoom(2.0)
    assert camera.state.distance == pytest.approx(10.0 - 0.7)
    camera.zoom(1000.0)
    assert camera.state.distance == 0.5
    camera.zoom(-1000.0)
    assert camera.state.distance == 150.0


def test_pan_scales_with_frame_time(camera):
    camera.pan(1.0, 0.0, 0.5)
    camera.pan(0.0, -1.0, 0.1)
    assert camera.state.pan == pytest.approx([2.5, -0.5])
    np.testing.assert_allclose(camera.center(), [2.5, -0.5, 0.0])


def test_reset_restores_defaults_exactly(camera):
    before = camera.state.copy()
    camera.orbit(123.0, -45.0)
    camera.zoom(3.0)
    camera.pan(1.0, 1.0, 1.0)
    camera.reset()
    assert camera.state == before


def test_matrices_tolerate_zero_height(camera):
    projection, view = camera.matrices((800, 0))
    assert projection.shape == (4, 4)
    assert np.all(np.isfinite(projection))


def test_initial_distance_is_clamped_by_config():
    config = ViewerConfig(initial_distance=1000.0)
    assert OrbitCamera(config).state.distance == config.max_distance
