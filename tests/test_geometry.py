import numpy as np
import pytest

from cloudPeek.config import ViewerConfig
from cloudPeek.context import GridRotation
from cloudPeek.geometry import build_axes_vertices, build_grid_vertices, grid_line_count


def test_default_grid():
    assert grid_line_count(0.5, 0.05) == 21
    verts = build_grid_vertices(0.5, 0.05)
    assert verts.shape == (84, 3)
    assert verts.dtype == np.float32
    assert np.all(verts[:, 2] == 0.0)
    assert verts[:, :2].min() == pytest.approx(-0.5)
    assert verts[:, :2].max() == pytest.approx(0.5)


def test_grid_rejects_bad_step():
    with pytest.raises(ValueError):
        build_grid_vertices(0.5, 0.0)


def test_axes_are_colored_rgb():
    axes = build_axes_vertices()
    assert axes.shape == (6, 6)
    np.testing.assert_array_equal(axes[1], [1, 0, 0, 1, 0, 0])
    np.testing.assert_array_equal(axes[3], [0, 1, 0, 0, 1, 0])
    np.testing.assert_array_equal(axes[5], [0, 0, 1, 0, 0, 1])


def test_grid_rotation_model_matrix():
    grid = GridRotation()
    np.testing.assert_allclose(grid.model_matrix(), np.identity(4), atol=1e-7)
    grid.rotate(2, 90.0)
    rotated = grid.model_matrix() @ np.array([1.0, 0.0, 0.0, 1.0])
    np.testing.assert_allclose(rotated[:3], [0.0, 1.0, 0.0], atol=1e-6)
    with pytest.raises(ValueError):
        grid.rotate(3, 1.0)


def test_config_validation_and_overrides():
    config = ViewerConfig()
    assert config.far_plane == 300.0
    small = config.with_overrides(window_width=640)
    assert small.window_width == 640
    assert config.window_width == 1920
    with pytest.raises(ValueError):
        ViewerConfig(fov=0.0)
    with pytest.raises(ValueError):
        ViewerConfig(near_plane=10.0, far_plane=1.0)
