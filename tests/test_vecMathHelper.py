import numpy as np
import pytest

from cloudPeek import vecMathHelper as vm
from matrixHelpers import from_gl, transform_point


def test_perspective_rejects_non_positive_aspect():
    with pytest.raises(ValueError):
        vm.perspective(45.0, 0.0, 0.5, 300.0)
    with pytest.raises(ValueError):
        vm.perspective(45.0, -1.0, 0.5, 300.0)


def test_perspective_rejects_bad_planes():
    with pytest.raises(ValueError):
        vm.perspective(45.0, 1.0, 0.0, 300.0)
    with pytest.raises(ValueError):
        vm.perspective(45.0, 1.0, 10.0, 5.0)


def test_perspective_maps_near_and_far_to_clip_range():
    proj = vm.perspective(90.0, 1.0, 0.5, 300.0)
    assert proj[0, 0] == pytest.approx(1.0)
    assert proj[1, 1] == pytest.approx(1.0)
    assert transform_point(proj, (0.0, 0.0, -0.5))[2] == pytest.approx(-1.0, abs=1e-5)
    assert transform_point(proj, (0.0, 0.0, -300.0))[2] == pytest.approx(1.0, abs=1e-4)


def test_look_at_moves_center_onto_negative_z():
    view = vm.look_at((0.0, 0.0, 5.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
    np.testing.assert_allclose(transform_point(view, (0.0, 0.0, 0.0)), [0.0, 0.0, -5.0], atol=1e-6)
    np.testing.assert_allclose(transform_point(view, (1.0, 0.0, 0.0)), [1.0, 0.0, -5.0], atol=1e-6)


def test_look_at_rejects_degenerate_direction():
    with pytest.raises(ValueError):
        vm.look_at((0.0, 0.0, 5.0), (0.0, 0.0, 0.0), (0.0, 0.0, 1.0))
    with pytest.raises(ValueError):
        vm.look_at((1.0, 1.0, 1.0), (1.0, 1.0, 1.0), (0.0, 0.0, 1.0))


def test_to_gl_is_column_major():
    data = vm.to_gl(vm.translate((1.0, 2.0, 3.0)))
    assert data.shape == (16,)
    np.testing.assert_array_equal(data[12:15], [1.0, 2.0, 3.0])
    np.testing.assert_array_equal(from_gl(data), vm.translate((1.0, 2.0, 3.0)))


def test_rotate_about_z():
    rot = vm.rotate(90.0, (0.0, 0.0, 1.0))
    np.testing.assert_allclose(transform_point(rot, (1.0, 0.0, 0.0)), [0.0, 1.0, 0.0], atol=1e-6)


def test_composition_applies_right_operand_first():
    m = vm.translate((1.0, 0.0, 0.0)) @ vm.rotate(90.0, (0.0, 0.0, 1.0))
    np.testing.assert_allclose(transform_point(m, (1.0, 0.0, 0.0)), [1.0, 1.0, 0.0], atol=1e-6)


def test_normalize_zero_vector():
    with pytest.raises(ValueError):
        vm.normalize((0.0, 0.0, 0.0))
    np.testing.assert_allclose(vm.normalize((3.0, 0.0, 4.0)), [0.6, 0.0, 0.8])


def test_spherical_to_cartesian_is_z_up():
    np.testing.assert_allclose(vm.spherical_to_cartesian(2.0, 0.0, 90.0), [0.0, 0.0, 2.0], atol=1e-9)
    np.testing.assert_allclose(vm.spherical_to_cartesian(2.0, 90.0, 0.0), [0.0, 2.0, 0.0], atol=1e-9)
