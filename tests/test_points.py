import numpy as np
import pytest

from cloudPeek.errors import BatchValidationError
from cloudPeek.points import POINT_DTYPE, Point, PointBatch


def test_point_defaults_to_white():
    p = Point(1.0, 2.0, 3.0)
    assert p.to_tuple() == (1.0, 2.0, 3.0, 255, 255, 255)


def test_from_points_accepts_points_and_tuples():
    batch = PointBatch.from_points([
        Point(1.0, 2.0, 3.0, 10, 20, 30),
        (4.0, 5.0, 6.0),
        (7.0, 8.0, 9.0, 1, 2, 3),
    ])
    assert len(batch) == 3
    np.testing.assert_array_equal(batch.positions(), [[1, 2, 3], [4, 5, 6], [7, 8, 9]])
    np.testing.assert_array_equal(batch.colors(), [[10, 20, 30], [255, 255, 255], [1, 2, 3]])


def test_from_points_rejects_bad_tuple():
    with pytest.raises(BatchValidationError):
        PointBatch.from_points([(1.0, 2.0)])


def test_from_arrays_count_mismatch_is_value_error():
    with pytest.raises(ValueError):
        PointBatch.from_arrays(np.zeros((3, 3)), np.zeros((2, 3)))


def test_from_arrays_wrong_shape():
    with pytest.raises(BatchValidationError):
        PointBatch.from_arrays(np.zeros((3, 2)))


def test_from_arrays_clips_colors():
    batch = PointBatch.from_arrays([[0, 0, 0]], [[300, -5, 128]])
    np.testing.assert_array_equal(batch.colors(), [[255, 0, 128]])


def test_records_are_read_only():
    batch = PointBatch.from_arrays(np.ones((2, 3)))
    assert batch.records.dtype == POINT_DTYPE
    assert not batch.records.flags.writeable
    with pytest.raises(ValueError):
        batch.records["x"][0] = 5.0


def test_normalized_colors():
    batch = PointBatch.from_arrays([[0, 0, 0]], [[255, 0, 51]])
    np.testing.assert_allclose(batch.normalized_colors(), [[1.0, 0.0, 0.2]], rtol=1e-6)


def test_iteration_and_slice_keep_order():
    positions = np.arange(15, dtype=np.float32).reshape(5, 3)
    batch = PointBatch.from_arrays(positions)
    part = batch.slice(1, 3)
    assert [p.x for p in part] == [3.0, 6.0]
    assert [p.x for p in batch] == [0.0, 3.0, 6.0, 9.0, 12.0]


def test_coerce():
    batch = PointBatch.empty()
    assert PointBatch.coerce(batch) is batch
    assert len(PointBatch.coerce(np.zeros((4, 3)))) == 4
    assert len(PointBatch.coerce([Point(0, 0, 0)])) == 1
    assert len(PointBatch.coerce([])) == 0


def test_constructor_copies_caller_records():
    buffer = np.zeros(4, dtype=POINT_DTYPE)
    batch = PointBatch(buffer)
    assert buffer.flags.writeable
    buffer["x"] = 9.0
    np.testing.assert_array_equal(batch.positions()[:, 0], [0, 0, 0, 0])


def test_read_only_view_of_writable_buffer_is_copied():
    buffer = np.zeros(3, dtype=POINT_DTYPE)
    view = buffer[:]
    view.flags.writeable = False
    batch = PointBatch(view)
    buffer["z"] = 1.0
    np.testing.assert_array_equal(batch.positions()[:, 2], [0, 0, 0])
    assert not batch.records.flags.writeable


def test_coerce_structured_array_leaves_buffer_reusable():
    buffer = np.ones(2, dtype=POINT_DTYPE)
    batch = PointBatch.coerce(buffer)
    buffer["r"] = 0
    np.testing.assert_array_equal(batch.colors()[:, 0], [1, 1])
