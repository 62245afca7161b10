import numpy as np
import pytest

from cloudPeek.errors import PointFileError
from cloudPeek.readers import decode_raw_words, iter_csv_events, iter_raw_events, read_pcd


def _write_pcd(path, records, fields, sizes, types, points=None, data="binary", extra_header=""):
    n = len(records)
    header = (
        "# .PCD v0.7 - Point Cloud Data file format\n"
        "VERSION 0.7\n"
        f"FIELDS {' '.join(fields)}\n"
        f"SIZE {' '.join(sizes)}\n"
        f"TYPE {' '.join(types)}\n"
        f"COUNT {' '.join('1' for _ in fields)}\n"
        f"WIDTH {n}\n"
        "HEIGHT 1\n"
        "VIEWPOINT 0 0 0 1 0 0 0\n"
        f"{extra_header}"
    )
    if points is not False:
        header += f"POINTS {n if points is None else points}\n"
    header += f"DATA {data}\n"
    with open(path, "wb") as f:
        f.write(header.encode("ascii"))
        f.write(records.tobytes())


def test_read_pcd_xyz_only_is_white(tmp_path):
    records = np.array([(1.0, 2.0, 3.0), (4.0, 5.0, 6.0)],
                       dtype=[("x", "<f4"), ("y", "<f4"), ("z", "<f4")])
    path = tmp_path / "xyz.pcd"
    _write_pcd(path, records, ["x", "y", "z"], ["4"] * 3, ["F"] * 3)

    batch = read_pcd(str(path))
    np.testing.assert_array_equal(batch.positions(), [[1, 2, 3], [4, 5, 6]])
    np.testing.assert_array_equal(batch.colors(), [[255, 255, 255]] * 2)


def test_read_pcd_packed_rgb_float_and_black_becomes_white(tmp_path):
    rgb = np.array([0x00FF8000, 0x00000000], dtype="<u4").view("<f4")
    records = np.zeros(2, dtype=[("x", "<f4"), ("y", "<f4"), ("z", "<f4"),
                                 ("intensity", "<f4"), ("rgb", "<f4")])
    records["x"] = [1.0, 2.0]
    records["rgb"] = rgb
    path = tmp_path / "rgb.pcd"
    _write_pcd(path, records, ["x", "y", "z", "intensity", "rgb"], ["4"] * 5, ["F"] * 5)

    batch = read_pcd(str(path))
    np.testing.assert_array_equal(batch.colors(), [[255, 128, 0], [255, 255, 255]])
    np.testing.assert_array_equal(batch.positions()[:, 0], [1.0, 2.0])


def test_read_pcd_mixed_field_types(tmp_path):
    records = np.zeros(1, dtype=[("x", "<f8"), ("y", "<f8"), ("z", "<f8"), ("rgba", "<u4"),
                                 ("ring", "<u2")])
    records[0] = (1.5, -2.5, 3.5, 0x000000FF, 7)
    path = tmp_path / "mixed.pcd"
    _write_pcd(path, records, ["x", "y", "z", "rgba", "ring"], ["8", "8", "8", "4", "2"],
               ["F", "F", "F", "U", "U"])

    batch = read_pcd(str(path))
    np.testing.assert_array_equal(batch.positions(), [[1.5, -2.5, 3.5]])
    np.testing.assert_array_equal(batch.colors(), [[0, 0, 255]])


def test_read_pcd_point_count_from_width_and_height(tmp_path):
    records = np.zeros(3, dtype=[("x", "<f4"), ("y", "<f4"), ("z", "<f4")])
    path = tmp_path / "noPoints.pcd"
    _write_pcd(path, records, ["x", "y", "z"], ["4"] * 3, ["F"] * 3, points=False)
    assert len(read_pcd(str(path))) == 3


def test_read_pcd_rejects_ascii(tmp_path):
    records = np.zeros(1, dtype=[("x", "<f4"), ("y", "<f4"), ("z", "<f4")])
    path = tmp_path / "ascii.pcd"
    _write_pcd(path, records, ["x", "y", "z"], ["4"] * 3, ["F"] * 3, data="ascii")
    with pytest.raises(PointFileError):
        read_pcd(str(path))


def test_read_pcd_requires_xyz(tmp_path):
    records = np.zeros(1, dtype=[("x", "<f4"), ("y", "<f4"), ("w", "<f4")])
    path = tmp_path / "noZ.pcd"
    _write_pcd(path, records, ["x", "y", "w"], ["4"] * 3, ["F"] * 3)
    with pytest.raises(PointFileError):
        read_pcd(str(path))


def test_read_pcd_truncated(tmp_path):
    records = np.zeros(2, dtype=[("x", "<f4"), ("y", "<f4"), ("z", "<f4")])
    path = tmp_path / "short.pcd"
    _write_pcd(path, records, ["x", "y", "z"], ["4"] * 3, ["F"] * 3, points=5)
    with pytest.raises(PointFileError):
        read_pcd(str(path))


def test_read_pcd_missing_file(tmp_path):
    with pytest.raises(PointFileError):
        read_pcd(str(tmp_path / "missing.pcd"))


def _raw_word(x, y, kind=0):
    return (kind << 28) | (y << 14) | x


def test_raw_events_skip_header_and_time_high_words(tmp_path):
    words = np.array([_raw_word(5, 7), _raw_word(0, 0, kind=8), _raw_word(1, 2, kind=1)],
                     dtype="<u4")
    path = tmp_path / "events.raw"
    with open(path, "wb") as f:
        f.write(b"% camera: test\n% format EVT\n")
        f.write(words.tobytes())
        f.write(b"\x01\x02")  # trailing partial word

    batches = list(iter_raw_events(str(path), batch_size=1))
    assert [len(b) for b in batches] == [1, 1]
    positions = np.concatenate(batches)
    np.testing.assert_allclose(positions, [[5, 7, 0.0], [1, 2, 0.001]], atol=1e-7)


def test_decode_raw_words_index_offset():
    words = np.array([_raw_word(i, i) for i in range(5)], dtype=np.uint32)
    positions = decode_raw_words(words, start_index=10)
    np.testing.assert_allclose(positions[:, 2], np.arange(10, 15) * 0.001, atol=1e-6)


def test_raw_events_exact_batches(tmp_path):
    words = np.array([_raw_word(i, 0) for i in range(7)], dtype="<u4")
    path = tmp_path / "plain.raw"
    path.write_bytes(words.tobytes())
    assert [len(b) for b in iter_raw_events(str(path), batch_size=3)] == [3, 3, 1]


def test_csv_events_with_header(tmp_path):
    path = tmp_path / "events.csv"
    path.write_text("x,y,p,t\n1,2,1,100\n\n3,4,0,200\n5,6,1,300\n")
    chunks = list(iter_csv_events(str(path), chunk_size=2))
    assert [len(c) for c in chunks] == [2, 1]
    events = np.concatenate(chunks)
    np.testing.assert_array_equal(events["x"], [1, 3, 5])
    np.testing.assert_array_equal(events["p"], [1, 0, 1])
    np.testing.assert_array_equal(events["t"], [100, 200, 300])


def test_csv_events_bad_row(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("1,2,1,100\n3,4,oops,200\n")
    with pytest.raises(PointFileError):
        list(iter_csv_events(str(path)))
