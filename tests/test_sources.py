import numpy as np

from cloudPeek.coloring import ColorScale, DistanceColorizer
from cloudPeek.sources import CSVEventSource, PCDSource, RawEventSource, open_source
from cloudPeek.viewer import PointCloudViewer


def _write_xyz_pcd(path, positions):
    positions = np.asarray(positions, dtype="<f4")
    header = (
        "VERSION 0.7\nFIELDS x y z\nSIZE 4 4 4\nTYPE F F F\nCOUNT 1 1 1\n"
        f"WIDTH {len(positions)}\nHEIGHT 1\nPOINTS {len(positions)}\nDATA binary\n"
    )
    with open(path, "wb") as f:
        f.write(header.encode("ascii"))
        f.write(positions.tobytes())


def test_pcd_source_streams_all_batches_in_order(tmp_path):
    positions = np.arange(21, dtype=np.float32).reshape(7, 3)
    path = tmp_path / "cloud.pcd"
    _write_xyz_pcd(path, positions)

    viewer = PointCloudViewer()
    viewer.start()
    source = PCDSource(str(path), viewer, batch_size=3, batch_delay=0.0)
    source.stream()
    viewer.close()

    assert source.batches_sent == 3
    assert source.points_sent == 7
    np.testing.assert_array_equal(viewer.context.store.snapshot().positions, positions)


def test_pcd_source_applies_colorizer(tmp_path):
    path = tmp_path / "cloud.pcd"
    _write_xyz_pcd(path, [[0.0, 0.0, 0.0], [8.0, 0.0, 0.0]])

    viewer = PointCloudViewer()
    viewer.start()
    source = PCDSource(str(path), viewer, batch_delay=0.0,
                       colorizer=DistanceColorizer(ColorScale.DATASET))
    source.stream()
    viewer.close()

    colors = viewer.context.store.snapshot().colors
    np.testing.assert_allclose(colors[1], [1.0, 0.0, 0.0])
    assert colors[0][2] == 1.0


def test_source_stops_with_viewer(tmp_path):
    path = tmp_path / "cloud.pcd"
    _write_xyz_pcd(path, np.zeros((10, 3)))
    viewer = PointCloudViewer()
    viewer.stop()
    source = PCDSource(str(path), viewer, batch_size=2, batch_delay=0.0)
    source.stream()
    assert source.batches_sent == 0


def test_missing_file_is_reported_not_raised(tmp_path):
    viewer = PointCloudViewer()
    source = PCDSource(str(tmp_path / "nope.pcd"), viewer)
    source.start()
    source.join(timeout=5.0)
    assert source.error is not None
    viewer.close()


def test_raw_source(tmp_path):
    words = np.array([(2 << 14) | 1, (8 << 28), (4 << 14) | 3], dtype="<u4")
    path = tmp_path / "spin.raw"
    path.write_bytes(b"% header\n" + words.tobytes())

    viewer = PointCloudViewer()
    viewer.start()
    RawEventSource(str(path), viewer, batch_delay=0.0).stream()
    viewer.close()
    np.testing.assert_allclose(viewer.context.store.snapshot().positions,
                               [[1, 2, 0.0], [3, 4, 0.001]], atol=1e-7)


def test_csv_source_shows_sliding_window(tmp_path):
    path = tmp_path / "events.csv"
    path.write_text("x,y,p,t\n1,1,1,0\n2,2,0,50\n3,3,1,100\n4,4,0,150\n")

    viewer = PointCloudViewer()
    viewer.start()
    source = CSVEventSource(str(path), viewer, window=100.0, depth=10.0, chunk_size=1,
                            batch_delay=0.0)
    source.stream()
    viewer.close()

    snap = viewer.context.store.snapshot()
    # Only events with t in (50, 150] are left
    np.testing.assert_array_equal(snap.positions[:, 0], [3, 4])
    np.testing.assert_allclose(snap.positions[:, 2], [5.0, 0.0])
    assert snap.colors[0][0] > snap.colors[0][2]
    assert snap.colors[1][2] > snap.colors[1][0]


def test_open_source_picks_by_extension():
    viewer = PointCloudViewer()
    assert isinstance(open_source("a.raw", viewer, batch_size=5), RawEventSource)
    assert isinstance(open_source("a.CSV", viewer, window=10.0), CSVEventSource)
    source = open_source("a.pcd", viewer, batch_size=7, batch_delay=0.5)
    assert isinstance(source, PCDSource)
    assert source.batch_size == 7
    assert source.batch_delay == 0.5
    assert isinstance(open_source("a.bin", viewer), PCDSource)
