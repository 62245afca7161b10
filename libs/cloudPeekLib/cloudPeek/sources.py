#!/usr/bin/env python3
"""
Point sources - background producers that stream file content into a viewer

Each source reads its file on its own daemon thread and hands batches to the
viewer with a short pause between them, so a large file shows up progressively.
A source stops on its own when the viewer stops running.

    source = open_source("scan.pcd", viewer, colorizer=DistanceColorizer())
    source.start()
    viewer.run()
    source.join()
"""

import logging
import os
import threading
from collections import deque
from typing import Iterator, Optional

import numpy as np

from .coloring import DistanceColorizer
from .errors import CloudPeekError
from .points import PointBatch
from .readers import iter_csv_events, iter_raw_events, read_pcd

logger = logging.getLogger(__name__)

PCD_BATCH_SIZE = 10000
PCD_BATCH_DELAY = 0.05
RAW_BATCH_SIZE = 50000
RAW_BATCH_DELAY = 0.02
CSV_CHUNK_SIZE = 5000
CSV_BATCH_DELAY = 0.03
CSV_WINDOW = 50000.0      # time units of the t column (microseconds)
CSV_DEPTH = 100.0         # z extent of one window

ON_COLOR = (255, 80, 80)
OFF_COLOR = (80, 160, 255)


class PointSource:
    """Base class: subclasses implement batches(); the base class streams them."""

    kind = "points"

    def __init__(self, path: str, viewer, batch_delay: float = 0.0):
        self.path = path
        self.viewer = viewer
        self.batch_delay = batch_delay

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

        # Statistics
        self.batches_sent = 0
        self.points_sent = 0
        self.error: Optional[Exception] = None

    def batches(self) -> Iterator[PointBatch]:
        raise NotImplementedError

    def emit(self, batch: PointBatch) -> bool:
        """Hand one batch to the viewer. Returns False if it was not accepted."""
        return self.viewer.add_points(batch)

    def is_active(self) -> bool:
        return not self._stop_event.is_set() and self.viewer.is_running()

    def stream(self):
        """Read and emit every batch on the calling thread."""
        logger.info("Streaming %s file %s", self.kind, self.path)
        for batch in self.batches():
            if not self.is_active():
                logger.info("Viewer stopped, %s stops streaming", self.kind)
                return
            if not self.emit(batch):
                return
            self.batches_sent += 1
            self.points_sent += len(batch)
            logger.debug("Added batch %d with %d points", self.batches_sent, len(batch))
            if self.batch_delay > 0 and self._stop_event.wait(self.batch_delay):
                return
        logger.info("Finished streaming %s (%d batches, %d points)",
                    self.path, self.batches_sent, self.points_sent)

    # =========================================================================
    # Thread control
    # =========================================================================

    def start(self) -> threading.Thread:
        if self._thread is None:
            self._thread = threading.Thread(target=self._run, name=f"{type(self).__name__}",
                                            daemon=True)
            self._thread.start()
        return self._thread

    def stop(self):
        self._stop_event.set()

    def join(self, timeout: Optional[float] = None):
        if self._thread is not None:
            self._thread.join(timeout)

    def _run(self):
        try:
            self.stream()
        except CloudPeekError as e:
            self.error = e
            logger.error("Failed to load %s file: %s", self.kind, e)
        except Exception as e:
            self.error = e
            logger.exception("Unexpected error while streaming %s", self.path)


class PCDSource(PointSource):
    """Binary PCD file, optionally recolored by distance"""

    kind = "PCD"

    def __init__(self, path: str, viewer, batch_size: int = PCD_BATCH_SIZE,
                 batch_delay: float = PCD_BATCH_DELAY,
                 colorizer: Optional[DistanceColorizer] = None):
        super().__init__(path, viewer, batch_delay)
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.batch_size = batch_size
        self.colorizer = colorizer

    def batches(self) -> Iterator[PointBatch]:
        cloud = read_pcd(self.path)
        if self.colorizer is not None:
            self.colorizer.prepare(cloud.positions())

        total = len(cloud)
        count = (total + self.batch_size - 1) // self.batch_size
        for i in range(count):
            batch = cloud.slice(i * self.batch_size, (i + 1) * self.batch_size)
            if self.colorizer is not None:
                batch = self.colorizer(batch)
            logger.debug("Prepared batch %d/%d", i + 1, count)
            yield batch


class RawEventSource(PointSource):
    """Raw event-camera dump: one white point per event, z grows with event index"""

    kind = "RAW"

    def __init__(self, path: str, viewer, batch_size: int = RAW_BATCH_SIZE,
                 batch_delay: float = RAW_BATCH_DELAY):
        super().__init__(path, viewer, batch_delay)
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.batch_size = batch_size

    def batches(self) -> Iterator[PointBatch]:
        for positions in iter_raw_events(self.path, self.batch_size):
            yield PointBatch.from_arrays(positions)


class CSVEventSource(PointSource):
    """
    Event log with x,y,p,t rows shown as a sliding time window.

    Every emitted batch replaces the whole cloud with the events of the last
    ``window`` time units; z is the event age scaled to [0, depth] and the
    color encodes polarity.
    """

    kind = "CSV"

    def __init__(self, path: str, viewer, window: float = CSV_WINDOW, depth: float = CSV_DEPTH,
                 chunk_size: int = CSV_CHUNK_SIZE, batch_delay: float = CSV_BATCH_DELAY):
        super().__init__(path, viewer, batch_delay)
        if window <= 0:
            raise ValueError(f"window must be positive, got {window}")
        self.window = window
        self.depth = depth
        self.chunk_size = chunk_size

    def emit(self, batch: PointBatch) -> bool:
        return self.viewer.set_points(batch)

    def window_batch(self, events: np.ndarray, latest: float) -> PointBatch:
        """Build the displayed batch for events inside (latest - window, latest]."""
        positions = np.empty((len(events), 3), dtype=np.float32)
        positions[:, 0] = events["x"]
        positions[:, 1] = events["y"]
        positions[:, 2] = (latest - events["t"]) / self.window * self.depth
        colors = np.where((events["p"] > 0)[:, None], ON_COLOR, OFF_COLOR)
        return PointBatch.from_arrays(positions, colors)

    def batches(self) -> Iterator[PointBatch]:
        chunks = deque()
        for chunk in iter_csv_events(self.path, self.chunk_size):
            if len(chunk) == 0:
                continue
            chunks.append(chunk)
            latest = float(chunk["t"].max())
            cutoff = latest - self.window
            # Drop whole chunks that fell out of the window
            while chunks and float(chunks[0]["t"].max()) <= cutoff:
                chunks.popleft()
            events = np.concatenate(list(chunks))
            yield self.window_batch(events[events["t"] > cutoff], latest)


def open_source(path: str, viewer, colorizer: Optional[DistanceColorizer] = None,
                batch_size: Optional[int] = None, batch_delay: Optional[float] = None,
                window: Optional[float] = None) -> PointSource:
    """Pick a source by file extension (.raw, .csv, anything else is read as PCD)."""
    ext = os.path.splitext(path)[1].lower()
    options = {}
    if batch_delay is not None:
        options["batch_delay"] = batch_delay

    if ext == ".raw":
        if batch_size is not None:
            options["batch_size"] = batch_size
        return RawEventSource(path, viewer, **options)
    if ext == ".csv":
        if batch_size is not None:
            options["chunk_size"] = batch_size
        if window is not None:
            options["window"] = window
        return CSVEventSource(path, viewer, **options)

    if batch_size is not None:
        options["batch_size"] = batch_size
    return PCDSource(path, viewer, colorizer=colorizer, **options)
