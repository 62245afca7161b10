#!/usr/bin/env python3
"""
Streaming hand-off between point producers and the point cloud store.

Producers push PointBatch items onto a StreamingQueue from any thread. A single
IngestWorker thread drains the queue, converts each batch's interleaved records
into separate position/color arrays and merges them into the PointCloudStore.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Optional

from .points import PointBatch
from .store import PointCloudStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreamItem:
    """One queued unit of work: a batch to append, or to replace the cloud with."""
    batch: PointBatch
    replace: bool = False


class StreamingQueue:
    """Thread-safe FIFO of stream items with blocking pop and shutdown."""

    def __init__(self):
        self._items = deque()
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._shutdown = False
        self.dropped_after_shutdown = 0

    def push(self, item: StreamItem) -> bool:
        """Append an item and wake one consumer.

        Returns:
            True if queued, False if the queue was already shut down (the item
            is discarded; this is not an error).
        """
        with self._not_empty:
            if self._shutdown:
                self.dropped_after_shutdown += 1
                return False
            self._items.append(item)
            self._not_empty.notify()
        return True

    def pop_blocking(self) -> Optional[StreamItem]:
        """Block until an item is available or shutdown is requested.

        Returns:
            The oldest item, or None once shut down and fully drained.
        """
        with self._not_empty:
            while not self._items and not self._shutdown:
                self._not_empty.wait()
            if self._items:
                return self._items.popleft()
            return None

    def shutdown(self):
        """Stop accepting items and wake every waiter. Safe to call repeatedly."""
        with self._not_empty:
            self._shutdown = True
            self._not_empty.notify_all()

    @property
    def is_shutdown(self) -> bool:
        with self._lock:
            return self._shutdown

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class IngestWorker:
    """Background thread that merges queued batches into the store in FIFO order."""

    def __init__(self, queue: StreamingQueue, store: PointCloudStore, name: str = "IngestWorker"):
        self.queue = queue
        self.store = store
        self.name = name
        self._thread: Optional[threading.Thread] = None
        self._start_lock = threading.Lock()

        # Statistics
        self.batches_merged = 0
        self.points_merged = 0
        self.failed_batches = 0

    def start(self) -> bool:
        """Start the worker thread. Returns False if it was already started."""
        with self._start_lock:
            if self._thread is not None:
                return False
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()
        logger.info("Ingest worker started")
        return True

    def join(self, timeout: Optional[float] = None):
        if self._thread is not None:
            self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self):
        while True:
            item = self.queue.pop_blocking()
            if item is None:
                break
            try:
                self.merge(item)
            except Exception:
                self.failed_batches += 1
                logger.exception("Failed to merge batch of %d points", len(item.batch))
        logger.info("Ingest worker stopped (%d batches, %d points merged)",
                    self.batches_merged, self.points_merged)

    def merge(self, item: StreamItem):
        """Convert one item and apply it to the store."""
        batch = item.batch
        positions = batch.positions()
        colors = batch.normalized_colors()

        if item.replace:
            self.store.replace(positions, colors)
        elif len(batch) == 0:
            return
        else:
            self.store.append(positions, colors)

        self.batches_merged += 1
        self.points_merged += len(batch)
        logger.debug("Merged batch of %d points (replace=%s)", len(batch), item.replace)
