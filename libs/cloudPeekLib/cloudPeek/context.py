#!/usr/bin/env python3
"""
Viewer context

Everything one viewer instance owns for its lifetime: configuration, the shared
streaming pipeline (queue, worker, store), the running flag, and the render
thread's private state (camera, grid rotation, input tracking, viewport).
The context is created once and passed explicitly to the render loop.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional, Set, Tuple

import numpy as np

from . import vecMathHelper as vm
from .camera import OrbitCamera
from .config import ViewerConfig
from .enums import Key
from .store import PointCloudStore
from .streaming import IngestWorker, StreamingQueue

logger = logging.getLogger(__name__)


@dataclass
class GridRotation:
    """Rotation of the reference grid in degrees, independent of the camera"""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def rotate(self, axis: int, degrees: float):
        if axis == 0:
            self.x += degrees
        elif axis == 1:
            self.y += degrees
        elif axis == 2:
            self.z += degrees
        else:
            raise ValueError(f"Invalid axis index {axis}")

    def model_matrix(self) -> np.ndarray:
        return (vm.rotate(self.x, (1.0, 0.0, 0.0))
                @ vm.rotate(self.y, (0.0, 1.0, 0.0))
                @ vm.rotate(self.z, (0.0, 0.0, 1.0)))


@dataclass
class InputState:
    """Render-thread input tracking between frames"""
    held_keys: Set[Key] = field(default_factory=set)
    cursor_captured: bool = False
    dragging: bool = False
    first_mouse: bool = True
    last_x: float = 0.0
    last_y: float = 0.0
    close_requested: bool = False


class ViewerContext:
    """Process-lifetime state shared by the render loop and the ingest side."""

    def __init__(self, config: Optional[ViewerConfig] = None,
                 store: Optional[PointCloudStore] = None,
                 queue: Optional[StreamingQueue] = None):
        self.config = config or ViewerConfig()

        # Streaming pipeline
        self.store = store or PointCloudStore()
        self.queue = queue or StreamingQueue()
        self.worker = IngestWorker(self.queue, self.store)

        # Cleared once, by window close or stop()
        self.running = threading.Event()
        self.running.set()

        # Render-thread state
        self.camera = OrbitCamera(self.config)
        self.grid = GridRotation()
        self.input = InputState(last_x=self.config.window_width / 2.0,
                                last_y=self.config.window_height / 2.0)
        self.viewport: Tuple[int, int] = (self.config.window_width, self.config.window_height)
        self.show_points = True

        self._ingest_closed = False
        self._close_lock = threading.Lock()

    def set_viewport(self, width: int, height: int):
        # Height never reaches zero so the aspect ratio stays defined
        self.viewport = (max(1, int(width)), max(1, int(height)))

    def is_running(self) -> bool:
        return self.running.is_set()

    def stop(self):
        """Clear the running flag and wake the ingest worker."""
        if self.running.is_set():
            logger.info("Stop requested")
        self.running.clear()
        self.queue.shutdown()

    def shutdown_ingest(self):
        """Stop, then wait for the worker to drain the queue and exit."""
        self.stop()
        with self._close_lock:
            if self._ingest_closed:
                return
            self._ingest_closed = True
        self.worker.join()
        if self.queue.dropped_after_shutdown:
            logger.info("Discarded %d batches pushed after shutdown",
                        self.queue.dropped_after_shutdown)
