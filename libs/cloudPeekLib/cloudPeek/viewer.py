#!/usr/bin/env python3
"""
Point cloud viewer - public entry point

Combines the streaming pipeline with the Qt OpenGL window:

    viewer = PointCloudViewer()
    threading.Thread(target=my_loader, args=(viewer,), daemon=True).start()
    viewer.run()          # blocks until the window is closed

Producers may call add_points()/set_points() from any thread, before or during
run(). Batches queued before run() are merged as soon as the ingest worker
starts.
"""

import logging
import sys
from typing import Optional

from .config import ViewerConfig
from .context import ViewerContext
from .errors import ViewerSetupError
from .points import PointBatch
from .streaming import StreamItem

logger = logging.getLogger(__name__)


class PointCloudViewer:
    """Thread-safe facade over one viewer context."""

    def __init__(self, config: Optional[ViewerConfig] = None):
        self._context = ViewerContext(config)

    @property
    def context(self) -> ViewerContext:
        return self._context

    @property
    def config(self) -> ViewerConfig:
        return self._context.config

    # =========================================================================
    # Producer API (any thread)
    # =========================================================================

    def add_points(self, batch) -> bool:
        """
        Queue points to append to the cloud.

        Args:
            batch: PointBatch, sequence of Point / tuples, (N, 3) array or
                POINT_DTYPE records; arrays are copied, so the caller may
                reuse its buffer

        Returns:
            True if queued (or empty), False if the viewer is already shut down
        """
        batch = PointBatch.coerce(batch)
        if len(batch) == 0:
            return True
        return self._context.queue.push(StreamItem(batch))

    def add_arrays(self, positions, colors=None) -> bool:
        """Queue points given as (N, 3) positions and optional (N, 3) 0-255 colors."""
        return self.add_points(PointBatch.from_arrays(positions, colors))

    def set_points(self, batch) -> bool:
        """Replace the whole cloud with this batch, after all earlier queued batches."""
        batch = PointBatch.coerce(batch)
        return self._context.queue.push(StreamItem(batch, replace=True))

    def clear_points(self) -> bool:
        return self.set_points(PointBatch.empty())

    def is_running(self) -> bool:
        return self._context.is_running()

    def stop(self):
        """Request shutdown. Producers should check is_running() and return."""
        self._context.stop()

    @property
    def point_count(self) -> int:
        """Points currently in the store (merged, not just queued)."""
        return self._context.store.point_count

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> bool:
        """Start the ingest worker without opening a window."""
        return self._context.worker.start()

    def close(self):
        """Stop and wait for the ingest worker to drain the queue."""
        self._context.shutdown_ingest()

    def run(self, window_width: Optional[int] = None, window_height: Optional[int] = None) -> bool:
        """Open the viewer window and block until it is closed.

        Args:
            window_width: initial window width (default: config value)
            window_height: initial window height (default: config value)

        Returns:
            True if the window closed normally

        Raises:
            ViewerSetupError: if the window or the OpenGL resources could not be created
        """
        try:
            from PyQt5 import QtWidgets
            from .vizWidget import ViewerWindow
        except ImportError as e:
            self.close()
            raise ViewerSetupError(
                f"PyQt5/PyOpenGL not available: {e} (install: pip install PyQt5 PyOpenGL)") from e

        overrides = {}
        if window_width is not None:
            overrides["window_width"] = int(window_width)
        if window_height is not None:
            overrides["window_height"] = int(window_height)
        if overrides:
            self._context.config = self._context.config.with_overrides(**overrides)
            self._context.set_viewport(self._context.config.window_width,
                                       self._context.config.window_height)

        app = QtWidgets.QApplication.instance() or QtWidgets.QApplication(sys.argv)
        self.start()

        window = None
        try:
            window = ViewerWindow(self._context)
            window.show()
            if not window.gl_widget.isValid():
                raise ViewerSetupError("Failed to create an OpenGL 3.3 context")

            logger.info("Running viewer. Close the window or press Escape to exit...")
            exit_code = app.exec_()

            if window.gl_widget.setup_error is not None:
                raise window.gl_widget.setup_error
            return exit_code == 0
        finally:
            if window is not None:
                window.gl_widget.shutdown()
            self.close()
            logger.info("Viewer has been closed (%d points)", self.point_count)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
