"""
cloudPeek

Streaming 3D point cloud viewer: thread-safe point ingestion, orbit camera and
an OpenGL 3.3 render loop hosted in a Qt window.
"""


"""Lightweight package exports.

This file avoids importing OpenGL and PyQt5 so that the streaming pipeline,
camera math and readers can be used where no display is available. The window
side (renderer, vizWidget) is imported lazily by PointCloudViewer.run().
"""

from .config import ViewerConfig
from .errors import (BatchValidationError, CloudPeekError, GpuError, PointFileError,
                     ViewerSetupError)
from .points import Point, PointBatch
from .viewer import PointCloudViewer
from .logging_config import setup_logging

__all__ = [
	'ViewerConfig',
	'CloudPeekError', 'ViewerSetupError', 'GpuError', 'BatchValidationError', 'PointFileError',
	'Point', 'PointBatch',
	'PointCloudViewer',
	'setup_logging',
]
