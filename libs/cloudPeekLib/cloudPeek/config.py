#!/usr/bin/env python3
"""
CloudPeek configuration

Default constants for the viewer and a ViewerConfig dataclass that carries
them, so a viewer instance can override any value without touching globals.
"""

from dataclasses import dataclass, field, replace
from typing import Tuple

# Window settings
WINDOW_WIDTH = 1920
WINDOW_HEIGHT = 1080
WINDOW_TITLE = "CloudPeek Point Cloud Viewer"

# Grid settings (X-Y plane, Z = 0)
GRID_SIZE = 0.5      # half size, 1m square
GRID_STEP = 0.05     # cell size

# Camera settings
INITIAL_TARGET = (0.0, 0.0, 0.0)
INITIAL_DISTANCE = 10.0
INITIAL_AZIMUTH = 0.0
INITIAL_ELEVATION = 20.0
INITIAL_FOV = 45.0
CAMERA_SENSITIVITY = 0.1    # degrees per mouse pixel
ZOOM_SPEED = 0.35           # distance per wheel step
PAN_SPEED = 5.0             # units per second
MIN_DISTANCE = 0.5
MAX_DISTANCE = 150.0
MIN_ELEVATION = -89.0
MAX_ELEVATION = 89.0
NEAR_PLANE = 0.5
FAR_PLANE = MAX_DISTANCE * 2.0

# Grid rotation (degrees per second while key is held)
GRID_ROTATION_SPEED = 50.0

# Point rendering
POINT_SIZE = 2.0
BACKGROUND_COLOR = (0.1, 0.1, 0.1, 1.0)

# Render timer interval (ms), ~60 FPS
FRAME_INTERVAL_MS = 16


@dataclass
class ViewerConfig:
    """Per-viewer settings. Every field defaults to the module constant."""
    window_width: int = WINDOW_WIDTH
    window_height: int = WINDOW_HEIGHT
    window_title: str = WINDOW_TITLE

    grid_size: float = GRID_SIZE
    grid_step: float = GRID_STEP

    initial_target: Tuple[float, float, float] = INITIAL_TARGET
    initial_distance: float = INITIAL_DISTANCE
    initial_azimuth: float = INITIAL_AZIMUTH
    initial_elevation: float = INITIAL_ELEVATION
    fov: float = INITIAL_FOV
    camera_sensitivity: float = CAMERA_SENSITIVITY
    zoom_speed: float = ZOOM_SPEED
    pan_speed: float = PAN_SPEED
    min_distance: float = MIN_DISTANCE
    max_distance: float = MAX_DISTANCE
    near_plane: float = NEAR_PLANE
    far_plane: float = FAR_PLANE

    grid_rotation_speed: float = GRID_ROTATION_SPEED

    point_size: float = POINT_SIZE
    background_color: Tuple[float, float, float, float] = field(default=BACKGROUND_COLOR)
    frame_interval_ms: int = FRAME_INTERVAL_MS

    def __post_init__(self):
        if self.min_distance <= 0.0:
            raise ValueError(f"min_distance must be positive, got {self.min_distance}")
        if self.max_distance < self.min_distance:
            raise ValueError(
                f"max_distance ({self.max_distance}) must not be below min_distance ({self.min_distance})")
        if self.fov <= 0.0 or self.fov >= 180.0:
            raise ValueError(f"fov must be in (0, 180) degrees, got {self.fov}")
        if not (0.0 < self.near_plane < self.far_plane):
            raise ValueError(f"invalid clip planes near={self.near_plane} far={self.far_plane}")
        if self.grid_step <= 0.0 or self.grid_size <= 0.0:
            raise ValueError("grid_size and grid_step must be positive")
        if self.point_size <= 0.0:
            raise ValueError(f"point_size must be positive, got {self.point_size}")
        if self.window_width <= 0 or self.window_height <= 0:
            raise ValueError(
                f"window size must be positive, got {self.window_width}x{self.window_height}")
        # Initial distance is clamped rather than rejected
        self.initial_distance = min(max(self.initial_distance, self.min_distance), self.max_distance)

    def with_overrides(self, **kwargs) -> "ViewerConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **kwargs)
