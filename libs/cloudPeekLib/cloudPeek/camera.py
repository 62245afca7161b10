#!/usr/bin/env python3
"""
Orbit camera for the point cloud viewer.

The camera circles a target point (shifted by a pan offset in the X-Y plane)
at a given distance, azimuth and elevation. World up is +Z, the normal of the
reference grid, everywhere in the viewer.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

from . import vecMathHelper as vm
from .config import ViewerConfig, MIN_ELEVATION, MAX_ELEVATION

WORLD_UP = (0.0, 0.0, 1.0)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass
class CameraState:
    """Orbit camera parameters. Only the render thread mutates this."""
    target: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    distance: float = 10.0
    azimuth: float = 0.0        # degrees, [0, 360)
    elevation: float = 20.0     # degrees, [-89, 89]
    pan: List[float] = field(default_factory=lambda: [0.0, 0.0])
    fov: float = 45.0

    def copy(self) -> "CameraState":
        return CameraState(list(self.target), self.distance, self.azimuth,
                           self.elevation, list(self.pan), self.fov)


class OrbitCamera:
    """Camera state plus the interaction mapping and the matrix computations."""

    def __init__(self, config: ViewerConfig = None):
        self.config = config or ViewerConfig()
        self.state = self._default_state()

    def _default_state(self) -> CameraState:
        cfg = self.config
        return CameraState(
            target=list(cfg.initial_target),
            distance=_clamp(cfg.initial_distance, cfg.min_distance, cfg.max_distance),
            azimuth=cfg.initial_azimuth % 360.0,
            elevation=_clamp(cfg.initial_elevation, MIN_ELEVATION, MAX_ELEVATION),
            pan=[0.0, 0.0],
            fov=cfg.fov,
        )

    # =========================================================================
    # Interaction mapping
    # =========================================================================

    def orbit(self, dx: float, dy: float):
        """Rotate by a mouse motion sample (pixels). dy > 0 raises the camera."""
        sensitivity = self.config.camera_sensitivity
        s = self.state
        s.azimuth = (s.azimuth + dx * sensitivity) % 360.0
        s.elevation = _clamp(s.elevation + dy * sensitivity, MIN_ELEVATION, MAX_ELEVATION)

    def zoom(self, scroll: float):
        """Move closer for positive scroll steps, farther for negative."""
        s = self.state
        s.distance = _clamp(s.distance - scroll * self.config.zoom_speed,
                            self.config.min_distance, self.config.max_distance)

    def pan(self, dir_x: float, dir_y: float, dt: float):
        """Shift the orbit center along world X/Y, scaled by frame time."""
        step = self.config.pan_speed * dt
        self.state.pan[0] += dir_x * step
        self.state.pan[1] += dir_y * step

    def reset(self):
        """Restore target, distance, azimuth, elevation and pan to defaults."""
        defaults = self._default_state()
        s = self.state
        s.target = defaults.target
        s.distance = defaults.distance
        s.azimuth = defaults.azimuth
        s.elevation = defaults.elevation
        s.pan = defaults.pan

    # =========================================================================
    # Matrices
    # =========================================================================

    def center(self) -> np.ndarray:
        s = self.state
        return np.array([s.target[0] + s.pan[0], s.target[1] + s.pan[1], s.target[2]],
                        dtype=np.float64)

    def eye(self) -> np.ndarray:
        s = self.state
        return self.center() + vm.spherical_to_cartesian(s.distance, s.azimuth, s.elevation)

    def view_matrix(self) -> np.ndarray:
        return vm.look_at(self.eye(), self.center(), WORLD_UP)

    def projection_matrix(self, aspect: float) -> np.ndarray:
        return vm.perspective(self.state.fov, aspect,
                              self.config.near_plane, self.config.far_plane)

    def matrices(self, viewport: Tuple[int, int]) -> Tuple[np.ndarray, np.ndarray]:
        """(projection, view) for a viewport size. Height is clamped to >= 1."""
        width, height = viewport
        aspect = max(1, int(width)) / float(max(1, int(height)))
        return self.projection_matrix(aspect), self.view_matrix()
