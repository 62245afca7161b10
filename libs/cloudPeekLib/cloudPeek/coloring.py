"""
Distance based point coloring.

Points are colored by Euclidean distance from the origin: near points blue,
far points red (hue 0.66 -> 0.0). The distance that maps to pure red is
chosen by a ColorScale:

    FIXED    constant max distance (default 50 m)
    DATASET  max distance over the full dataset, computed once up front
    BATCH    max distance of each batch on its own
"""

from enum import Enum
from typing import Optional

import numpy as np
from matplotlib.colors import hsv_to_rgb as _mpl_hsv_to_rgb

from .points import PointBatch

DEFAULT_MAX_DISTANCE = 50.0
MAX_HUE = 0.66


class ColorScale(Enum):
    FIXED = "fixed"
    DATASET = "dataset"
    BATCH = "batch"


def hsv_to_rgb(h, s=1.0, v=1.0) -> np.ndarray:
    """Vectorized HSV (all in [0, 1]) to (N, 3) uint8 RGB."""
    h = np.mod(np.atleast_1d(np.asarray(h, dtype=np.float64)), 1.0)
    hsv = np.empty(h.shape + (3,), dtype=np.float64)
    hsv[..., 0] = h
    hsv[..., 1] = np.broadcast_to(s, h.shape)
    hsv[..., 2] = np.broadcast_to(v, h.shape)
    return np.round(_mpl_hsv_to_rgb(hsv) * 255.0).astype(np.uint8)


def max_distance(positions: np.ndarray) -> float:
    """Largest distance from the origin; 1.0 for empty or all-zero input."""
    positions = np.asarray(positions, dtype=np.float32)
    if len(positions) == 0:
        return 1.0
    result = float(np.linalg.norm(positions, axis=1).max())
    return result if result > 0.0 else 1.0


def color_by_distance(positions: np.ndarray, max_dist: float = DEFAULT_MAX_DISTANCE) -> np.ndarray:
    """
    Map point distances to colors.

    Args:
        positions: (N, 3) positions
        max_dist: distance mapped to red; farther points are clamped

    Returns:
        (N, 3) uint8 colors
    """
    if max_dist <= 0.0:
        raise ValueError(f"max_dist must be positive, got {max_dist}")
    positions = np.asarray(positions, dtype=np.float32).reshape(-1, 3)
    distances = np.linalg.norm(positions, axis=1)
    t_norm = np.minimum(distances / max_dist, 1.0)
    return hsv_to_rgb((1.0 - t_norm) * MAX_HUE).reshape(-1, 3)


class DistanceColorizer:
    """Recolors batches according to a ColorScale."""

    def __init__(self, scale: ColorScale = ColorScale.FIXED,
                 max_dist: float = DEFAULT_MAX_DISTANCE):
        if max_dist <= 0.0:
            raise ValueError(f"max_dist must be positive, got {max_dist}")
        self.scale = scale
        self.max_dist = max_dist
        self._dataset_max: Optional[float] = None

    def prepare(self, positions: np.ndarray):
        """Compute the dataset maximum (DATASET scale only)."""
        if self.scale is ColorScale.DATASET:
            self._dataset_max = max_distance(positions)

    def scale_for(self, positions: np.ndarray) -> float:
        if self.scale is ColorScale.BATCH:
            return max_distance(positions)
        if self.scale is ColorScale.DATASET:
            if self._dataset_max is None:
                raise RuntimeError("DistanceColorizer.prepare() must be called for DATASET scale")
            return self._dataset_max
        return self.max_dist

    def __call__(self, batch: PointBatch) -> PointBatch:
        positions = batch.positions()
        return batch.with_colors(color_by_distance(positions, self.scale_for(positions)))
