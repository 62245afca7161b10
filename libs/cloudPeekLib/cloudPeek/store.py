#!/usr/bin/env python3
"""
Point Cloud Store

CPU-side copy of every point accepted so far. Positions and normalized colors
are kept in two parallel float32 buffers of shape (capacity, 3); only the first
``count`` rows are valid. A single lock covers both buffers, the count and the
dirty flag.

Rows below ``count`` are never written again once published: appends write past
the end, growth copies into a fresh buffer, and clear/replace swap in new
buffers. That makes a snapshot a pair of read-only views, with no copy taken
under the lock.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .errors import BatchValidationError

logger = logging.getLogger(__name__)

_INITIAL_CAPACITY = 1024


@dataclass(frozen=True)
class CloudSnapshot:
    """Lock-consistent view of the store taken for a GPU upload."""
    positions: np.ndarray   # (N, 3) float32, read-only
    colors: np.ndarray      # (N, 3) float32 in [0, 1], read-only
    generation: int

    @property
    def count(self) -> int:
        return len(self.positions)


def _check_arrays(positions: np.ndarray, colors: np.ndarray):
    if positions.ndim != 2 or positions.shape[1] != 3:
        raise BatchValidationError(f"positions must have shape (N, 3), got {positions.shape}")
    if colors.shape != positions.shape:
        raise BatchValidationError(
            f"position/color shape mismatch: {positions.shape} vs {colors.shape}")


def _readonly(view: np.ndarray) -> np.ndarray:
    view.flags.writeable = False
    return view


class PointCloudStore:
    """Growing, thread-safe point storage with a dirty flag for GPU sync."""

    def __init__(self, initial_capacity: int = _INITIAL_CAPACITY):
        self._lock = threading.Lock()
        self._initial_capacity = max(1, int(initial_capacity))
        self._positions = np.empty((self._initial_capacity, 3), dtype=np.float32)
        self._colors = np.empty((self._initial_capacity, 3), dtype=np.float32)
        self._count = 0
        self._dirty = False
        # Bumped on every mutation, lets consumers tell snapshots apart
        self._generation = 0

    # =========================================================================
    # Writers
    # =========================================================================

    def append(self, positions: np.ndarray, colors: np.ndarray):
        """Append points. Called by the ingest worker."""
        positions = np.asarray(positions, dtype=np.float32)
        colors = np.asarray(colors, dtype=np.float32)
        _check_arrays(positions, colors)

        n = len(positions)
        with self._lock:
            if n:
                self._ensure_capacity(self._count + n)
                self._positions[self._count:self._count + n] = positions
                self._colors[self._count:self._count + n] = colors
                self._count += n
            self._dirty = True
            self._generation += 1

    def replace(self, positions: np.ndarray, colors: np.ndarray):
        """Drop all points and store the given ones, in one lock hold."""
        positions = np.asarray(positions, dtype=np.float32)
        colors = np.asarray(colors, dtype=np.float32)
        _check_arrays(positions, colors)

        n = len(positions)
        capacity = max(self._initial_capacity, n)
        new_positions = np.empty((capacity, 3), dtype=np.float32)
        new_colors = np.empty((capacity, 3), dtype=np.float32)
        new_positions[:n] = positions
        new_colors[:n] = colors

        with self._lock:
            self._positions = new_positions
            self._colors = new_colors
            self._count = n
            self._dirty = True
            self._generation += 1

    def clear(self):
        """Remove all points and mark dirty so the GPU copy empties too."""
        new_positions = np.empty((self._initial_capacity, 3), dtype=np.float32)
        new_colors = np.empty((self._initial_capacity, 3), dtype=np.float32)
        with self._lock:
            self._positions = new_positions
            self._colors = new_colors
            self._count = 0
            self._dirty = True
            self._generation += 1
        logger.debug("Point cloud cleared")

    def mark_dirty(self):
        """Force the next snapshot_if_dirty() to return data (e.g. after a failed upload)."""
        with self._lock:
            self._dirty = True

    # =========================================================================
    # Readers
    # =========================================================================

    def snapshot_if_dirty(self) -> Optional[CloudSnapshot]:
        """Return the current content and clear the dirty flag, or None if clean.

        Check and clear happen under the same lock as append, so a concurrent
        append is either part of this snapshot or leaves the flag set.
        """
        with self._lock:
            if not self._dirty:
                return None
            self._dirty = False
            return self._snapshot_locked()

    def snapshot(self) -> CloudSnapshot:
        """Return the current content without touching the dirty flag."""
        with self._lock:
            return self._snapshot_locked()

    @property
    def point_count(self) -> int:
        with self._lock:
            return self._count

    @property
    def is_dirty(self) -> bool:
        with self._lock:
            return self._dirty

    def __len__(self) -> int:
        return self.point_count

    # =========================================================================
    # Internals (lock held)
    # =========================================================================

    def _snapshot_locked(self) -> CloudSnapshot:
        n = self._count
        return CloudSnapshot(
            positions=_readonly(self._positions[:n]),
            colors=_readonly(self._colors[:n]),
            generation=self._generation,
        )

    def _ensure_capacity(self, needed: int):
        capacity = len(self._positions)
        if needed <= capacity:
            return
        while capacity < needed:
            capacity *= 2
        new_positions = np.empty((capacity, 3), dtype=np.float32)
        new_colors = np.empty((capacity, 3), dtype=np.float32)
        new_positions[:self._count] = self._positions[:self._count]
        new_colors[:self._count] = self._colors[:self._count]
        self._positions = new_positions
        self._colors = new_colors
