"""
Point and PointBatch value types.

A PointBatch stores its points as interleaved records in a read-only numpy
structured array, one record per point:

    x, y, z : float32   world position
    r, g, b : uint8     display color (default white)

PointBatch(records) copies the caller's array, so producers may reuse their
buffers. Arrays built inside this module are adopted without a copy. Either
way the batch holds the only reference to a read-only array, and it moves
from producer to queue to ingest worker without further copies.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Union

import numpy as np

from .errors import BatchValidationError

POINT_DTYPE = np.dtype([
    ("x", np.float32), ("y", np.float32), ("z", np.float32),
    ("r", np.uint8), ("g", np.uint8), ("b", np.uint8),
])

WHITE = (255, 255, 255)


def _check_records(records):
    if not isinstance(records, np.ndarray) or records.dtype != POINT_DTYPE:
        raise BatchValidationError(
            f"PointBatch records must be a numpy array of dtype {POINT_DTYPE}")
    if records.ndim != 1:
        raise BatchValidationError(f"PointBatch records must be 1-D, got shape {records.shape}")


@dataclass(frozen=True)
class Point:
    """Single point with position and RGB color (defaults to white)"""
    x: float
    y: float
    z: float
    r: int = 255
    g: int = 255
    b: int = 255

    def to_tuple(self) -> tuple:
        return (self.x, self.y, self.z, self.r, self.g, self.b)


class PointBatch:
    """Immutable, ordered group of points transferred as one unit."""

    __slots__ = ("_records",)

    def __init__(self, records: np.ndarray):
        _check_records(records)
        records = records.copy()
        records.flags.writeable = False
        self._records = records

    @classmethod
    def _adopt(cls, records: np.ndarray) -> "PointBatch":
        """Wrap records nobody else holds a writable reference to."""
        _check_records(records)
        records.flags.writeable = False
        batch = cls.__new__(cls)
        batch._records = records
        return batch

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    @classmethod
    def empty(cls) -> "PointBatch":
        return cls._adopt(np.empty(0, dtype=POINT_DTYPE))

    @classmethod
    def from_points(cls, points: Iterable[Union[Point, Sequence[float]]]) -> "PointBatch":
        """Build a batch from Point objects (or (x, y, z[, r, g, b]) tuples)."""
        rows = []
        for p in points:
            if isinstance(p, Point):
                rows.append(p.to_tuple())
                continue
            if len(p) == 3:
                rows.append((p[0], p[1], p[2]) + WHITE)
            elif len(p) == 6:
                rows.append(tuple(p))
            else:
                raise BatchValidationError(
                    f"Point tuples need 3 or 6 values, got {len(p)}")
        return cls._adopt(np.array(rows, dtype=POINT_DTYPE))

    @classmethod
    def from_arrays(cls, positions, colors=None) -> "PointBatch":
        """
        Build a batch from separate arrays.

        Args:
            positions: (N, 3) array-like of floats
            colors: optional (N, 3) array-like of 0-255 values; white if omitted

        Raises:
            BatchValidationError: on wrong shapes or mismatched point counts
        """
        positions = np.asarray(positions, dtype=np.float32)
        if positions.size == 0:
            positions = positions.reshape(0, 3)
        if positions.ndim != 2 or positions.shape[1] != 3:
            raise BatchValidationError(f"positions must have shape (N, 3), got {positions.shape}")

        n = positions.shape[0]
        records = np.empty(n, dtype=POINT_DTYPE)
        records["x"] = positions[:, 0]
        records["y"] = positions[:, 1]
        records["z"] = positions[:, 2]

        if colors is None:
            records["r"] = records["g"] = records["b"] = 255
        else:
            colors = np.asarray(colors)
            if colors.size == 0:
                colors = colors.reshape(0, 3)
            if colors.ndim != 2 or colors.shape[1] != 3:
                raise BatchValidationError(f"colors must have shape (N, 3), got {colors.shape}")
            if colors.shape[0] != n:
                raise BatchValidationError(
                    f"position/color count mismatch: {n} positions, {colors.shape[0]} colors")
            colors = np.clip(colors, 0, 255).astype(np.uint8)
            records["r"] = colors[:, 0]
            records["g"] = colors[:, 1]
            records["b"] = colors[:, 2]
        return cls._adopt(records)

    @classmethod
    def coerce(cls, batch) -> "PointBatch":
        """Accept a PointBatch, a sequence of Points or an (N, 3) array."""
        if isinstance(batch, PointBatch):
            return batch
        if isinstance(batch, np.ndarray):
            if batch.dtype == POINT_DTYPE:
                return cls(batch)
            return cls.from_arrays(batch)
        return cls.from_points(batch)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def records(self) -> np.ndarray:
        """Read-only interleaved records"""
        return self._records

    def positions(self) -> np.ndarray:
        """(N, 3) float32 positions"""
        r = self._records
        return np.stack((r["x"], r["y"], r["z"]), axis=1)

    def colors(self) -> np.ndarray:
        """(N, 3) uint8 colors"""
        r = self._records
        return np.stack((r["r"], r["g"], r["b"]), axis=1)

    def normalized_colors(self) -> np.ndarray:
        """(N, 3) float32 colors scaled to [0, 1]"""
        return self.colors().astype(np.float32) / 255.0

    def with_colors(self, colors) -> "PointBatch":
        """Return a new batch with the same positions and new colors."""
        return PointBatch.from_arrays(self.positions(), colors)

    def slice(self, start: int, stop: Optional[int] = None) -> "PointBatch":
        return PointBatch._adopt(self._records[start:stop])

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        for rec in self._records:
            yield Point(float(rec["x"]), float(rec["y"]), float(rec["z"]),
                        int(rec["r"]), int(rec["g"]), int(rec["b"]))

    def __repr__(self) -> str:
        return f"PointBatch({len(self)} points)"
