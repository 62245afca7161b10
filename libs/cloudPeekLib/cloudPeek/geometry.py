"""Static reference geometry: floor grid and coordinate axes."""

import numpy as np

AXIS_COLORS = (
    (1.0, 0.0, 0.0),   # X red
    (0.0, 1.0, 0.0),   # Y green
    (0.0, 0.0, 1.0),   # Z blue
)


def grid_line_count(size: float, step: float) -> int:
    """Number of grid lines drawn along each axis."""
    return int(round(2.0 * size / step)) + 1


def build_grid_vertices(size: float, step: float) -> np.ndarray:
    """Line list for a square grid on the X-Y plane (Z = 0).

    Returns:
        (4 * lines, 3) float32, two vertices per line, lines parallel to Y
        interleaved with lines parallel to X.
    """
    if size <= 0.0 or step <= 0.0:
        raise ValueError("grid size and step must be positive")
    offsets = np.linspace(-size, size, grid_line_count(size, step), dtype=np.float32)

    verts = []
    for i in offsets:
        verts.append((i, -size, 0.0))
        verts.append((i, size, 0.0))
        verts.append((-size, i, 0.0))
        verts.append((size, i, 0.0))
    return np.array(verts, dtype=np.float32)


def build_axes_vertices(length: float = 1.0) -> np.ndarray:
    """Three colored unit axes from the origin.

    Returns:
        (6, 6) float32 rows of x, y, z, r, g, b.
    """
    rows = []
    for axis, color in enumerate(AXIS_COLORS):
        tip = [0.0, 0.0, 0.0]
        tip[axis] = length
        rows.append([0.0, 0.0, 0.0, *color])
        rows.append([*tip, *color])
    return np.array(rows, dtype=np.float32)
