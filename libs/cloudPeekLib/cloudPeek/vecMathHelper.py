#!/usr/bin/env python3
"""
Vector Math Helper - 3D vector and 4x4 matrix utilities for the viewer

Matrices are numpy float32 arrays indexed [row, col] in the usual math
convention, so ``a @ b`` applies ``b`` to a vector first. OpenGL expects
column-major storage; use ``to_gl()`` right before handing a matrix to
glUniformMatrix4fv with transpose=GL_FALSE.
"""

import math

import numpy as np


def normalize(vec) -> np.ndarray:
    """Return the unit vector of vec.

    Raises:
        ValueError: for a zero-length vector (direction undefined)
    """
    vec = np.asarray(vec, dtype=np.float64)
    length = np.linalg.norm(vec)
    if length < 1e-12:
        raise ValueError("Cannot normalize a zero-length vector")
    return vec / length


def identity() -> np.ndarray:
    return np.identity(4, dtype=np.float32)


def to_gl(mat: np.ndarray) -> np.ndarray:
    """Flatten a 4x4 matrix into 16 floats in column-major order."""
    return np.ascontiguousarray(np.asarray(mat, dtype=np.float32).T).reshape(16)


def perspective(fov_deg: float, aspect: float, near: float, far: float) -> np.ndarray:
    """Symmetric perspective projection (same layout as gluPerspective).

    Args:
        fov_deg: vertical field of view in degrees
        aspect: viewport width / height, must be positive
        near, far: clip plane distances, 0 < near < far

    Raises:
        ValueError: on non-positive aspect or invalid clip planes
    """
    if not aspect > 0.0:
        raise ValueError(f"Aspect ratio must be positive, got {aspect}")
    if not (0.0 < near < far):
        raise ValueError(f"Invalid clip planes near={near} far={far}")
    if not (0.0 < fov_deg < 180.0):
        raise ValueError(f"Field of view must be in (0, 180) degrees, got {fov_deg}")

    tan_half_fov = math.tan(math.radians(fov_deg) * 0.5)
    mat = np.zeros((4, 4), dtype=np.float32)
    mat[0, 0] = 1.0 / (aspect * tan_half_fov)
    mat[1, 1] = 1.0 / tan_half_fov
    mat[2, 2] = -(far + near) / (far - near)
    mat[2, 3] = -(2.0 * far * near) / (far - near)
    mat[3, 2] = -1.0
    return mat


def look_at(eye, center, up) -> np.ndarray:
    """View matrix looking from eye toward center (same layout as gluLookAt).

    Raises:
        ValueError: if eye equals center or the view direction is parallel to up
    """
    eye = np.asarray(eye, dtype=np.float64)
    center = np.asarray(center, dtype=np.float64)

    f = normalize(center - eye)
    s = np.cross(f, np.asarray(up, dtype=np.float64))
    try:
        s = normalize(s)
    except ValueError:
        raise ValueError("View direction is parallel to the up vector") from None
    u = np.cross(s, f)

    rotation = np.identity(4, dtype=np.float64)
    rotation[0, :3] = s
    rotation[1, :3] = u
    rotation[2, :3] = -f
    return (rotation @ translate(-eye)).astype(np.float32)


def rotate(angle_deg: float, axis) -> np.ndarray:
    """Rotation matrix of angle_deg degrees around axis (right-handed)."""
    x, y, z = normalize(axis)
    angle = math.radians(angle_deg)
    c = math.cos(angle)
    s = math.sin(angle)
    one_c = 1.0 - c

    return np.array([
        [x * x * one_c + c,     x * y * one_c - z * s, x * z * one_c + y * s, 0.0],
        [y * x * one_c + z * s, y * y * one_c + c,     y * z * one_c - x * s, 0.0],
        [x * z * one_c - y * s, y * z * one_c + x * s, z * z * one_c + c,     0.0],
        [0.0,                   0.0,                   0.0,                   1.0],
    ], dtype=np.float32)


def translate(offset) -> np.ndarray:
    mat = identity()
    mat[:3, 3] = np.asarray(offset, dtype=np.float32)
    return mat


def spherical_to_cartesian(distance: float, azimuth_deg: float, elevation_deg: float) -> np.ndarray:
    """Offset from the orbit center for a Z-up orbit camera."""
    az = math.radians(azimuth_deg)
    el = math.radians(elevation_deg)
    return np.array([
        distance * math.cos(el) * math.cos(az),
        distance * math.cos(el) * math.sin(az),
        distance * math.sin(el),
    ], dtype=np.float64)
