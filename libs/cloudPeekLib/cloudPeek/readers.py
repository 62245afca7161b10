#!/usr/bin/env python3
"""
File readers for point and event data

* read_pcd        - PCD point clouds (``DATA binary`` only)
* iter_raw_events - raw event-camera dumps (32 bit words after a ``%`` header)
* iter_csv_events - event logs with ``x,y,p,t`` rows

All readers raise PointFileError for missing files and malformed content.
"""

import csv
import logging
from typing import BinaryIO, Dict, Iterator, List, Tuple

import numpy as np

from .errors import PointFileError
from .points import POINT_DTYPE, PointBatch

logger = logging.getLogger(__name__)

PCD_TYPE_KINDS = {"F": "f", "U": "u", "I": "i"}

# Words whose top nibble is this value carry timestamp high bits, not pixels
RAW_TIME_HIGH_TYPE = 8
RAW_COORD_MASK = 0x3FFF
RAW_Z_SCALE = 0.001

EVENT_DTYPE = np.dtype([("x", np.float32), ("y", np.float32), ("p", np.int8), ("t", np.float64)])


# =========================================================================
# PCD
# =========================================================================

def _parse_pcd_header(f: BinaryIO, path: str) -> Dict[str, List[str]]:
    header: Dict[str, List[str]] = {}
    while True:
        raw = f.readline()
        if not raw:
            raise PointFileError(f"{path}: 'DATA binary' not found in the PCD header")
        line = raw.decode("ascii", errors="replace").strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split()
        key = parts[0].upper()
        header[key] = parts[1:]
        if key == "DATA":
            return header


def _pcd_dtype(header: Dict[str, List[str]], path: str) -> np.dtype:
    fields = header.get("FIELDS")
    if not fields:
        raise PointFileError(f"{path}: PCD header has no FIELDS line")

    n = len(fields)
    sizes = header.get("SIZE", ["4"] * n)
    types = header.get("TYPE", ["F"] * n)
    counts = header.get("COUNT", ["1"] * n)
    if not (len(sizes) == len(types) == len(counts) == n):
        raise PointFileError(f"{path}: FIELDS/SIZE/TYPE/COUNT lengths differ")

    layout = []
    seen = set()
    for i, (name, size, kind, count) in enumerate(zip(fields, sizes, types, counts)):
        if kind.upper() not in PCD_TYPE_KINDS:
            raise PointFileError(f"{path}: unsupported field type '{kind}' for '{name}'")
        try:
            dtype = np.dtype(f"<{PCD_TYPE_KINDS[kind.upper()]}{int(size)}")
            count = int(count)
        except (TypeError, ValueError) as e:
            raise PointFileError(f"{path}: bad SIZE/COUNT for field '{name}'") from e
        # Padding fields ("_") may repeat
        if name in seen:
            name = f"{name}_{i}"
        seen.add(name)
        layout.append((name, dtype) if count == 1 else (name, dtype, (count,)))
    return np.dtype(layout)


def _point_count(header: Dict[str, List[str]], path: str) -> int:
    try:
        points = int(header.get("POINTS", ["0"])[0])
        if points:
            return points
        width = int(header.get("WIDTH", ["0"])[0])
        height = int(header.get("HEIGHT", ["1"])[0])
    except ValueError as e:
        raise PointFileError(f"{path}: invalid POINTS/WIDTH/HEIGHT in PCD header") from e
    if width * height == 0:
        raise PointFileError(f"{path}: number of points not specified in the PCD header")
    return width * height


def _decode_packed_rgb(values: np.ndarray) -> np.ndarray:
    """Split packed 0x00RRGGBB values into (N, 3) uint8; black becomes white."""
    packed = np.ascontiguousarray(values)
    if packed.dtype.itemsize != 4:
        raise PointFileError("packed rgb field must be 4 bytes wide")
    packed = packed.view(np.uint32)
    colors = np.stack(((packed >> 16) & 0xFF, (packed >> 8) & 0xFF, packed & 0xFF), axis=1)
    colors = colors.astype(np.uint8)
    colors[~colors.any(axis=1)] = 255
    return colors


def read_pcd(path: str) -> PointBatch:
    """
    Read a binary PCD file.

    Args:
        path: path to the .pcd file

    Returns:
        PointBatch with all points; white unless the file carries rgb/rgba

    Raises:
        PointFileError: unreadable file, non-binary data or malformed header
    """
    try:
        with open(path, "rb") as f:
            header = _parse_pcd_header(f, path)
            data_format = header["DATA"][0].lower() if header["DATA"] else ""
            if data_format != "binary":
                raise PointFileError(
                    f"{path}: only 'binary' DATA format is supported, got '{data_format}'")
            dtype = _pcd_dtype(header, path)
            count = _point_count(header, path)
            payload = f.read(count * dtype.itemsize)
    except OSError as e:
        raise PointFileError(f"Could not open PCD file {path}: {e}") from e

    if len(payload) < count * dtype.itemsize:
        raise PointFileError(f"{path}: unexpected end of file while reading point data")

    names = dtype.names
    for axis in ("x", "y", "z"):
        if axis not in names:
            raise PointFileError(f"{path}: PCD file must contain x, y, z fields")

    raw = np.frombuffer(payload, dtype=dtype, count=count)
    records = np.empty(count, dtype=POINT_DTYPE)
    records["x"] = raw["x"]
    records["y"] = raw["y"]
    records["z"] = raw["z"]

    color_field = "rgb" if "rgb" in names else ("rgba" if "rgba" in names else None)
    if color_field is not None:
        colors = _decode_packed_rgb(raw[color_field])
        records["r"] = colors[:, 0]
        records["g"] = colors[:, 1]
        records["b"] = colors[:, 2]
    else:
        records["r"] = records["g"] = records["b"] = 255

    logger.info("Successfully read %d points from %s", count, path)
    return PointBatch(records)


# =========================================================================
# Raw event dumps
# =========================================================================

def _skip_raw_header(f: BinaryIO):
    while True:
        pos = f.tell()
        line = f.readline()
        if not line or not line.startswith(b"%"):
            f.seek(pos)
            return


def decode_raw_words(words: np.ndarray, start_index: int = 0) -> np.ndarray:
    """
    Turn raw 32 bit event words into (N, 3) float32 positions.

    Time-high words are dropped; every other word becomes one point with
    x = bits 0-13, y = bits 14-27 and z = event index * 0.001.
    """
    words = np.asarray(words, dtype=np.uint32)
    events = words[(words >> 28) != RAW_TIME_HIGH_TYPE]
    positions = np.empty((len(events), 3), dtype=np.float32)
    positions[:, 0] = events & RAW_COORD_MASK
    positions[:, 1] = (events >> 14) & RAW_COORD_MASK
    positions[:, 2] = np.arange(start_index, start_index + len(events)) * RAW_Z_SCALE
    return positions


def iter_raw_events(path: str, batch_size: int = 50000) -> Iterator[np.ndarray]:
    """
    Stream a raw event dump as (N, 3) position arrays of at most batch_size rows.

    Raises:
        PointFileError: if the file cannot be opened
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    try:
        f = open(path, "rb")
    except OSError as e:
        raise PointFileError(f"Failed to open RAW file {path}: {e}") from e

    with f:
        _skip_raw_header(f)
        index = 0
        pending = np.empty((0, 3), dtype=np.float32)
        while True:
            chunk = f.read(batch_size * 4)
            usable = len(chunk) - len(chunk) % 4
            if usable == 0:
                break
            positions = decode_raw_words(np.frombuffer(chunk[:usable], dtype="<u4"), index)
            index += len(positions)
            pending = np.concatenate((pending, positions)) if len(pending) else positions
            while len(pending) >= batch_size:
                yield pending[:batch_size]
                pending = pending[batch_size:]
            if usable < len(chunk):
                break
        if len(pending):
            yield pending
    logger.info("Read %d events from %s", index, path)


# =========================================================================
# CSV event logs
# =========================================================================

def _parse_event_row(row: List[str]) -> Tuple[float, float, int, float]:
    x, y, p, t = row[:4]
    return float(x), float(y), int(float(p)), float(t)


def iter_csv_events(path: str, chunk_size: int = 10000) -> Iterator[np.ndarray]:
    """
    Stream ``x,y,p,t`` rows as EVENT_DTYPE arrays of at most chunk_size events.

    A first row that is not numeric is treated as a header. Blank lines are
    skipped.

    Raises:
        PointFileError: missing file, short rows or non-numeric values
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    try:
        f = open(path, newline="")
    except OSError as e:
        raise PointFileError(f"Failed to open CSV file {path}: {e}") from e

    with f:
        rows = []
        for line_no, row in enumerate(csv.reader(f), start=1):
            if not row or not "".join(row).strip():
                continue
            if len(row) < 4:
                raise PointFileError(f"{path}:{line_no}: expected x,y,p,t, got {row}")
            try:
                rows.append(_parse_event_row(row))
            except ValueError as e:
                if line_no == 1:
                    continue
                raise PointFileError(f"{path}:{line_no}: invalid event row {row}") from e
            if len(rows) >= chunk_size:
                yield np.array(rows, dtype=EVENT_DTYPE)
                rows = []
        if rows:
            yield np.array(rows, dtype=EVENT_DTYPE)
