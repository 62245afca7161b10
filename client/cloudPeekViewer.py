#!/usr/bin/env python3
"""
CloudPeek point cloud viewer

Streams a point file into the viewer window while it is being read:
  .pcd  binary PCD, colored by distance unless --no-color
  .raw  raw event-camera dump
  .csv  x,y,p,t event log, shown as a sliding time window

Controls:
  Left drag / F1      orbit (F1 toggles cursor capture)
  Mouse wheel         zoom
  Arrows / WASD       pan
  Q/E Z/X C/V         rotate the grid
  R reset camera, P toggle points, Delete clear, Esc quit
"""

import sys
import os
import argparse
import logging

# Add paths
repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
libs_path = os.path.join(repo_root, 'libs', 'cloudPeekLib')
if libs_path not in sys.path:
    sys.path.insert(0, libs_path)

from cloudPeek import PointCloudViewer, ViewerConfig, CloudPeekError, setup_logging
from cloudPeek.coloring import ColorScale, DistanceColorizer, DEFAULT_MAX_DISTANCE
from cloudPeek.sources import open_source

DEFAULT_FILE = "data/lidar_kitti_sample.pcd"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CloudPeek streaming point cloud viewer")
    parser.add_argument("file", nargs="?", default=DEFAULT_FILE, help="Point file (.pcd, .raw, .csv)")
    parser.add_argument("--color-scale", choices=[s.value for s in ColorScale], default=ColorScale.DATASET.value,
                        help="How distance coloring picks its maximum distance")
    parser.add_argument("--max-distance", type=float, default=DEFAULT_MAX_DISTANCE,
                        help="Max distance for the 'fixed' color scale (meters)")
    parser.add_argument("--no-color", action="store_true", help="Keep the file's own colors")
    parser.add_argument("--width", type=int, default=None, help="Window width")
    parser.add_argument("--height", type=int, default=None, help="Window height")
    parser.add_argument("--point-size", type=float, default=None, help="Rendered point size in pixels")
    parser.add_argument("--batch-size", type=int, default=None, help="Points per streamed batch")
    parser.add_argument("--delay", type=float, default=None, help="Pause between batches (seconds)")
    parser.add_argument("--window", type=float, default=None, help="CSV time window (t units)")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level")
    parser.add_argument("--log-file", default=None, help="Also write the log to this file")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    logger = setup_logging(getattr(logging, args.log_level), args.log_file)

    if args.file == DEFAULT_FILE:
        logger.info("No file specified. Using default: %s", DEFAULT_FILE)

    overrides = {}
    if args.width is not None:
        overrides["window_width"] = args.width
    if args.height is not None:
        overrides["window_height"] = args.height
    if args.point_size is not None:
        overrides["point_size"] = args.point_size

    try:
        config = ViewerConfig(**overrides)
        colorizer = None
        if not args.no_color:
            colorizer = DistanceColorizer(ColorScale(args.color_scale), args.max_distance)
        viewer = PointCloudViewer(config)
        source = open_source(args.file, viewer, colorizer=colorizer, batch_size=args.batch_size,
                             batch_delay=args.delay, window=args.window)
    except ValueError as e:
        logger.error("Invalid option: %s", e)
        return 2

    source.start()

    try:
        viewer.run()
    except CloudPeekError as e:
        logger.critical("Viewer failed: %s", e)
        return 1
    finally:
        source.stop()
        source.join()

    logger.info("Viewer has been closed. Exiting application.")
    return 0 if source.error is None else 1


if __name__ == "__main__":
    sys.exit(main())
