"""Main entry point for Live Detect."""

from __future__ import annotations

import argparse
import os
import sys

from live_detect.app import run_session
from live_detect.core.config import get_settings


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Live Detect - camera preview with real-time object detection overlays"
    )
    parser.add_argument(
        "--source",
        help="Camera index or video file path (default: CAMERA_SOURCE or 0)",
    )
    parser.add_argument(
        "--model",
        help="Path to the object detection model (.tflite)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    if args.source is not None:
        os.environ["CAMERA_SOURCE"] = args.source
    if args.model is not None:
        os.environ["DETECTOR_MODEL_PATH"] = args.model
    if args.debug:
        os.environ["LOG_LEVEL"] = "DEBUG"

    get_settings.cache_clear()
    sys.exit(run_session(get_settings()))


if __name__ == "__main__":
    main()
