#!/usr/bin/env python3
"""Record the annotated preview to a video file.

Runs the full capture -> detection -> overlay pipeline against a camera
or a video file and writes what the preview window would show, for
offline review of detection quality.
"""

from __future__ import annotations

import argparse
import sys
import time
from datetime import datetime
from pathlib import Path

import cv2
from live_detect.app import LatestFrame
from live_detect.camera.orientation import OrientationTracker
from live_detect.camera.session import CaptureSession
from live_detect.core.config import Settings, get_settings
from live_detect.core.exceptions import LiveDetectError
from live_detect.core.logging import get_logger, setup_logging
from live_detect.core.types import Frame, Rect
from live_detect.overlay.renderer import OverlayRenderer
from live_detect.pipeline.coordinator import PipelineCoordinator
from live_detect.pipeline.dispatch import RenderContext

logger = get_logger(__name__)

DEFAULT_OUTPUT_DIR = Path("data/recordings")


def record_annotated(
    settings: Settings,
    output_path: Path,
    duration_seconds: float | None = None,
    fps: float = 30.0,
    show_preview: bool = True,
) -> int:
    """Record annotated preview frames.

    Args:
        settings: Application settings (camera source, model, overlay)
        output_path: Output video file path
        duration_seconds: Maximum recording duration (None = until source ends or 'q')
        fps: Output video frame rate
        show_preview: Mirror the output in a window

    Returns:
        Number of frames recorded
    """
    render_context = RenderContext()
    coordinator = PipelineCoordinator(render_context, settings)
    session = CaptureSession(settings.camera, OrientationTracker())
    renderer = OverlayRenderer(settings.overlay)
    latest = LatestFrame()
    viewport = (settings.ui.display_width, settings.ui.display_height)

    def on_frame(frame: Frame) -> None:
        latest.put(frame)
        coordinator.on_frame(frame)

    coordinator.start()
    try:
        geometry = session.configure(coordinator.accepted_pixel_formats)
    except LiveDetectError:
        coordinator.shutdown()
        raise
    coordinator.set_buffer_geometry(geometry)
    layer = coordinator.attach(Rect(0.0, 0.0, float(viewport[0]), float(viewport[1])))

    fourcc = cv2.VideoWriter_fourcc(*"mp4v")
    writer = cv2.VideoWriter(str(output_path), fourcc, fps, viewport)

    if not writer.isOpened():
        logger.error("Could not open video writer")
        session.stop()
        coordinator.shutdown()
        return 0

    logger.info(
        "Recording to %s (%dx%d @ %.1f fps)",
        output_path,
        viewport[0],
        viewport[1],
        fps,
    )
    if show_preview:
        logger.info("Press 'q' to stop recording")
        cv2.namedWindow("Recording", cv2.WINDOW_NORMAL)

    frame_count = 0
    last_index = -1
    start_time = time.time()

    try:
        session.start(on_frame)

        while session.is_running:
            render_context.drain()

            frame = latest.get()
            if frame is None or frame.index == last_index:
                time.sleep(0.002)
                continue
            last_index = frame.index

            output = renderer.render(frame, layer.state, viewport)
            writer.write(output)
            frame_count += 1

            elapsed = time.time() - start_time

            if show_preview:
                cv2.imshow("Recording", output)
                key = cv2.waitKey(1) & 0xFF
                if key == ord("q"):
                    logger.info("Recording stopped by user")
                    break

            if duration_seconds and elapsed >= duration_seconds:
                logger.info("Recording duration reached")
                break

    finally:
        session.stop()
        coordinator.shutdown()
        writer.release()
        if show_preview:
            cv2.destroyAllWindows()

    logger.info(
        "Recorded %d frames to %s (%d detection results rendered)",
        frame_count,
        output_path,
        coordinator.stats.results_rendered,
    )
    return frame_count


def main() -> int:
    """Run recording script."""
    parser = argparse.ArgumentParser(description="Record the annotated detection preview")
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Output video file path (default: auto-generated)",
    )
    parser.add_argument(
        "--duration",
        "-d",
        type=float,
        help="Maximum recording duration in seconds",
    )
    parser.add_argument(
        "--fps",
        type=float,
        default=30.0,
        help="Output frame rate (default: 30)",
    )
    parser.add_argument(
        "--no-preview",
        action="store_true",
        help="Do not open a preview window",
    )

    args = parser.parse_args()

    settings = get_settings()
    setup_logging(settings.logging)

    if args.output is None:
        DEFAULT_OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        args.output = DEFAULT_OUTPUT_DIR / f"session_{timestamp}.mp4"

    args.output.parent.mkdir(parents=True, exist_ok=True)

    try:
        frame_count = record_annotated(
            settings,
            args.output,
            duration_seconds=args.duration,
            fps=args.fps,
            show_preview=not args.no_preview,
        )
    except LiveDetectError as e:
        logger.error("Recording failed: %s", e)
        return 1

    return 0 if frame_count > 0 else 1


if __name__ == "__main__":
    sys.exit(main())
