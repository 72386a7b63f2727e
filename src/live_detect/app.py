"""Preview session wiring: capture, detection, and overlay display."""

from __future__ import annotations

import threading
import time

from live_detect.camera.orientation import OrientationTracker
from live_detect.camera.session import CaptureSession
from live_detect.core.config import CameraSettings, Settings, get_settings
from live_detect.core.exceptions import (
    DeviceUnavailableError,
    LiveDetectError,
    SessionConfigurationError,
)
from live_detect.core.logging import get_logger, setup_logging
from live_detect.core.types import CoordinatorState, DeviceOrientation, Frame
from live_detect.overlay.renderer import OverlayRenderer
from live_detect.pipeline.coordinator import PipelineCoordinator
from live_detect.pipeline.dispatch import RenderContext
from live_detect.ui.display import DisplayWindow, KeyAction
from live_detect.ui.hud import HUDRenderer

logger = get_logger(__name__)


class LatestFrame:
    """Single-slot mailbox holding the most recent captured frame."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._frame: Frame | None = None

    def put(self, frame: Frame) -> None:
        with self._lock:
            self._frame = frame

    def get(self) -> Frame | None:
        with self._lock:
            return self._frame


def initial_orientation(camera: CameraSettings) -> DeviceOrientation:
    """Device orientation named by ``camera.default_orientation``.

    Raises:
        SessionConfigurationError: If the name is not a device orientation
    """
    try:
        return DeviceOrientation[camera.default_orientation.upper()]
    except (KeyError, AttributeError) as e:
        raise SessionConfigurationError(
            f"Unknown device orientation {camera.default_orientation!r}"
        ) from e


def run_session(settings: Settings | None = None) -> int:
    """Run the live preview until the user quits or the source ends.

    Returns:
        Exit code (0 success, 1 no device, 2 configuration failure, 3 other)
    """
    settings = settings or get_settings()
    setup_logging(settings.logging)

    logger.info("Starting Live Detect")

    orientation = OrientationTracker()
    render_context = RenderContext()
    coordinator = PipelineCoordinator(render_context, settings)
    session = CaptureSession(settings.camera, orientation)
    display = DisplayWindow(settings.ui)
    renderer = OverlayRenderer(settings.overlay)
    hud = HUDRenderer()
    latest = LatestFrame()

    def on_frame(frame: Frame) -> None:
        latest.put(frame)
        coordinator.on_frame(frame)

    try:
        orientation.set(initial_orientation(settings.camera))
        coordinator.start()
        geometry = session.configure(coordinator.accepted_pixel_formats)

        display.open()
        coordinator.set_buffer_geometry(geometry)
        coordinator.attach(display.bounds)

        if coordinator.state is CoordinatorState.FAILED:
            display.show_message("Model file is missing!", duration_ms=1500)

        session.start(on_frame)

        overlay_enabled = True
        show_hud = settings.ui.show_hud
        last_drawn: tuple[int, int, tuple[int, int]] | None = None
        frame_count = 0
        fps_start = time.time()
        fps = 0.0

        logger.info("Starting preview loop (press 'q' to quit)")

        while True:
            bounds = display.poll_layout()
            if bounds is not None:
                coordinator.update_overlay_transform(bounds)

            render_context.drain()

            frame = latest.get()
            layer = coordinator.layer
            if frame is not None and layer is not None and not display.is_paused:
                key = (frame.index, layer.revision, display.viewport)
                if key != last_drawn:
                    last_drawn = key
                    state = layer.state if overlay_enabled else None
                    output = renderer.render(frame, state, display.viewport)
                    if show_hud:
                        output = hud.render_full_hud(
                            output,
                            stats=coordinator.stats,
                            state=coordinator.state,
                            detection_count=len(layer.annotations),
                            fps=fps,
                            orientation=orientation.orientation,
                            overlay_enabled=overlay_enabled,
                        )
                    display.show_frame(output)
                    frame_count += 1

            action = display.poll_key(wait_ms=1)

            if action == KeyAction.QUIT:
                logger.info("Quit requested")
                break
            elif action == KeyAction.ROTATE_CW:
                orientation.rotate(clockwise=True)
            elif action == KeyAction.ROTATE_CCW:
                orientation.rotate(clockwise=False)
            elif action == KeyAction.TOGGLE_OVERLAY:
                overlay_enabled = not overlay_enabled
                last_drawn = None
            elif action == KeyAction.TOGGLE_HUD:
                show_hud = not show_hud
                last_drawn = None

            if not session.is_running:
                logger.info("Capture ended")
                break

            if not display.is_open:
                break

            elapsed = time.time() - fps_start
            if elapsed > 1.0:
                fps = frame_count / elapsed
                frame_count = 0
                fps_start = time.time()

        return 0

    except DeviceUnavailableError as e:
        logger.error("Session start aborted: %s", e.message)
        return e.exit_code

    except LiveDetectError as e:
        logger.error("Session failed: %s", e.message)
        return e.exit_code

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0

    except Exception as e:
        logger.exception("Unexpected error: %s", e)
        return 3

    finally:
        # Capture stops before the camera and the detector are released
        session.stop()
        coordinator.shutdown()
        display.close()
        logger.info("Live Detect stopped")
