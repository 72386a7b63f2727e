"""Capture session delivering frames on a private worker thread."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable
from typing import Any

import cv2
import numpy as np
from numpy.typing import NDArray

from live_detect.camera.orientation import OrientationTracker
from live_detect.camera.pixel_format import from_bgr
from live_detect.core.config import PRESET_DIMENSIONS, CameraSettings
from live_detect.core.exceptions import DeviceUnavailableError, SessionConfigurationError
from live_detect.core.logging import get_logger
from live_detect.core.types import BufferGeometry, Frame, PixelFormat

logger = get_logger(__name__)

FrameCallback = Callable[[Frame], None]
CaptureFactory = Callable[[int | str], Any]

# Consecutive failed reads before a live device is considered lost
MAX_READ_FAILURES = 30


def _normalize_source(source: int | str) -> int | str:
    """Treat numeric strings (e.g. from the environment) as device indices."""
    if isinstance(source, str) and source.strip().isdigit():
        return int(source)
    return source


class CaptureSession:
    """Frame source backed by an OpenCV capture device or video file.

    ``configure`` opens the device and reads the buffer geometry once;
    ``start`` spawns the capture thread that hands every frame to a
    callback together with the device orientation at capture time.
    """

    def __init__(
        self,
        settings: CameraSettings | None = None,
        orientation: OrientationTracker | None = None,
        capture_factory: CaptureFactory | None = None,
    ) -> None:
        """Initialize session.

        Args:
            settings: Camera settings (uses defaults if None)
            orientation: Shared orientation tracker
            capture_factory: Builds the capture object (cv2.VideoCapture if None)
        """
        self.settings = settings or CameraSettings()
        self.orientation = orientation or OrientationTracker()
        self._capture_factory: CaptureFactory = capture_factory or cv2.VideoCapture
        self._source = _normalize_source(self.settings.source)
        self._pixel_format = PixelFormat(self.settings.pixel_format)

        self._capture: Any = None
        self._geometry = BufferGeometry()
        self._first_frame: NDArray[np.uint8] | None = None
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self._frame_idx = 0
        self._running = False
        # Guards the capture handoff between stop() and a capture thread that outlives its join
        self._release_lock = threading.Lock()
        self._loop_active = False
        self._deferred_release: Any = None

    @property
    def buffer_geometry(self) -> BufferGeometry:
        """Native frame dimensions, (0, 0) until configured."""
        return self._geometry

    @property
    def pixel_format(self) -> PixelFormat:
        return self._pixel_format

    @property
    def is_configured(self) -> bool:
        return self._capture is not None

    @property
    def is_running(self) -> bool:
        """Check if the capture thread is delivering frames."""
        return self._running

    @property
    def frame_count(self) -> int:
        """Number of frames delivered so far."""
        return self._frame_idx

    @property
    def is_file_source(self) -> bool:
        return isinstance(self._source, str)

    def configure(self, accepted_formats: Iterable[PixelFormat] | None = None) -> BufferGeometry:
        """Open the capture device and read its native dimensions.

        Args:
            accepted_formats: Pixel formats the detector accepts (any if None)

        Returns:
            Buffer geometry of the session

        Raises:
            DeviceUnavailableError: If no device can be opened at the source
            SessionConfigurationError: If the output cannot be attached
        """
        try:
            capture = self._capture_factory(self._source)
        except Exception as e:
            raise DeviceUnavailableError(
                f"Could not open capture source {self._source!r}: {e}", source=self._source
            ) from e

        if capture is None or not capture.isOpened():
            raise DeviceUnavailableError(
                f"No camera available at source {self._source!r}", source=self._source
            )

        if accepted_formats is not None:
            accepted = set(accepted_formats)
            if self._pixel_format not in accepted:
                capture.release()
                raise SessionConfigurationError(
                    f"Pixel format {self._pixel_format.value} is not accepted by the detector"
                )

        if not self.is_file_source:
            width, height = PRESET_DIMENSIONS[self.settings.preset]
            capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)

        ok, first = capture.read()
        if not ok or first is None:
            capture.release()
            raise SessionConfigurationError("Could not add video data output to the session.")

        self._capture = capture
        self._first_frame = np.asarray(first, dtype=np.uint8)
        self._geometry = self._read_geometry(capture, self._first_frame)

        logger.info(
            "Capture session configured (source=%r, %dx%d, format=%s)",
            self._source,
            self._geometry.width,
            self._geometry.height,
            self._pixel_format.value,
        )
        return self._geometry

    def _read_geometry(self, capture: Any, first: NDArray[np.uint8]) -> BufferGeometry:
        """Read the active format dimensions, leaving (0, 0) on failure."""
        try:
            width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))
            height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        except Exception as e:
            logger.error("Could not read capture dimensions: %s", e)
            return BufferGeometry()

        if width <= 0 or height <= 0:
            # Some backends report nothing; the first frame is authoritative then
            height, width = first.shape[:2]

        if self._pixel_format is PixelFormat.YUV420F:
            width -= width % 2
            height -= height % 2

        return BufferGeometry(width=width, height=height)

    def start(self, on_frame: FrameCallback) -> None:
        """Start delivering frames to ``on_frame`` on the capture thread.

        Raises:
            SessionConfigurationError: If the session was never configured
        """
        if self._running:
            return
        if self._capture is None:
            raise SessionConfigurationError("Capture session is not configured")

        self._stop_event.clear()
        self._frame_idx = 0
        self._running = True
        self._loop_active = True
        self._thread = threading.Thread(
            target=self._capture_loop,
            args=(on_frame, self._capture),
            name="VideoDataOutput",
            daemon=True,
        )
        self._thread.start()
        logger.info("Capture session started")

    def stop(self) -> None:
        """Stop the capture thread, then release the device.

        A capture thread still blocked in ``read`` after ``stop_timeout``
        keeps the device; it releases it itself once the read returns.
        """
        self._stop_event.set()

        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.settings.stop_timeout)
        self._thread = None
        self._running = False

        with self._release_lock:
            capture, self._capture = self._capture, None
            if capture is None:
                return
            if self._loop_active:
                self._deferred_release = capture
                logger.warning(
                    "Capture thread did not stop within %.1fs, release deferred to it",
                    self.settings.stop_timeout,
                )
                return

        capture.release()
        logger.info("Capture session stopped (delivered %d frames)", self._frame_idx)

    def _capture_loop(self, on_frame: FrameCallback, capture: Any) -> None:
        """Read frames until stopped or the source is exhausted."""
        start_time = time.monotonic()
        frame_interval = self._file_frame_interval(capture)
        failures = 0
        pending = self._first_frame
        self._first_frame = None

        try:
            while not self._stop_event.is_set():
                if pending is not None:
                    raw, pending = pending, None
                else:
                    ok, raw = capture.read()
                    if not ok or raw is None:
                        if self.is_file_source:
                            logger.info("End of video source after %d frames", self._frame_idx)
                            break
                        failures += 1
                        if failures >= MAX_READ_FAILURES:
                            logger.error("Capture device stopped delivering frames")
                            break
                        continue
                failures = 0

                frame = Frame(
                    image=from_bgr(np.asarray(raw, dtype=np.uint8), self._pixel_format),
                    orientation=self.orientation.orientation,
                    timestamp=time.monotonic() - start_time,
                    index=self._frame_idx,
                    pixel_format=self._pixel_format,
                )
                self._frame_idx += 1

                try:
                    on_frame(frame)
                except Exception:
                    logger.exception("Frame callback failed on frame %d", frame.index)

                if frame_interval > 0:
                    self._stop_event.wait(frame_interval)
        finally:
            self._running = False
            with self._release_lock:
                self._loop_active = False
                deferred, self._deferred_release = self._deferred_release, None
            if deferred is not None:
                deferred.release()
                logger.info("Capture released after the capture thread exited")

    def _file_frame_interval(self, capture: Any) -> float:
        """Seconds between frames when pacing a video file, 0 for live devices."""
        if not self.is_file_source:
            return 0.0
        fps = float(capture.get(cv2.CAP_PROP_FPS) or 0.0)
        return 1.0 / fps if fps > 0 else 0.0

    def __enter__(self) -> CaptureSession:
        """Context manager entry."""
        if not self.is_configured:
            self.configure()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.stop()
