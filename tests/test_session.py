"""Tests for the OpenCV capture session."""

from __future__ import annotations

import threading
import time

import cv2
import numpy as np
import pytest

from live_detect.camera.orientation import OrientationTracker
from live_detect.camera.session import CaptureSession
from live_detect.core.config import CameraSettings
from live_detect.core.exceptions import DeviceUnavailableError, SessionConfigurationError
from live_detect.core.types import BufferGeometry, DeviceOrientation, Frame, PixelFormat


def wait_until_stopped(session: CaptureSession, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while session.is_running and time.monotonic() < deadline:
        time.sleep(0.01)


class TestConfigure:
    """Tests for opening the device and reading geometry."""

    def test_reads_native_geometry(self, fake_capture_cls, capture_frames) -> None:
        capture = fake_capture_cls(capture_frames)
        session = CaptureSession(CameraSettings(pixel_format="bgr"), capture_factory=lambda s: capture)

        assert session.configure() == BufferGeometry(1280, 720)
        assert session.is_configured

    def test_applies_preset_to_devices(self, fake_capture_cls, capture_frames) -> None:
        capture = fake_capture_cls(capture_frames)
        session = CaptureSession(
            CameraSettings(preset="vga640x480", pixel_format="bgr"),
            capture_factory=lambda s: capture,
        )
        session.configure()

        assert capture.props[cv2.CAP_PROP_FRAME_WIDTH] == 640
        assert capture.props[cv2.CAP_PROP_FRAME_HEIGHT] == 480

    def test_numeric_string_source_is_device_index(self, fake_capture_cls, capture_frames) -> None:
        sources: list = []

        def factory(source):
            sources.append(source)
            return fake_capture_cls(capture_frames)

        session = CaptureSession(CameraSettings(source="1", pixel_format="bgr"), capture_factory=factory)
        session.configure()

        assert sources == [1]
        assert not session.is_file_source

    def test_device_not_opened(self, fake_capture_cls) -> None:
        session = CaptureSession(
            CameraSettings(pixel_format="bgr"),
            capture_factory=lambda s: fake_capture_cls([], opened=False),
        )
        with pytest.raises(DeviceUnavailableError) as excinfo:
            session.configure()
        assert excinfo.value.source == 0
        assert excinfo.value.exit_code == 1

    def test_factory_failure_is_device_unavailable(self) -> None:
        def factory(source):
            raise OSError("no such device")

        session = CaptureSession(CameraSettings(pixel_format="bgr"), capture_factory=factory)
        with pytest.raises(DeviceUnavailableError, match="no such device"):
            session.configure()

    def test_unaccepted_pixel_format(self, fake_capture_cls, capture_frames) -> None:
        capture = fake_capture_cls(capture_frames)
        session = CaptureSession(
            CameraSettings(pixel_format="yuv420f"), capture_factory=lambda s: capture
        )
        with pytest.raises(SessionConfigurationError) as excinfo:
            session.configure(accepted_formats=[PixelFormat.BGR])
        assert excinfo.value.exit_code == 2

        assert capture.released
        assert not session.is_configured

    def test_first_read_failure(self, fake_capture_cls) -> None:
        capture = fake_capture_cls([])
        session = CaptureSession(CameraSettings(pixel_format="bgr"), capture_factory=lambda s: capture)

        with pytest.raises(SessionConfigurationError, match="video data output"):
            session.configure()
        assert capture.released

    def test_unreadable_dimensions_leave_zero_geometry(
        self, fake_capture_cls, capture_frames
    ) -> None:
        """A failed dimension query is logged, not raised."""
        capture = fake_capture_cls(capture_frames, fail_get=True)
        session = CaptureSession(CameraSettings(pixel_format="bgr"), capture_factory=lambda s: capture)

        geometry = session.configure()
        assert geometry.is_unset

    def test_unreported_dimensions_fall_back_to_first_frame(self, fake_capture_cls) -> None:
        frames = [np.zeros((144, 192, 3), dtype=np.uint8)]
        capture = fake_capture_cls(frames, width=0, height=0)
        session = CaptureSession(CameraSettings(pixel_format="bgr"), capture_factory=lambda s: capture)

        assert session.configure() == BufferGeometry(192, 144)

    def test_start_requires_configure(self) -> None:
        session = CaptureSession(CameraSettings(pixel_format="bgr"))
        with pytest.raises(SessionConfigurationError):
            session.start(lambda frame: None)


class TestCaptureLoop:
    """Tests for frame delivery on the capture thread."""

    def test_file_source_delivers_every_frame(self, fake_capture_cls, capture_frames) -> None:
        received: list[Frame] = []
        session = CaptureSession(
            CameraSettings(source="clip.mp4", pixel_format="bgr"),
            capture_factory=lambda s: fake_capture_cls(capture_frames),
        )
        session.configure()
        session.start(received.append)
        wait_until_stopped(session)

        assert not session.is_running
        assert [f.index for f in received] == [0, 1, 2]
        assert [int(f.image[0, 0, 0]) for f in received] == [0, 40, 80]
        session.stop()

    def test_frames_delivered_off_caller_thread(self, fake_capture_cls, capture_frames) -> None:
        threads: list[str] = []
        session = CaptureSession(
            CameraSettings(source="clip.mp4", pixel_format="bgr"),
            capture_factory=lambda s: fake_capture_cls(capture_frames),
        )
        session.configure()
        session.start(lambda frame: threads.append(threading.current_thread().name))
        wait_until_stopped(session)
        session.stop()

        assert threads
        assert set(threads) == {"VideoDataOutput"}

    def test_frames_carry_current_orientation(self, fake_capture_cls, capture_frames) -> None:
        received: list[Frame] = []
        tracker = OrientationTracker(DeviceOrientation.LANDSCAPE_LEFT)
        session = CaptureSession(
            CameraSettings(source="clip.mp4", pixel_format="bgr"),
            orientation=tracker,
            capture_factory=lambda s: fake_capture_cls(capture_frames),
        )
        session.configure()
        session.start(received.append)
        wait_until_stopped(session)
        session.stop()

        assert {f.orientation for f in received} == {DeviceOrientation.LANDSCAPE_LEFT}

    def test_yuv_frames_keep_luma_height(self, fake_capture_cls, capture_frames) -> None:
        received: list[Frame] = []
        session = CaptureSession(
            CameraSettings(source="clip.mp4", pixel_format="yuv420f"),
            capture_factory=lambda s: fake_capture_cls(capture_frames),
        )
        session.configure()
        session.start(received.append)
        wait_until_stopped(session)
        session.stop()

        assert received
        assert received[0].pixel_format is PixelFormat.YUV420F
        assert received[0].dimensions == (1280, 720)

    def test_callback_error_does_not_stop_capture(self, fake_capture_cls, capture_frames) -> None:
        seen: list[int] = []

        def flaky(frame: Frame) -> None:
            seen.append(frame.index)
            if frame.index == 0:
                raise ValueError("boom")

        session = CaptureSession(
            CameraSettings(source="clip.mp4", pixel_format="bgr"),
            capture_factory=lambda s: fake_capture_cls(capture_frames),
        )
        session.configure()
        session.start(flaky)
        wait_until_stopped(session)
        session.stop()

        assert seen == [0, 1, 2]

    def test_stop_releases_device(self, fake_capture_cls, capture_frames) -> None:
        capture = fake_capture_cls(capture_frames)
        session = CaptureSession(
            CameraSettings(source="clip.mp4", pixel_format="bgr"),
            capture_factory=lambda s: capture,
        )
        with session:
            session.start(lambda frame: None)
        assert capture.released
        assert not session.is_configured

    def test_stop_never_releases_during_read(self, fake_capture_cls, capture_frames) -> None:
        """A read outliving stop_timeout keeps the device until it returns."""

        class SlowCapture(fake_capture_cls):
            def __init__(self, frames) -> None:
                super().__init__(frames)
                self.reads = 0
                self.reading = threading.Event()
                self.released_during_read = False

            def read(self):
                self.reads += 1
                if self.reads == 1:
                    return True, capture_frames[0]
                self.reading.set()
                time.sleep(0.5)
                self.reading.clear()
                return True, capture_frames[0]

            def release(self) -> None:
                self.released_during_read = self.reading.is_set()
                super().release()

        capture = SlowCapture(capture_frames)
        session = CaptureSession(
            CameraSettings(source=0, pixel_format="bgr", stop_timeout=0.05),
            capture_factory=lambda s: capture,
        )
        session.configure()
        session.start(lambda frame: None)
        assert capture.reading.wait(timeout=2.0)

        session.stop()

        assert not capture.released
        assert not session.is_configured

        deadline = time.monotonic() + 2.0
        while not capture.released and time.monotonic() < deadline:
            time.sleep(0.01)
        assert capture.released
        assert not capture.released_during_read

    def test_stop_from_frame_callback(self, fake_capture_cls, capture_frames) -> None:
        capture = fake_capture_cls(capture_frames)
        session = CaptureSession(
            CameraSettings(source="clip.mp4", pixel_format="bgr"),
            capture_factory=lambda s: capture,
        )
        session.configure()
        session.start(lambda frame: session.stop())
        wait_until_stopped(session)

        deadline = time.monotonic() + 2.0
        while not capture.released and time.monotonic() < deadline:
            time.sleep(0.01)
        assert capture.released
