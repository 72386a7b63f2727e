"""Pytest fixtures for Live Detect tests."""

from __future__ import annotations

from collections.abc import Callable

import cv2
import numpy as np
import pytest

from live_detect.core.config import CameraSettings, OverlaySettings, Settings
from live_detect.core.exceptions import DetectionRequestError
from live_detect.core.types import (
    BufferGeometry,
    Detection,
    DetectionRequest,
    DeviceOrientation,
    Frame,
    PixelFormat,
    Rect,
)
from live_detect.pipeline.coordinator import PipelineCoordinator
from live_detect.pipeline.dispatch import RenderContext
from live_detect.vision.detector import CompletionCallback, Detector


class FakeDetector(Detector):
    """Detector that records requests and completes them on demand."""

    def __init__(self, on_complete: CompletionCallback) -> None:
        super().__init__(on_complete)
        self.requests: list[DetectionRequest] = []
        self.closed = False
        self.fail_submissions = False

    def submit(self, request: DetectionRequest) -> None:
        if self.fail_submissions:
            raise DetectionRequestError("malformed buffer")
        self.requests.append(request)

    def complete(self, token: int, detections: list[Detection]) -> None:
        """Simulate the detector finishing the request with ``token``."""
        self._on_complete(token, detections)

    def close(self) -> None:
        self.closed = True


class FakeCapture:
    """Stand-in for cv2.VideoCapture serving a fixed list of frames."""

    def __init__(
        self,
        frames: list[np.ndarray],
        opened: bool = True,
        width: int = 1280,
        height: int = 720,
        fail_get: bool = False,
    ) -> None:
        self.frames = list(frames)
        self.opened = opened
        self.width = width
        self.height = height
        self.fail_get = fail_get
        self.released = False
        self.props: dict[int, float] = {}

    def isOpened(self) -> bool:  # noqa: N802 - mirrors cv2.VideoCapture
        return self.opened

    def read(self) -> tuple[bool, np.ndarray | None]:
        if not self.frames:
            return False, None
        return True, self.frames.pop(0)

    def set(self, prop: int, value: float) -> bool:
        self.props[prop] = value
        return True

    def get(self, prop: int) -> float:
        if self.fail_get:
            raise RuntimeError("device locked")
        if prop == cv2.CAP_PROP_FRAME_WIDTH:
            return float(self.width)
        if prop == cv2.CAP_PROP_FRAME_HEIGHT:
            return float(self.height)
        return 0.0

    def release(self) -> None:
        self.released = True


def make_frame(
    index: int = 0,
    orientation: DeviceOrientation = DeviceOrientation.PORTRAIT,
    width: int = 1280,
    height: int = 720,
) -> Frame:
    """Create a black BGR frame."""
    return Frame(
        image=np.zeros((height, width, 3), dtype=np.uint8),
        orientation=orientation,
        timestamp=index / 30.0,
        index=index,
        pixel_format=PixelFormat.BGR,
    )


@pytest.fixture
def settings() -> Settings:
    """Create default settings for testing."""
    return Settings(
        camera=CameraSettings(pixel_format="bgr"),
        overlay=OverlaySettings(),
    )


@pytest.fixture
def geometry() -> BufferGeometry:
    """1280x720 landscape buffer."""
    return BufferGeometry(width=1280, height=720)


@pytest.fixture
def parent_bounds() -> Rect:
    """Portrait view bounds at half the buffer resolution."""
    return Rect(0.0, 0.0, 360.0, 640.0)


@pytest.fixture
def render_context() -> RenderContext:
    return RenderContext()


@pytest.fixture
def detectors() -> list[FakeDetector]:
    """Every FakeDetector built by the coordinator fixture."""
    return []


@pytest.fixture
def coordinator(
    render_context: RenderContext,
    settings: Settings,
    geometry: BufferGeometry,
    detectors: list[FakeDetector],
) -> PipelineCoordinator:
    """Coordinator wired to a FakeDetector (not started)."""

    def factory(on_complete: CompletionCallback) -> Detector:
        detector = FakeDetector(on_complete)
        detectors.append(detector)
        return detector

    return PipelineCoordinator(
        render_context,
        settings,
        detector_factory=factory,
        geometry=geometry,
    )


@pytest.fixture
def frame_factory() -> Callable[..., Frame]:
    return make_frame


@pytest.fixture
def capture_frames() -> list[np.ndarray]:
    """Three small distinguishable BGR frames."""
    return [np.full((720, 1280, 3), i * 40, dtype=np.uint8) for i in range(3)]


@pytest.fixture
def fake_capture_cls() -> type[FakeCapture]:
    return FakeCapture


@pytest.fixture
def cat_detection() -> Detection:
    return Detection(label="cat", confidence=0.87, bounding_box=Rect(0.25, 0.25, 0.5, 0.5))


@pytest.fixture
def full_frame_detection() -> Detection:
    return Detection(label="person", confidence=0.9, bounding_box=Rect(0.0, 0.0, 1.0, 1.0))
