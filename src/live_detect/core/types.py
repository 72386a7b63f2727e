"""Core data types and structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto

import numpy as np
from numpy.typing import NDArray


class DeviceOrientation(Enum):
    """Physical orientation of the capture device."""

    UNKNOWN = auto()
    PORTRAIT = auto()
    PORTRAIT_UPSIDE_DOWN = auto()
    LANDSCAPE_LEFT = auto()
    LANDSCAPE_RIGHT = auto()
    FACE_UP = auto()
    FACE_DOWN = auto()


class ImageOrientation(Enum):
    """EXIF-style orientation applied to an image before inference."""

    UP = 1
    UP_MIRRORED = 2
    DOWN = 3
    DOWN_MIRRORED = 4
    LEFT_MIRRORED = 5
    RIGHT = 6
    RIGHT_MIRRORED = 7
    LEFT = 8


class PixelFormat(Enum):
    """Pixel layouts a capture session can deliver."""

    BGR = "bgr"
    RGB = "rgb"
    # Planar YUV 4:2:0 (I420), full range
    YUV420F = "yuv420f"


@dataclass(frozen=True, slots=True)
class Rect:
    """Axis-aligned rectangle with a top-left origin.

    Used both for normalized boxes (all values in [0, 1]) and for
    pixel-space rectangles.
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def min_x(self) -> float:
        return self.x

    @property
    def min_y(self) -> float:
        return self.y

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def mid_x(self) -> float:
        return self.x + self.width / 2

    @property
    def mid_y(self) -> float:
        return self.y + self.height / 2

    @property
    def center(self) -> tuple[float, float]:
        """Center point as (x, y)."""
        return self.mid_x, self.mid_y

    @property
    def size(self) -> tuple[float, float]:
        """Size as (width, height)."""
        return self.width, self.height

    @classmethod
    def zero(cls) -> Rect:
        return cls(0.0, 0.0, 0.0, 0.0)


@dataclass(slots=True)
class Frame:
    """A captured frame with metadata.

    Attributes:
        image: Pixel data in ``pixel_format`` layout
        orientation: Device orientation sampled at capture time
        timestamp: Seconds since the capture session started
        index: Frame sequence number
        pixel_format: Layout of ``image``
    """

    image: NDArray[np.uint8]
    orientation: DeviceOrientation
    timestamp: float
    index: int
    pixel_format: PixelFormat = PixelFormat.BGR

    @property
    def width(self) -> int:
        """Frame width in pixels."""
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        """Frame height in pixels.

        I420 buffers store the chroma planes below the luma plane, so the
        visible height is two thirds of the array height.
        """
        if self.pixel_format is PixelFormat.YUV420F:
            return int(self.image.shape[0]) * 2 // 3
        return int(self.image.shape[0])

    @property
    def dimensions(self) -> tuple[int, int]:
        """Frame dimensions as (width, height)."""
        return self.width, self.height


@dataclass(frozen=True, slots=True)
class Detection:
    """One labeled object found by the detector.

    Attributes:
        label: Identifier of the top-ranked category
        confidence: Score of that category [0, 1]
        bounding_box: Normalized box relative to the submitted image
    """

    label: str
    confidence: float
    bounding_box: Rect


@dataclass(frozen=True, slots=True)
class BufferGeometry:
    """Native pixel dimensions of frames for one capture session."""

    width: int = 0
    height: int = 0

    @property
    def is_unset(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @property
    def bounds(self) -> Rect:
        """Buffer-space rectangle covering the whole frame."""
        return Rect(0.0, 0.0, float(self.width), float(self.height))


@dataclass(slots=True)
class DetectionRequest:
    """One image submitted for inference, tagged with its sequence token."""

    image: NDArray[np.uint8]
    orientation: ImageOrientation
    token: int
    pixel_format: PixelFormat = PixelFormat.BGR


@dataclass(frozen=True, slots=True)
class OverlayAnnotation:
    """A rectangle and label positioned in the overlay layer's space.

    Attributes:
        bounds: Buffer-space rectangle of the detected object
        label: Text drawn inside the rectangle
        fill_color: RGBA fill in [0, 1]
        text_color: RGBA text color in [0, 1]
        name: Layer name used for debugging
    """

    bounds: Rect
    label: str
    fill_color: tuple[float, float, float, float] = (1.0, 1.0, 0.2, 0.4)
    text_color: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)
    name: str = "Object Rect Layer"

    @property
    def position(self) -> tuple[float, float]:
        """Anchor position (center of the rectangle)."""
        return self.bounds.center


class CoordinatorState(Enum):
    """Lifecycle states of the pipeline coordinator."""

    IDLE = auto()
    AWAITING_MODEL = auto()
    READY = auto()
    FAILED = auto()


@dataclass(slots=True)
class PipelineStats:
    """Counters describing pipeline throughput.

    Attributes:
        frames_seen: Frames delivered to ``on_frame``
        frames_submitted: Requests handed to the detector
        frames_dropped: Requests that failed to dispatch
        results_rendered: Completions drawn onto the overlay
        results_discarded: Completions dropped as stale or after teardown
        detections_by_label: Running count of rendered detections per label
    """

    frames_seen: int = 0
    frames_submitted: int = 0
    frames_dropped: int = 0
    results_rendered: int = 0
    results_discarded: int = 0
    detections_by_label: dict[str, int] = field(default_factory=dict)

    def record_detections(self, detections: list[Detection]) -> None:
        for detection in detections:
            self.detections_by_label[detection.label] = (
                self.detections_by_label.get(detection.label, 0) + 1
            )

    def reset(self) -> None:
        """Clear all counters."""
        self.frames_seen = 0
        self.frames_submitted = 0
        self.frames_dropped = 0
        self.results_rendered = 0
        self.results_discarded = 0
        self.detections_by_label.clear()
