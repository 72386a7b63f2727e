"""Camera capture: session, orientation, and pixel formats."""

from live_detect.camera.orientation import (
    OrientationTracker,
    image_orientation_for,
    native_rect,
    orient_image,
)
from live_detect.camera.session import CaptureSession

__all__ = [
    "CaptureSession",
    "OrientationTracker",
    "image_orientation_for",
    "native_rect",
    "orient_image",
]
