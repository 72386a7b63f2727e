"""Device orientation tracking and image orientation mapping."""

from __future__ import annotations

import threading

import cv2
import numpy as np
from numpy.typing import NDArray

from live_detect.core.logging import get_logger
from live_detect.core.types import DeviceOrientation, ImageOrientation, Rect

logger = get_logger(__name__)

# Back camera: device orientation -> orientation of the buffer handed to the detector
DEVICE_TO_IMAGE_ORIENTATION: dict[DeviceOrientation, ImageOrientation] = {
    DeviceOrientation.PORTRAIT_UPSIDE_DOWN: ImageOrientation.LEFT,
    DeviceOrientation.LANDSCAPE_LEFT: ImageOrientation.UP_MIRRORED,
    DeviceOrientation.LANDSCAPE_RIGHT: ImageOrientation.DOWN,
    DeviceOrientation.PORTRAIT: ImageOrientation.UP,
}

# Order used when simulating a clockwise device rotation
ROTATION_SEQUENCE = [
    DeviceOrientation.PORTRAIT,
    DeviceOrientation.LANDSCAPE_RIGHT,
    DeviceOrientation.PORTRAIT_UPSIDE_DOWN,
    DeviceOrientation.LANDSCAPE_LEFT,
]


def image_orientation_for(orientation: DeviceOrientation) -> ImageOrientation:
    """Map a device orientation to the image orientation used for inference.

    Orientations without an entry (unknown, face up, face down) map to UP.
    """
    return DEVICE_TO_IMAGE_ORIENTATION.get(orientation, ImageOrientation.UP)


def orient_image(
    image: NDArray[np.uint8], orientation: ImageOrientation
) -> NDArray[np.uint8]:
    """Apply an EXIF-style orientation so the result is displayed upright.

    Args:
        image: Packed image array (H, W, C)
        orientation: Orientation of the encoded pixels

    Returns:
        Re-oriented image (the input itself for UP)
    """
    if orientation is ImageOrientation.UP:
        return image
    if orientation is ImageOrientation.UP_MIRRORED:
        result = cv2.flip(image, 1)
    elif orientation is ImageOrientation.DOWN:
        result = cv2.rotate(image, cv2.ROTATE_180)
    elif orientation is ImageOrientation.DOWN_MIRRORED:
        result = cv2.flip(image, 0)
    elif orientation is ImageOrientation.LEFT_MIRRORED:
        result = cv2.transpose(image)
    elif orientation is ImageOrientation.RIGHT:
        result = cv2.rotate(image, cv2.ROTATE_90_CLOCKWISE)
    elif orientation is ImageOrientation.RIGHT_MIRRORED:
        result = cv2.flip(cv2.transpose(image), -1)
    else:
        result = cv2.rotate(image, cv2.ROTATE_90_COUNTERCLOCKWISE)
    return np.asarray(result, dtype=np.uint8)


def native_point(u: float, v: float, orientation: ImageOrientation) -> tuple[float, float]:
    """Map a normalized point in an oriented image back to the native buffer.

    Inverse of ``orient_image`` in [0, 1] coordinates, origin top-left.
    """
    if orientation is ImageOrientation.UP_MIRRORED:
        return 1.0 - u, v
    if orientation is ImageOrientation.DOWN:
        return 1.0 - u, 1.0 - v
    if orientation is ImageOrientation.DOWN_MIRRORED:
        return u, 1.0 - v
    if orientation is ImageOrientation.LEFT_MIRRORED:
        return v, u
    if orientation is ImageOrientation.RIGHT:
        return v, 1.0 - u
    if orientation is ImageOrientation.RIGHT_MIRRORED:
        return 1.0 - v, 1.0 - u
    if orientation is ImageOrientation.LEFT:
        return 1.0 - v, u
    return u, v


def native_rect(rect: Rect, orientation: ImageOrientation) -> Rect:
    """Map a normalized rect in an oriented image back to the native buffer.

    Args:
        rect: Box normalized to the oriented image
        orientation: Orientation that was applied with ``orient_image``

    Returns:
        The same box normalized to the native buffer
    """
    if orientation is ImageOrientation.UP:
        return rect
    x0, y0 = native_point(rect.min_x, rect.min_y, orientation)
    x1, y1 = native_point(rect.max_x, rect.max_y, orientation)
    return Rect(min(x0, x1), min(y0, y1), abs(x1 - x0), abs(y1 - y0))


class OrientationTracker:
    """Holds the current device orientation.

    Written by the UI thread (or a sensor), sampled by the capture thread
    once per frame.
    """

    def __init__(self, initial: DeviceOrientation = DeviceOrientation.PORTRAIT) -> None:
        self._lock = threading.Lock()
        self._orientation = initial

    @property
    def orientation(self) -> DeviceOrientation:
        with self._lock:
            return self._orientation

    def set(self, orientation: DeviceOrientation) -> None:
        """Record a new device orientation."""
        with self._lock:
            changed = orientation is not self._orientation
            self._orientation = orientation
        if changed:
            logger.info("Device orientation: %s", orientation.name)

    def rotate(self, clockwise: bool = True) -> DeviceOrientation:
        """Advance to the next orientation in the rotation sequence.

        Args:
            clockwise: Rotate clockwise (True) or counterclockwise

        Returns:
            The new orientation
        """
        current = self.orientation
        if current in ROTATION_SEQUENCE:
            idx = ROTATION_SEQUENCE.index(current)
        else:
            idx = 0
        step = 1 if clockwise else -1
        new = ROTATION_SEQUENCE[(idx + step) % len(ROTATION_SEQUENCE)]
        self.set(new)
        return new
