"""Pixel format conversions between capture, preview, and inference."""

from __future__ import annotations

import cv2
import numpy as np
from numpy.typing import NDArray

from live_detect.core.types import PixelFormat

_FROM_BGR = {
    PixelFormat.RGB: cv2.COLOR_BGR2RGB,
    PixelFormat.YUV420F: cv2.COLOR_BGR2YUV_I420,
}

_TO_BGR = {
    PixelFormat.RGB: cv2.COLOR_RGB2BGR,
    PixelFormat.YUV420F: cv2.COLOR_YUV2BGR_I420,
}

_TO_RGB = {
    PixelFormat.BGR: cv2.COLOR_BGR2RGB,
    PixelFormat.YUV420F: cv2.COLOR_YUV2RGB_I420,
}


def from_bgr(image: NDArray[np.uint8], target: PixelFormat) -> NDArray[np.uint8]:
    """Convert an OpenCV BGR capture into ``target`` layout.

    I420 requires even dimensions; odd edges are cropped by one pixel.
    """
    if target is PixelFormat.BGR:
        return image

    if target is PixelFormat.YUV420F:
        h, w = image.shape[:2]
        image = image[: h - h % 2, : w - w % 2]

    return np.asarray(cv2.cvtColor(image, _FROM_BGR[target]), dtype=np.uint8)


def to_bgr(image: NDArray[np.uint8], source: PixelFormat) -> NDArray[np.uint8]:
    """Convert ``image`` to BGR for display."""
    if source is PixelFormat.BGR:
        return image
    return np.asarray(cv2.cvtColor(image, _TO_BGR[source]), dtype=np.uint8)


def to_rgb(image: NDArray[np.uint8], source: PixelFormat) -> NDArray[np.uint8]:
    """Convert ``image`` to packed RGB for inference."""
    if source is PixelFormat.RGB:
        return image
    return np.asarray(cv2.cvtColor(image, _TO_RGB[source]), dtype=np.uint8)
