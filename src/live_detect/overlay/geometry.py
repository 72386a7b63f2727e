"""Buffer-space to screen-space geometry for detection overlays.

Pure functions only: nothing here touches a window, a camera, or a layer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from live_detect.core.types import BufferGeometry, Rect

# Frames arrive in landscape; the preview is portrait
OVERLAY_ROTATION = math.pi / 2


@dataclass(frozen=True, slots=True)
class AffineTransform:
    """2D affine transform mapping (x, y) to (a*x + c*y + tx, b*x + d*y + ty)."""

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    tx: float = 0.0
    ty: float = 0.0

    @classmethod
    def identity(cls) -> AffineTransform:
        return cls()

    @classmethod
    def rotation(cls, angle: float) -> AffineTransform:
        """Rotation by ``angle`` radians (clockwise on a y-down screen)."""
        cos, sin = math.cos(angle), math.sin(angle)
        # Snap values such as cos(pi/2) to exact zeros
        cos, sin = round(cos, 12), round(sin, 12)
        return cls(a=cos, b=sin, c=-sin, d=cos)

    @classmethod
    def scaling(cls, sx: float, sy: float) -> AffineTransform:
        return cls(a=sx, d=sy)

    def then(self, other: AffineTransform) -> AffineTransform:
        """Compose: apply ``self`` first, then ``other``."""
        return AffineTransform(
            a=other.a * self.a + other.c * self.b,
            b=other.b * self.a + other.d * self.b,
            c=other.a * self.c + other.c * self.d,
            d=other.b * self.c + other.d * self.d,
            tx=other.a * self.tx + other.c * self.ty + other.tx,
            ty=other.b * self.tx + other.d * self.ty + other.ty,
        )

    def scaled(self, sx: float, sy: float) -> AffineTransform:
        return self.then(AffineTransform.scaling(sx, sy))

    def apply(self, x: float, y: float) -> tuple[float, float]:
        return self.a * x + self.c * y + self.tx, self.b * x + self.d * y + self.ty

    @property
    def matrix(self) -> NDArray[np.float64]:
        """2x3 matrix in the layout cv2.transform / cv2.warpAffine expect."""
        return np.array(
            [[self.a, self.c, self.tx], [self.b, self.d, self.ty]],
            dtype=np.float64,
        )

    @property
    def is_identity(self) -> bool:
        return self == AffineTransform()


def image_rect_for_normalized_rect(rect: Rect, width: int, height: int) -> Rect:
    """Scale a normalized rectangle to pixel coordinates of a width x height image."""
    return Rect(
        x=rect.x * width,
        y=rect.y * height,
        width=rect.width * width,
        height=rect.height * height,
    )


def overlay_scale(layer_width: float, layer_height: float, geometry: BufferGeometry) -> float:
    """Uniform scale that makes the rotated buffer fill the layer.

    Width and height are swapped because the buffer is landscape while
    the display is portrait. Returns 1.0 when the ratio is not finite,
    which happens while the native dimensions are still unset.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        x_scale = np.float64(layer_width) / np.float64(geometry.height)
        y_scale = np.float64(layer_height) / np.float64(geometry.width)
        scale = float(np.maximum(x_scale, y_scale))

    if not math.isfinite(scale):
        return 1.0
    return scale


def overlay_transform(scale: float) -> AffineTransform:
    """Fixed 90 degree rotation followed by a uniform scale."""
    return AffineTransform.rotation(OVERLAY_ROTATION).scaled(scale, scale)


def format_label(identifier: str, confidence: float) -> str:
    """Two-line annotation text: identifier, then confidence to two decimals."""
    return f"{identifier}\nConfidence: {confidence:.2f}"
