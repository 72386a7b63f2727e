"""OpenCV rendering of the camera preview and the annotation layer."""

from __future__ import annotations

from typing import TYPE_CHECKING

import cv2
import numpy as np

from live_detect.camera.pixel_format import to_bgr
from live_detect.core.config import OverlaySettings
from live_detect.core.types import Frame, OverlayAnnotation

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from live_detect.overlay.layer import LayerState

FONT = cv2.FONT_HERSHEY_SIMPLEX
LINE_GAP = 4


def rgba_to_bgr(color: tuple[float, float, float, float]) -> tuple[tuple[int, int, int], float]:
    """Split an RGBA color in [0, 1] into an OpenCV BGR tuple and an alpha."""
    r, g, b, a = color
    return (int(round(b * 255)), int(round(g * 255)), int(round(r * 255))), float(a)


class OverlayRenderer:
    """Draws the portrait preview and the detection annotations on top."""

    def __init__(self, settings: OverlaySettings | None = None) -> None:
        """Initialize renderer with settings.

        Args:
            settings: Overlay styling (uses defaults if None)
        """
        self.settings = settings or OverlaySettings()

    def compose_preview(self, frame: Frame, viewport: tuple[int, int]) -> NDArray[np.uint8]:
        """Render a frame the way a portrait aspect-fill preview shows it.

        The landscape buffer is rotated 90 degrees clockwise, scaled to
        cover the viewport, and center-cropped.

        Args:
            frame: Captured frame in any pixel format
            viewport: (width, height) of the window

        Returns:
            BGR image of exactly the viewport size
        """
        vw, vh = viewport
        bgr = to_bgr(frame.image, frame.pixel_format)
        rotated = cv2.rotate(bgr, cv2.ROTATE_90_CLOCKWISE)
        h, w = rotated.shape[:2]

        scale = max(vw / w, vh / h)
        new_w = max(vw, int(round(w * scale)))
        new_h = max(vh, int(round(h * scale)))
        resized = cv2.resize(rotated, (new_w, new_h), interpolation=cv2.INTER_LINEAR)

        x0 = (new_w - vw) // 2
        y0 = (new_h - vh) // 2
        return np.ascontiguousarray(resized[y0 : y0 + vh, x0 : x0 + vw])

    def draw_layer(self, canvas: NDArray[np.uint8], state: LayerState) -> NDArray[np.uint8]:
        """Draw every annotation of a committed layer snapshot.

        Args:
            canvas: BGR image in screen space (modified copy is returned)
            state: Layer snapshot to draw

        Returns:
            Canvas with annotations
        """
        result = canvas.copy()
        for annotation in state.annotations:
            self._draw_box(result, state, annotation)
            if self.settings.show_labels:
                self._draw_label(result, state, annotation)
        return result

    def render(
        self,
        frame: Frame,
        state: LayerState | None,
        viewport: tuple[int, int],
    ) -> NDArray[np.uint8]:
        """Compose the preview and draw the overlay (if attached)."""
        canvas = self.compose_preview(frame, viewport)
        if state is None:
            return canvas
        return self.draw_layer(canvas, state)

    def _draw_box(
        self,
        image: NDArray[np.uint8],
        state: LayerState,
        annotation: OverlayAnnotation,
    ) -> None:
        """Fill the annotation's screen rect, with rounded corners, in its translucent color."""
        color, alpha = rgba_to_bgr(annotation.fill_color)
        quad = state.map_rect(annotation.bounds)
        x0, y0 = (int(v) for v in np.round(quad.min(axis=0)))
        x1, y1 = (int(v) for v in np.round(quad.max(axis=0)))
        if x1 <= x0 or y1 <= y0:
            return

        overlay = image.copy()
        fill_rounded_rect(overlay, (x0, y0, x1, y1), self.settings.corner_radius, color)
        cv2.addWeighted(overlay, alpha, image, 1.0 - alpha, 0, dst=image)

    def _draw_label(
        self,
        image: NDArray[np.uint8],
        state: LayerState,
        annotation: OverlayAnnotation,
    ) -> None:
        """Draw the label lines centered on the annotation over a drop shadow."""
        color, _ = rgba_to_bgr(annotation.text_color)
        cx, cy = state.map_point(*annotation.position)
        lines = annotation.label.split("\n")
        font_scale = self.settings.font_scale

        sizes = [cv2.getTextSize(line, FONT, font_scale, 1)[0] for line in lines]
        total_h = sum(h for _, h in sizes) + LINE_GAP * (len(lines) - 1)
        y = int(cy - total_h / 2)

        origins: list[tuple[int, int]] = []
        for text_w, text_h in sizes:
            y += text_h
            origins.append((int(cx - text_w / 2), y))
            y += LINE_GAP

        opacity = self.settings.shadow_opacity
        if opacity > 0:
            dx, dy = self.settings.shadow_offset
            shadow = image.copy()
            for line, (x, y) in zip(lines, origins):
                cv2.putText(
                    shadow, line, (x + dx, y + dy), FONT, font_scale, (0, 0, 0), 1, cv2.LINE_AA
                )
            cv2.addWeighted(shadow, opacity, image, 1.0 - opacity, 0, dst=image)

        for line, origin in zip(lines, origins):
            cv2.putText(image, line, origin, FONT, font_scale, color, 1, cv2.LINE_AA)


def fill_rounded_rect(
    image: NDArray[np.uint8],
    corners: tuple[int, int, int, int],
    radius: float,
    color: tuple[int, int, int],
) -> None:
    """Fill (x0, y0)-(x1, y1) with corners rounded to ``radius`` pixels.

    The radius is clamped to half the shorter side.
    """
    x0, y0, x1, y1 = corners
    r = int(round(min(max(radius, 0.0), (x1 - x0) / 2, (y1 - y0) / 2)))
    if r <= 0:
        cv2.rectangle(image, (x0, y0), (x1 - 1, y1 - 1), color, cv2.FILLED)
        return

    cv2.rectangle(image, (x0 + r, y0), (x1 - 1 - r, y1 - 1), color, cv2.FILLED)
    cv2.rectangle(image, (x0, y0 + r), (x1 - 1, y1 - 1 - r), color, cv2.FILLED)
    left, top, right, bottom = x0 + r, y0 + r, x1 - 1 - r, y1 - 1 - r
    for cx, cy in ((left, top), (right, top), (left, bottom), (right, bottom)):
        cv2.circle(image, (cx, cy), r, color, cv2.FILLED, cv2.LINE_AA)
