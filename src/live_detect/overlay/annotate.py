"""Layer updates: detections to annotations, and the overlay transform."""

from __future__ import annotations

from live_detect.core.config import OverlaySettings
from live_detect.core.types import BufferGeometry, Detection, OverlayAnnotation, Rect
from live_detect.overlay.geometry import (
    format_label,
    image_rect_for_normalized_rect,
    overlay_scale,
    overlay_transform,
)
from live_detect.overlay.layer import OverlayLayer


def build_annotation(
    detection: Detection,
    geometry: BufferGeometry,
    settings: OverlaySettings | None = None,
) -> OverlayAnnotation:
    """Place one detection in buffer space with its label."""
    settings = settings or OverlaySettings()
    bounds = image_rect_for_normalized_rect(detection.bounding_box, geometry.width, geometry.height)
    return OverlayAnnotation(
        bounds=bounds,
        label=format_label(detection.label, detection.confidence),
        fill_color=settings.fill_color,
        text_color=settings.text_color,
    )


def render_detections(
    layer: OverlayLayer,
    detections: list[Detection],
    geometry: BufferGeometry,
    settings: OverlaySettings | None = None,
) -> None:
    """Replace the layer's annotations with one per detection.

    Clearing and adding happen in a single transaction.
    """
    with layer.transaction() as txn:
        txn.clear()
        for detection in detections:
            txn.add(build_annotation(detection, geometry, settings))


def apply_overlay_transform(
    layer: OverlayLayer,
    parent_bounds: Rect,
    geometry: BufferGeometry,
) -> float:
    """Fit the layer to new parent bounds.

    Sizes the layer to the buffer, rotates and scales it so the buffer
    fills the parent, and centers it on the parent.

    Returns:
        The scale factor applied
    """
    scale = overlay_scale(parent_bounds.width, parent_bounds.height, geometry)
    with layer.transaction() as txn:
        txn.bounds = geometry.bounds
        txn.transform = overlay_transform(scale)
        txn.position = parent_bounds.center
    return scale
