"""Detection overlay: geometry, layer state, and OpenCV rendering."""

from live_detect.overlay.annotate import apply_overlay_transform, render_detections
from live_detect.overlay.layer import LayerState, OverlayLayer
from live_detect.overlay.renderer import OverlayRenderer

__all__ = [
    "OverlayLayer",
    "LayerState",
    "OverlayRenderer",
    "render_detections",
    "apply_overlay_transform",
]
