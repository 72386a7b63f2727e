"""Live Detect: camera preview with real-time object detection overlays."""

__version__ = "0.1.0"
