"""Object detection: the asynchronous detector interface and its MediaPipe backend."""

from live_detect.vision.detector import Detector, MediaPipeDetector, convert_detections

__all__ = ["Detector", "MediaPipeDetector", "convert_detections"]
