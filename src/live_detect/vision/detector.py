"""Object detection backed by the MediaPipe Tasks API."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import Any, ClassVar

import mediapipe as mp
from mediapipe.tasks import python
from mediapipe.tasks.python import vision

from live_detect.camera.orientation import native_rect, orient_image
from live_detect.camera.pixel_format import to_rgb
from live_detect.core.config import DetectorSettings
from live_detect.core.exceptions import DetectionRequestError, ModelArtifactMissingError
from live_detect.core.logging import get_logger
from live_detect.core.types import (
    Detection,
    DetectionRequest,
    ImageOrientation,
    PixelFormat,
    Rect,
)

logger = get_logger(__name__)

# Invoked with (token, detections) on the detector's own thread
CompletionCallback = Callable[[int, list[Detection]], None]


class Detector(ABC):
    """Asynchronous detector: requests go in, completions come back later."""

    accepted_pixel_formats: ClassVar[frozenset[PixelFormat]] = frozenset(PixelFormat)

    def __init__(self, on_complete: CompletionCallback) -> None:
        self._on_complete = on_complete

    @abstractmethod
    def submit(self, request: DetectionRequest) -> None:
        """Hand a request to the detector without waiting for the result.

        Raises:
            DetectionRequestError: If the request cannot be dispatched
        """

    def close(self) -> None:
        """Release inference resources."""

    def __enter__(self) -> Detector:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()


def resolve_model_path(settings: DetectorSettings) -> Path:
    """Locate the bundled model artifact.

    Raises:
        ModelArtifactMissingError: If the file does not exist
    """
    path = Path(settings.model_path).expanduser()
    if not path.is_file():
        raise ModelArtifactMissingError(f"Model file is missing! ({path})", path=path)
    return path


class MediaPipeDetector(Detector):
    """MediaPipe ObjectDetector running in live-stream mode.

    Converts MediaPipe results to Detection values so no MediaPipe object
    leaves this module. Request tokens double as the strictly increasing
    timestamps MediaPipe requires in live-stream mode. The orientation of
    each in-flight request is kept until its result arrives so boxes can be
    mapped back to the native buffer.
    """

    def __init__(
        self,
        on_complete: CompletionCallback,
        settings: DetectorSettings | None = None,
    ) -> None:
        """Load the model artifact and build the detector.

        Args:
            on_complete: Receives (token, detections) for each finished request
            settings: Detector settings (uses defaults if None)

        Raises:
            ModelArtifactMissingError: If the artifact is missing or malformed
        """
        super().__init__(on_complete)
        self.settings = settings or DetectorSettings()
        self._orientations: dict[int, ImageOrientation] = {}
        self._orientations_lock = threading.Lock()
        model_path = resolve_model_path(self.settings)

        try:
            options = vision.ObjectDetectorOptions(
                base_options=python.BaseOptions(model_asset_path=str(model_path)),
                running_mode=vision.RunningMode.LIVE_STREAM,
                max_results=self.settings.max_results,
                score_threshold=self.settings.score_threshold,
                result_callback=self._handle_result,
            )
            self._detector: vision.ObjectDetector | None = (
                vision.ObjectDetector.create_from_options(options)
            )
        except Exception as e:
            raise ModelArtifactMissingError(
                f"Failed to load model {model_path.name}: {e}", path=model_path
            ) from e

        logger.info("MediaPipe ObjectDetector initialized (%s)", model_path.name)

    def submit(self, request: DetectionRequest) -> None:
        if self._detector is None:
            raise DetectionRequestError("Detector is closed", token=request.token)

        with self._orientations_lock:
            self._orientations[request.token] = request.orientation
        try:
            rgb_image = orient_image(
                to_rgb(request.image, request.pixel_format), request.orientation
            )
            mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_image)
            self._detector.detect_async(mp_image, request.token)
        except Exception as e:
            with self._orientations_lock:
                self._orientations.pop(request.token, None)
            raise DetectionRequestError(
                f"Request {request.token} failed: {e}", token=request.token
            ) from e

    def close(self) -> None:
        if self._detector is not None:
            self._detector.close()
            self._detector = None
            logger.info("MediaPipe ObjectDetector closed")
        with self._orientations_lock:
            self._orientations.clear()

    def _take_orientation(self, token: int) -> ImageOrientation:
        """Forget ``token`` and every older request MediaPipe skipped."""
        with self._orientations_lock:
            orientation = self._orientations.pop(token, ImageOrientation.UP)
            for stale in [t for t in self._orientations if t < token]:
                del self._orientations[stale]
        return orientation

    def _handle_result(self, result: Any, output_image: Any, timestamp_ms: int) -> None:
        """MediaPipe result callback, runs on MediaPipe's thread."""
        orientation = self._take_orientation(timestamp_ms)
        detections = convert_detections(
            result, output_image.width, output_image.height, orientation
        )
        self._on_complete(timestamp_ms, detections)


def convert_detections(
    result: Any,
    image_width: int,
    image_height: int,
    orientation: ImageOrientation = ImageOrientation.UP,
) -> list[Detection]:
    """Convert an ObjectDetectorResult into normalized Detection values.

    Only the top category of each detection is kept. Boxes come back
    relative to the oriented image MediaPipe saw and are mapped back to
    the native buffer.

    Args:
        result: MediaPipe ObjectDetectorResult
        image_width: Width of the oriented image the boxes refer to
        image_height: Height of the oriented image the boxes refer to
        orientation: Orientation applied before inference

    Returns:
        Detections with boxes normalized to the native buffer
    """
    if image_width <= 0 or image_height <= 0:
        return []

    detections: list[Detection] = []
    for det in result.detections or []:
        if not det.categories:
            continue
        top = det.categories[0]
        box = det.bounding_box

        x = min(max(box.origin_x / image_width, 0.0), 1.0)
        y = min(max(box.origin_y / image_height, 0.0), 1.0)
        w = min(box.width / image_width, 1.0 - x)
        h = min(box.height / image_height, 1.0 - y)

        detections.append(
            Detection(
                label=top.category_name or top.display_name or str(top.index),
                confidence=float(top.score),
                bounding_box=native_rect(Rect(x, y, max(w, 0.0), max(h, 0.0)), orientation),
            )
        )
    return detections
