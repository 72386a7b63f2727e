"""Frame-to-overlay pipeline coordination."""

from __future__ import annotations

import itertools
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from live_detect.camera.orientation import image_orientation_for
from live_detect.core.config import Settings, get_settings
from live_detect.core.exceptions import DetectionRequestError, ModelArtifactMissingError
from live_detect.core.logging import get_logger
from live_detect.core.types import (
    BufferGeometry,
    CoordinatorState,
    Detection,
    DetectionRequest,
    Frame,
    PipelineStats,
    PixelFormat,
    Rect,
)
from live_detect.overlay.annotate import apply_overlay_transform, render_detections
from live_detect.overlay.layer import OverlayLayer
from live_detect.pipeline.dispatch import RenderContext
from live_detect.vision.detector import CompletionCallback, Detector, MediaPipeDetector

logger = get_logger(__name__)

DetectorFactory = Callable[[CompletionCallback], Detector]


class PipelineCoordinator:
    """Bridges the capture thread, the asynchronous detector, and the overlay.

    Coordinates:
    - Submitting one detection request per captured frame
    - Tagging each request with a strictly increasing sequence token
    - Marshalling completions onto the rendering context
    - Dropping completions older than the last one rendered
    - Fitting the overlay layer to its parent bounds
    """

    def __init__(
        self,
        render_context: RenderContext,
        settings: Settings | None = None,
        detector_factory: DetectorFactory | None = None,
        geometry: BufferGeometry | None = None,
    ) -> None:
        """Initialize coordinator.

        Args:
            render_context: Queue drained by the rendering thread
            settings: Application settings (uses defaults if None)
            detector_factory: Builds the detector given a completion callback
            geometry: Native buffer geometry, if already known
        """
        self.settings = settings or get_settings()
        self._render_context = render_context
        self._detector_factory = detector_factory or self._create_mediapipe_detector

        # Components
        self._detector: Detector | None = None
        self._layer: OverlayLayer | None = None

        # State
        self._state = CoordinatorState.IDLE
        self._geometry = geometry or BufferGeometry()
        self._parent_bounds: Rect | None = None
        self._tokens = itertools.count(1)
        self._token_lock = threading.Lock()
        self._last_submitted_token = 0
        self._last_rendered_token = 0
        self._stats = PipelineStats()

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def is_ready(self) -> bool:
        """Check if frames are being submitted for detection."""
        return self._state is CoordinatorState.READY

    @property
    def layer(self) -> OverlayLayer | None:
        """Attached overlay layer, None when detached."""
        return self._layer

    @property
    def buffer_geometry(self) -> BufferGeometry:
        return self._geometry

    @property
    def stats(self) -> PipelineStats:
        return self._stats

    @property
    def last_submitted_token(self) -> int:
        return self._last_submitted_token

    @property
    def last_rendered_token(self) -> int:
        return self._last_rendered_token

    @property
    def accepted_pixel_formats(self) -> frozenset[PixelFormat]:
        """Pixel formats the active detector accepts (all if none is loaded)."""
        if self._detector is None:
            return frozenset(PixelFormat)
        return self._detector.accepted_pixel_formats

    def _create_mediapipe_detector(self, on_complete: CompletionCallback) -> Detector:
        return MediaPipeDetector(on_complete, self.settings.detector)

    def start(self) -> CoordinatorState:
        """Load the detector.

        A missing or malformed model leaves the coordinator in FAILED,
        where frames are still accepted but never submitted.

        Returns:
            The resulting state
        """
        if self._state is not CoordinatorState.IDLE:
            logger.warning("Coordinator already started (%s)", self._state.name)
            return self._state

        self._state = CoordinatorState.AWAITING_MODEL
        try:
            self._detector = self._detector_factory(self.on_detection_complete)
        except ModelArtifactMissingError as e:
            self._state = CoordinatorState.FAILED
            logger.error("Detection disabled for this session: %s", e.message)
            return self._state

        self._state = CoordinatorState.READY
        logger.info("Pipeline coordinator ready")
        return self._state

    def shutdown(self) -> None:
        """Close the detector and detach the overlay.

        Completions still in flight are discarded when they arrive.
        """
        self.detach()
        if self._detector is not None:
            self._detector.close()
            self._detector = None
        self._state = CoordinatorState.IDLE
        logger.info(
            "Pipeline coordinator shutdown (%d submitted, %d rendered, %d dropped)",
            self._stats.frames_submitted,
            self._stats.results_rendered,
            self._stats.frames_dropped,
        )

    def set_buffer_geometry(self, geometry: BufferGeometry) -> None:
        """Record the session's native frame size and refit the layer.

        Must be called on the rendering thread.
        """
        self._geometry = geometry
        logger.info("Buffer geometry: %dx%d", geometry.width, geometry.height)
        if self._parent_bounds is not None:
            self.update_overlay_transform(self._parent_bounds)

    def on_frame(self, frame: Frame) -> None:
        """Submit a captured frame for detection without waiting.

        Runs on the capture thread. Frames that fail to dispatch are
        logged and dropped.
        """
        self._stats.frames_seen += 1
        detector = self._detector
        if self._state is not CoordinatorState.READY or detector is None:
            return

        with self._token_lock:
            token = next(self._tokens)
            self._last_submitted_token = token

        request = DetectionRequest(
            image=frame.image,
            orientation=image_orientation_for(frame.orientation),
            token=token,
            pixel_format=frame.pixel_format,
        )

        try:
            detector.submit(request)
        except DetectionRequestError as e:
            self._stats.frames_dropped += 1
            logger.warning("Dropping frame %d: %s", frame.index, e.message)
            return

        self._stats.frames_submitted += 1

    def on_detection_complete(self, token: int, detections: list[Detection]) -> None:
        """Detector completion callback; hands the result to the rendering thread."""
        self._render_context.post(self._deliver, token, list(detections))

    def _deliver(self, token: int, detections: list[Detection]) -> None:
        """Render a completion unless it is stale or the overlay is gone."""
        if self._layer is None:
            self._stats.results_discarded += 1
            logger.debug("Discarding result %d: overlay detached", token)
            return

        if token <= self._last_rendered_token:
            self._stats.results_discarded += 1
            logger.debug(
                "Discarding stale result %d (last rendered %d)",
                token,
                self._last_rendered_token,
            )
            return

        self._last_rendered_token = token
        self.render(detections)

    def render(self, detections: list[Detection]) -> None:
        """Replace the overlay's annotations with ``detections``.

        Must be called on the rendering thread.
        """
        if self._layer is None:
            return
        render_detections(self._layer, detections, self._geometry, self.settings.overlay)
        self._stats.results_rendered += 1
        self._stats.record_detections(detections)

    def update_overlay_transform(self, parent_bounds: Rect) -> float:
        """Refit the overlay after the parent bounds changed.

        Returns:
            The applied scale (1.0 while detached)
        """
        self._parent_bounds = parent_bounds
        if self._layer is None:
            return 1.0

        scale = apply_overlay_transform(self._layer, parent_bounds, self._geometry)
        logger.debug(
            "Overlay transform updated: parent %.0fx%.0f, scale %.3f",
            parent_bounds.width,
            parent_bounds.height,
            scale,
        )
        return scale

    def attach(self, parent_bounds: Rect, layer: OverlayLayer | None = None) -> OverlayLayer:
        """Take ownership of an overlay layer and fit it to ``parent_bounds``."""
        self._layer = layer or OverlayLayer()
        self.update_overlay_transform(parent_bounds)
        logger.info("Overlay attached")
        return self._layer

    def detach(self) -> None:
        """Release the overlay layer; later completions are discarded."""
        if self._layer is not None:
            self._layer = None
            logger.info("Overlay detached")

    @contextmanager
    def attached(self, parent_bounds: Rect) -> Iterator[OverlayLayer]:
        """Scope an attached overlay to a ``with`` block."""
        layer = self.attach(parent_bounds)
        try:
            yield layer
        finally:
            self.detach()

    def __enter__(self) -> PipelineCoordinator:
        """Context manager entry."""
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.shutdown()
